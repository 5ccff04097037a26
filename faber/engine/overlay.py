"""Layered view of the working directory used to track a run's effects.

A dry run never touches the disk, yet later actions must see what earlier
ones would have done: a file renamed by action 1 has to be editable by
action 2, and a folder deleted by action 1 must be gone for action 2.
:class:`FileOverlay` records those effects on top of the real tree and
answers ``exists``/``is_file``/``is_dir``/``read_text`` queries against the
combined view.  With nothing recorded it is a plain view of the disk, which
is how the runner uses it in real mode.

Each recorded path carries one of four states:

- ``file``: a file with in-memory content
- ``dir``: a new, empty directory
- ``link``: the subtree now lives here but is read from a path on disk
- ``gone``: the path and everything below it were removed

A query walks from the path up to the root; the nearest recorded ancestor
decides the answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional


@dataclass(frozen=True)
class Node:
    """What a path currently is: ``kind`` is ``"file"``, ``"dir"`` or ``None``."""

    kind: Optional[str] = None
    origin: Optional[Path] = None
    content: Optional[str] = None


MISSING = Node()


def _on_disk(path: Path) -> Node:
    if path.is_file():
        return Node("file", origin=path)
    if path.is_dir():
        return Node("dir", origin=path)
    return MISSING


def _within(path: Path, anchor: Path) -> bool:
    return path == anchor or anchor in path.parents


class FileOverlay:
    """Recorded filesystem effects layered over the tree at *root*.

    All paths are absolute and already confined to *root*.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self._entries: dict[Path, tuple[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    # -- Queries -------------------------------------------------------------

    def locate(self, path: Path) -> Node:
        for anchor in self._lineage(path):
            entry = self._entries.get(anchor)
            if entry is None:
                continue
            state, value = entry
            if state == "link":
                return _on_disk(value / path.relative_to(anchor))
            if anchor != path or state == "gone":
                return MISSING
            if state == "file":
                return Node("file", content=value)
            return Node("dir")
        return _on_disk(path)

    def exists(self, path: Path) -> bool:
        return self.locate(path).kind is not None

    def is_file(self, path: Path) -> bool:
        return self.locate(path).kind == "file"

    def is_dir(self, path: Path) -> bool:
        return self.locate(path).kind == "dir"

    def origin(self, path: Path) -> Optional[Path]:
        """The on-disk path backing *path*, or ``None`` for in-memory or missing paths."""
        return self.locate(path).origin

    def read_text(self, path: Path, encoding: str = "utf-8") -> str:
        node = self.locate(path)
        if node.content is not None:
            return node.content
        if node.kind != "file" or node.origin is None:
            raise FileNotFoundError(f"no such file: {path}")
        return node.origin.read_text(encoding=encoding)

    # -- Recording -----------------------------------------------------------

    def write(self, path: Path, content: str) -> None:
        self._ensure_parents(path)
        self._forget(path)
        self._entries[path] = ("file", content)

    def remove(self, path: Path) -> None:
        self._forget(path)
        self._entries[path] = ("gone", None)

    def relocate(self, source: Path, target: Path) -> None:
        """Record ``source`` moving to ``target``, carrying its whole subtree."""
        node = self.locate(source)
        carried = [
            (key.relative_to(source), entry)
            for key, entry in self._entries.items()
            if key != source and _within(key, source)
        ]
        self.remove(source)
        self._ensure_parents(target)
        self._forget(target)
        if node.origin is not None:
            self._entries[target] = ("link", node.origin)
        elif node.kind == "file":
            self._entries[target] = ("file", node.content)
        else:
            self._entries[target] = ("dir", None)
        for relative, entry in carried:
            self._entries[target / relative] = entry

    # -- Internals -----------------------------------------------------------

    def _lineage(self, path: Path) -> Iterator[Path]:
        """*path* and its ancestors, stopping below the root."""
        current = path
        while current != self.root and self.root in current.parents:
            yield current
            current = current.parent

    def _forget(self, path: Path) -> None:
        for key in [key for key in self._entries if _within(key, path)]:
            del self._entries[key]

    def _ensure_parents(self, path: Path) -> None:
        missing = [parent for parent in self._lineage(path.parent) if not self.exists(parent)]
        for parent in reversed(missing):
            self._entries[parent] = ("dir", None)
