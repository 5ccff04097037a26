"""Action execution engine.

Applies an ordered list of actions to a working directory, strictly one after
another: later actions routinely depend on what earlier ones left on disk (a
rename must land before the renamed file is edited).

Each action goes through the same steps:

1. resolve ``{{path}}`` markers against the data context
2. evaluate the optional ``when`` condition
3. check the filesystem precondition for its kind
4. simulate (describe) or apply the mutation

In simulate mode nothing touches the disk; each simulated mutation is
recorded in a :class:`~faber.engine.overlay.FileOverlay` instead, and the
preconditions of later actions are checked against it.  A dry run therefore
reports the same statuses a real run would.

Any failure is recorded as a ``Failed`` result and the run moves on to the
next action.  Nothing is rolled back; the returned :class:`RunReport` always
holds exactly one result per submitted action.
"""

from __future__ import annotations

import asyncio
import copy
import re
import shutil
import time
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Awaitable, Callable

from rich.console import Console
from rich.markup import escape

from faber.config import FaberConfig
from faber.utils import console as default_console
from faber.utils import run_command

from .builder import ActionPlan
from .errors import ActionExecutionError, FaberError, PreconditionError
from .models import (
    ACTION_TYPES,
    ActionKind,
    ActionResult,
    ActionStatus,
    BaseAction,
    DeleteFile,
    DeleteFolder,
    ExecutionMode,
    MovePath,
    RenamePath,
    ReplaceInFile,
    RunReport,
    RunShellCommand,
    WriteFile,
)
from .overlay import FileOverlay
from .renderer import TemplateRenderer
from .template import lookup, missing_references, resolve

Outcome = tuple[ActionStatus, str]

STATUS_MARKUP: dict[ActionStatus, str] = {
    ActionStatus.APPLIED: "[green]applied[/green]",
    ActionStatus.SIMULATED: "[cyan]simulated[/cyan]",
    ActionStatus.SKIPPED: "[yellow]skipped[/yellow]",
    ActionStatus.FAILED: "[bold red]failed[/bold red]",
}


# ---------------------------------------------------------------------------
# Resolution helpers
# ---------------------------------------------------------------------------


def resolve_action(
    action: BaseAction,
    context: Mapping[str, Any],
    mode: ExecutionMode = ExecutionMode.REAL,
) -> BaseAction:
    """Return *action* with every template field substituted.

    An action that is already ``resolved`` is returned unchanged.  In
    simulate mode markers for missing data stay in place and the copy keeps
    ``resolved=False``.
    """
    if action.resolved:
        return action
    raw = {name: getattr(action, name) for name in action.template_fields}
    updates = {
        name: resolve(value, context, mode, _field_escape(action, name))
        for name, value in raw.items()
        if value is not None
    }
    fully_resolved = not missing_references(raw, context)
    return action.model_copy(update={**updates, "resolved": fully_resolved})


def _field_escape(action: BaseAction, name: str) -> Callable[[str], str] | None:
    """Data inserted into a regex pattern or replacement is matched literally."""
    if not isinstance(action, ReplaceInFile) or not action.regex:
        return None
    if name == "pattern":
        return re.escape
    if name == "replacement":
        return _escape_replacement
    return None


def _escape_replacement(value: str) -> str:
    return value.replace("\\", "\\\\")


def evaluate_condition(
    when: str | None,
    context: Mapping[str, Any],
    mode: ExecutionMode = ExecutionMode.REAL,
) -> bool:
    """Evaluate a ``when`` expression: a data path, optionally negated with ``!``.

    In simulate mode a missing path counts as satisfied so the preview still
    shows the gated action.
    """
    if not when:
        return True
    expression = when.strip()
    negate = expression.startswith("!")
    path = expression.lstrip("!").strip()
    try:
        value = lookup(context, path)
    except FaberError:
        if mode is ExecutionMode.SIMULATE:
            return True
        raise
    return not value if negate else bool(value)


# ---------------------------------------------------------------------------
# ActionRunner
# ---------------------------------------------------------------------------


class ActionRunner:
    """Applies (or simulates) actions against a working directory.

    Args:
        root: Directory every action path is relative to.  Paths that
            resolve outside it are rejected.
        encoding: Text encoding for reads and writes.
        shell_timeout: Seconds before a shell action is killed, or ``None``.
        quiet: Suppress the per-action progress line.
        console: Rich console for progress output.
    """

    def __init__(
        self,
        root: str | Path = ".",
        *,
        encoding: str = "utf-8",
        shell_timeout: int | None = None,
        quiet: bool = False,
        console: Console | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.encoding = encoding
        self.shell_timeout = shell_timeout
        self.quiet = quiet
        self.console = console or default_console
        self._handlers: dict[ActionKind, Callable[..., Awaitable[Outcome]]] = {
            ActionKind.WRITE_FILE: self._write_file,
            ActionKind.DELETE_FILE: self._delete_file,
            ActionKind.DELETE_FOLDER: self._delete_folder,
            ActionKind.RENAME_PATH: self._rename_path,
            ActionKind.MOVE_PATH: self._move_path,
            ActionKind.REPLACE_IN_FILE: self._replace_in_file,
            ActionKind.RUN_SHELL_COMMAND: self._run_shell_command,
        }

    @classmethod
    def from_config(cls, config: FaberConfig, **kwargs: Any) -> "ActionRunner":
        return cls(
            config.working_dir,
            encoding=config.encoding,
            shell_timeout=config.shell_timeout,
            **kwargs,
        )

    # -- Public API --------------------------------------------------------

    async def run(
        self,
        actions: Sequence[BaseAction],
        context: Mapping[str, Any],
        mode: ExecutionMode = ExecutionMode.REAL,
    ) -> RunReport:
        """Run every action in order and return the complete report.

        Per-action failures never raise.  Only a malformed call (a
        non-sequence of actions, a non-action item, a non-mapping context or
        an unknown mode) raises ``TypeError`` before anything runs.
        """
        if isinstance(actions, (str, bytes)) or not isinstance(actions, Sequence):
            raise TypeError(f"actions must be a sequence of actions, got {type(actions).__name__}")
        for position, action in enumerate(actions):
            if not isinstance(action, ACTION_TYPES):
                raise TypeError(f"item {position} is not an action: {type(action).__name__}")
        if not isinstance(context, Mapping):
            raise TypeError(f"context must be a mapping, got {type(context).__name__}")
        if not isinstance(mode, ExecutionMode):
            raise TypeError(f"mode must be an ExecutionMode, got {mode!r}")

        data = copy.deepcopy(dict(context))
        # Dry runs record their effects here so later actions see them.
        fs = FileOverlay(self.root)
        results: list[ActionResult] = []
        total = len(actions)
        for index, action in enumerate(actions, start=1):
            result = await self._run_one(action, data, mode, fs)
            results.append(result)
            self._echo(index, total, result)

        return RunReport(mode=mode, results=tuple(results))

    async def run_plan(self, plan: ActionPlan, mode: ExecutionMode = ExecutionMode.REAL) -> RunReport:
        return await self.run(plan.actions, plan.context, mode)

    def run_sync(
        self,
        actions: Sequence[BaseAction],
        context: Mapping[str, Any],
        mode: ExecutionMode = ExecutionMode.REAL,
    ) -> RunReport:
        """Blocking wrapper around :meth:`run` for callers without an event loop."""
        return asyncio.run(self.run(actions, context, mode))

    # -- Per-action pipeline -----------------------------------------------

    async def _run_one(
        self, action: BaseAction, context: Mapping[str, Any], mode: ExecutionMode, fs: FileOverlay
    ) -> ActionResult:
        started = time.perf_counter()
        current = action
        try:
            current = resolve_action(action, context, mode)
            if not evaluate_condition(current.when, context, mode):
                status, detail = ActionStatus.SKIPPED, f"condition '{current.when}' is not met"
            else:
                handler = self._handlers[current.kind]  # type: ignore[attr-defined]
                status, detail = await handler(current, context, mode, fs)
        except FaberError as exc:
            status, detail = ActionStatus.FAILED, str(exc)
        except OSError as exc:
            status, detail = ActionStatus.FAILED, f"{type(exc).__name__}: {exc}"
        except Exception as exc:
            # run() must always return a complete report.
            status, detail = ActionStatus.FAILED, f"unexpected {type(exc).__name__}: {exc}"
        duration_ms = (time.perf_counter() - started) * 1000
        return ActionResult(action=current, status=status, detail=detail, duration_ms=duration_ms)

    def _echo(self, index: int, total: int, result: ActionResult) -> None:
        if self.quiet:
            return
        line = f"  [dim]\\[{index}/{total}][/dim] {STATUS_MARKUP[result.status]} {escape(result.action.describe())}"
        if result.status is ActionStatus.FAILED:
            line += f" [red]({escape(result.detail)})[/red]"
        self.console.print(line)

    # -- Path helpers --------------------------------------------------------

    def _path(self, relative: str) -> Path:
        """Resolve *relative* inside the root, rejecting anything that escapes it."""
        path = (self.root / relative).resolve()
        if path != self.root and self.root not in path.parents:
            raise PreconditionError(f"path escapes the working directory: {relative}")
        return path

    def _check_parents(self, path: Path, label: str, fs: FileOverlay) -> None:
        """Fail when an existing ancestor of *path* is not a folder."""
        for parent in path.parents:
            if parent == self.root or self.root not in parent.parents:
                break
            if fs.exists(parent) and not fs.is_dir(parent):
                raise PreconditionError(
                    f"cannot {label}: {parent.relative_to(self.root).as_posix()} is a file, not a folder"
                )

    # -- Handlers ------------------------------------------------------------

    async def _write_file(
        self, action: WriteFile, context: Mapping[str, Any], mode: ExecutionMode, fs: FileOverlay
    ) -> Outcome:
        path = self._path(action.target)
        if fs.is_dir(path):
            raise PreconditionError(f"cannot write {action.target}: it is a directory")
        existed = fs.exists(path)
        if existed and not action.overwrite:
            raise PreconditionError(f"cannot write {action.target}: file exists and overwrite is disabled")
        self._check_parents(path, f"write {action.target}", fs)

        if action.template is not None:
            content = self._render_template(action.template, context, mode, fs)
        else:
            content = action.content

        size = len(content.encode(self.encoding))
        if mode is ExecutionMode.SIMULATE:
            fs.write(path, content)
            verb = "overwrite" if existed else "create"
            return ActionStatus.SIMULATED, f"would {verb} {action.target} ({size} bytes)"

        await asyncio.to_thread(_write_text, path, content, self.encoding)
        verb = "overwrote" if existed else "created"
        return ActionStatus.APPLIED, f"{verb} {action.target} ({size} bytes)"

    def _render_template(
        self, template: str, context: Mapping[str, Any], mode: ExecutionMode, fs: FileOverlay
    ) -> str:
        template_path = self._path(template)
        if not fs.is_file(template_path):
            raise PreconditionError(f"template not found: {template}")
        renderer = TemplateRenderer(self.root, mode)
        origin = fs.origin(template_path)
        if origin == template_path:
            return renderer.render(template_path.relative_to(self.root).as_posix(), context)
        # Written or relocated earlier in a dry run: render the recorded text.
        source = fs.read_text(template_path, self.encoding)
        return renderer.render_string(source, context, name=template)

    async def _delete_file(
        self, action: DeleteFile, context: Mapping[str, Any], mode: ExecutionMode, fs: FileOverlay
    ) -> Outcome:
        path = self._path(action.target)
        if not fs.exists(path):
            raise PreconditionError(f"cannot delete {action.target}: file does not exist")
        if not fs.is_file(path):
            raise PreconditionError(f"cannot delete {action.target}: not a file")

        if mode is ExecutionMode.SIMULATE:
            fs.remove(path)
            return ActionStatus.SIMULATED, f"would delete {action.target}"

        await asyncio.to_thread(path.unlink)
        return ActionStatus.APPLIED, f"deleted {action.target}"

    async def _delete_folder(
        self, action: DeleteFolder, context: Mapping[str, Any], mode: ExecutionMode, fs: FileOverlay
    ) -> Outcome:
        path = self._path(action.target)
        if path == self.root:
            raise PreconditionError("refusing to delete the working directory itself")
        if not fs.exists(path):
            raise PreconditionError(f"cannot delete {action.target}: folder does not exist")
        if not fs.is_dir(path):
            raise PreconditionError(f"cannot delete {action.target}: not a folder")

        if mode is ExecutionMode.SIMULATE:
            fs.remove(path)
            return ActionStatus.SIMULATED, f"would delete folder {action.target}"

        await asyncio.to_thread(shutil.rmtree, path)
        return ActionStatus.APPLIED, f"deleted folder {action.target}"

    async def _rename_path(
        self, action: RenamePath, context: Mapping[str, Any], mode: ExecutionMode, fs: FileOverlay
    ) -> Outcome:
        source, target = self._check_relocation(action, fs)
        if not fs.is_dir(target.parent):
            raise PreconditionError(
                f"cannot rename {action.source}: parent folder of {action.target} does not exist"
            )

        if mode is ExecutionMode.SIMULATE:
            fs.relocate(source, target)
            return ActionStatus.SIMULATED, f"would rename {action.source} -> {action.target}"

        await asyncio.to_thread(source.rename, target)
        return ActionStatus.APPLIED, f"renamed {action.source} -> {action.target}"

    async def _move_path(
        self, action: MovePath, context: Mapping[str, Any], mode: ExecutionMode, fs: FileOverlay
    ) -> Outcome:
        source, target = self._check_relocation(action, fs)
        self._check_parents(target, f"move {action.source} -> {action.target}", fs)

        if mode is ExecutionMode.SIMULATE:
            fs.relocate(source, target)
            return ActionStatus.SIMULATED, f"would move {action.source} -> {action.target}"

        await asyncio.to_thread(_move, source, target)
        return ActionStatus.APPLIED, f"moved {action.source} -> {action.target}"

    def _check_relocation(self, action: RenamePath | MovePath, fs: FileOverlay) -> tuple[Path, Path]:
        source = self._path(action.source)
        target = self._path(action.target)
        if not fs.exists(source):
            raise PreconditionError(f"cannot {action.kind.value}: source {action.source} does not exist")
        if source == self.root:
            raise PreconditionError(f"cannot {action.kind.value} the working directory itself")
        if fs.exists(target):
            raise PreconditionError(f"cannot {action.kind.value}: target {action.target} already exists")
        if fs.is_dir(source) and source in target.parents:
            raise PreconditionError(f"cannot {action.kind.value} {action.source} into itself")
        return source, target

    async def _replace_in_file(
        self, action: ReplaceInFile, context: Mapping[str, Any], mode: ExecutionMode, fs: FileOverlay
    ) -> Outcome:
        path = self._path(action.target)
        if not fs.is_file(path):
            raise PreconditionError(f"cannot replace in {action.target}: file does not exist")
        try:
            text = await asyncio.to_thread(fs.read_text, path, self.encoding)
        except UnicodeDecodeError as exc:
            raise PreconditionError(
                f"cannot replace in {action.target}: not a {self.encoding} text file"
            ) from exc

        new_text, replacements = _substitute(action, text)
        if replacements == 0:
            return ActionStatus.SKIPPED, f"pattern {action.pattern!r} not found in {action.target}"

        plural = "s" if replacements != 1 else ""
        if mode is ExecutionMode.SIMULATE:
            fs.write(path, new_text)
            return ActionStatus.SIMULATED, (
                f"would replace {replacements} occurrence{plural} of {action.pattern!r} in {action.target}"
            )

        await asyncio.to_thread(_write_text, path, new_text, self.encoding)
        return ActionStatus.APPLIED, f"replaced {replacements} occurrence{plural} of {action.pattern!r} in {action.target}"

    async def _run_shell_command(
        self, action: RunShellCommand, context: Mapping[str, Any], mode: ExecutionMode, fs: FileOverlay
    ) -> Outcome:
        cwd = self._path(action.target)
        if not fs.is_dir(cwd):
            raise PreconditionError(f"cannot run `{action.command}`: folder {action.target} does not exist")

        if mode is ExecutionMode.SIMULATE:
            return ActionStatus.SIMULATED, f"would run `{action.command}` in {action.target}"

        returncode, stdout, stderr = await run_command(action.command, cwd=cwd, timeout=self.shell_timeout)
        if returncode != 0:
            raise ActionExecutionError(
                f"`{action.command}` exited with code {returncode}: {stderr or stdout or 'no output'}",
                command=action.command,
                returncode=returncode,
                stderr=stderr,
            )
        return ActionStatus.APPLIED, f"ran `{action.command}` in {action.target} (exit 0)"



# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _substitute(action: ReplaceInFile, text: str) -> tuple[str, int]:
    """Apply the replacement to *text*, returning the new text and the number of replacements."""
    if not action.regex:
        found = text.count(action.pattern)
        if action.count:
            found = min(found, action.count)
        return text.replace(action.pattern, action.replacement, action.count or -1), found

    try:
        compiled = re.compile(action.pattern)
    except re.error as exc:
        raise PreconditionError(f"invalid regular expression {action.pattern!r}: {exc}") from exc
    try:
        return compiled.subn(action.replacement, text, count=action.count)
    except (re.error, IndexError) as exc:
        raise PreconditionError(f"invalid replacement {action.replacement!r}: {exc}") from exc


def _write_text(path: Path, content: str, encoding: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding=encoding)


def _move(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(source), str(target))
