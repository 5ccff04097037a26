"""The faber DSL: a fluent builder that declares an ordered action plan.

A boilerplate ships a ``faberconfig.py`` exposing ``configure(faber)``::

    def configure(faber):
        (
            faber
            .rename("src/App.js", "src/{{projectName | pascal_case}}.js")
            .replace("package.json", "boilerplate-name", "{{projectName | slugify}}")
            .delete_folder("docs/boilerplate", when="!keepDocs")
        )

Declaring performs no resolution and no I/O.  :meth:`Faber.actions` freezes
the declarations into an :class:`ActionPlan` paired with one data context;
every call returns a new, independent plan.
"""

from __future__ import annotations

import copy
import importlib.util
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigScriptError
from .models import (
    ACTION_TYPES,
    Action,
    BaseAction,
    DeleteFile,
    DeleteFolder,
    MovePath,
    RenamePath,
    ReplaceInFile,
    RunShellCommand,
    WriteFile,
)

CONFIG_ENTRY_POINT = "configure"


class ActionPlan(BaseModel):
    """Unresolved actions frozen together with the data they will run against."""

    model_config = ConfigDict(frozen=True)

    actions: tuple[Action, ...] = Field(default_factory=tuple)
    context: dict[str, Any] = Field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.actions)


class Faber:
    """Accumulates immutable action records in declaration order."""

    def __init__(self) -> None:
        self._declarations: list[BaseAction] = []

    def __len__(self) -> int:
        return len(self._declarations)

    def _declare(self, action: BaseAction) -> "Faber":
        self._declarations.append(action)
        return self

    # -- Declarations --------------------------------------------------------

    def write(
        self,
        target: str,
        content: str = "",
        *,
        template: Optional[str] = None,
        overwrite: bool = True,
        when: Optional[str] = None,
    ) -> "Faber":
        """Write *content* (or the rendered jinja *template*) to *target*."""
        return self._declare(
            WriteFile(target=target, content=content, template=template, overwrite=overwrite, when=when)
        )

    def delete_file(self, target: str, *, when: Optional[str] = None) -> "Faber":
        return self._declare(DeleteFile(target=target, when=when))

    def delete_folder(self, target: str, *, when: Optional[str] = None) -> "Faber":
        return self._declare(DeleteFolder(target=target, when=when))

    def rename(self, source: str, target: str, *, when: Optional[str] = None) -> "Faber":
        return self._declare(RenamePath(source=source, target=target, when=when))

    def move(self, source: str, target: str, *, when: Optional[str] = None) -> "Faber":
        """Like :meth:`rename`, but creates the target's parent directories."""
        return self._declare(MovePath(source=source, target=target, when=when))

    def replace(
        self,
        target: str,
        pattern: str,
        replacement: str,
        *,
        regex: bool = False,
        count: int = 0,
        when: Optional[str] = None,
    ) -> "Faber":
        """Replace *pattern* with *replacement* inside the text file *target*.

        With ``regex=True`` only the literal parts are regex syntax: data
        inserted through ``{{path}}`` markers is matched and substituted
        verbatim.
        """
        return self._declare(
            ReplaceInFile(
                target=target,
                pattern=pattern,
                replacement=replacement,
                regex=regex,
                count=count,
                when=when,
            )
        )

    def run(self, command: str, *, cwd: str = ".", when: Optional[str] = None) -> "Faber":
        """Run a shell *command* with *cwd* (relative to the project) as working directory."""
        return self._declare(RunShellCommand(command=command, target=cwd, when=when))

    def extend(self, actions: Iterable[BaseAction]) -> "Faber":
        """Append pre-built action records."""
        for action in actions:
            if not isinstance(action, ACTION_TYPES):
                raise TypeError(f"expected an action model, got {type(action).__name__}")
            self._declare(action)
        return self

    def clear(self) -> "Faber":
        self._declarations.clear()
        return self

    # -- Finalisation --------------------------------------------------------

    def actions(self, context: Optional[Mapping[str, Any]] = None) -> ActionPlan:
        """Freeze the declarations into a new plan bound to *context*."""
        if context is None:
            context = {}
        if not isinstance(context, Mapping):
            raise TypeError(f"context must be a mapping, got {type(context).__name__}")
        return ActionPlan(
            actions=tuple(self._declarations),
            context=copy.deepcopy(dict(context)),
        )


# ---------------------------------------------------------------------------
# Config script loading
# ---------------------------------------------------------------------------


def load_config_script(path: str | Path) -> Faber:
    """Import a boilerplate's config script and run its ``configure(faber)``.

    Raises:
        ConfigScriptError: If the file is missing, fails to import, has no
            callable ``configure`` or raises while declaring actions.
    """
    script = Path(path)
    if not script.is_file():
        raise ConfigScriptError(f"Config script not found: {script}")

    spec = importlib.util.spec_from_file_location("faberconfig", script)
    if spec is None or spec.loader is None:
        raise ConfigScriptError(f"Cannot import config script: {script}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ConfigScriptError(f"Failed to import {script}: {exc}") from exc

    configure = getattr(module, CONFIG_ENTRY_POINT, None)
    if not callable(configure):
        raise ConfigScriptError(f"{script} does not define a '{CONFIG_ENTRY_POINT}(faber)' function")

    faber = Faber()
    try:
        configure(faber)
    except Exception as exc:
        raise ConfigScriptError(f"{script}: {CONFIG_ENTRY_POINT}() failed: {exc}") from exc
    return faber
