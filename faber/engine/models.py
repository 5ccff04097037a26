"""Pydantic v2 models for actions, results, and run reports.

Every action kind is its own frozen model with a fixed parameter shape, and
:data:`Action` is the tagged union of all of them, discriminated on ``kind``.
Results and reports are frozen too: a :class:`RunReport` is never mutated
after the runner returns it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ExecutionMode(str, Enum):
    """Whether the runner mutates the filesystem or only previews."""

    REAL = "real"
    SIMULATE = "simulate"


class ActionStatus(str, Enum):
    """Outcome of a single action."""

    APPLIED = "Applied"
    SIMULATED = "Simulated"
    SKIPPED = "Skipped"
    FAILED = "Failed"


class ActionKind(str, Enum):
    """Every file-level operation a boilerplate script can declare."""

    WRITE_FILE = "WriteFile"
    DELETE_FILE = "DeleteFile"
    DELETE_FOLDER = "DeleteFolder"
    RENAME_PATH = "RenamePath"
    MOVE_PATH = "MovePath"
    REPLACE_IN_FILE = "ReplaceInFile"
    RUN_SHELL_COMMAND = "RunShellCommand"


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class BaseAction(BaseModel):
    """Fields shared by every action kind.

    ``target`` and the fields listed in ``template_fields`` may carry
    ``{{path}}`` markers until the runner resolves them.  ``when`` is a
    dotted data path (optionally prefixed with ``!``) that must be truthy
    for the action to run.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: str = Field(..., min_length=1, description="Path expression, relative to the working directory")
    when: Optional[str] = Field(default=None, description="Dotted data path gating the action")
    resolved: bool = Field(default=False, description="True once every marker has been substituted")

    parameter_fields: ClassVar[tuple[str, ...]] = ()
    template_fields: ClassVar[tuple[str, ...]] = ("target",)

    @property
    def parameters(self) -> dict[str, Any]:
        """Kind-specific payload as a plain dict."""
        return {name: getattr(self, name) for name in self.parameter_fields}

    def describe(self) -> str:
        """One-line human description of the declared operation."""
        return f"{self.kind.value} {self.target}"  # type: ignore[attr-defined]


class WriteFile(BaseAction):
    """Write literal ``content``, or render a jinja ``template`` file, to ``target``."""

    kind: Literal[ActionKind.WRITE_FILE] = ActionKind.WRITE_FILE
    content: str = Field(default="")
    template: Optional[str] = Field(default=None, description="Jinja template path inside the working directory")
    overwrite: bool = Field(default=True)

    parameter_fields: ClassVar[tuple[str, ...]] = ("content", "template", "overwrite")
    template_fields: ClassVar[tuple[str, ...]] = ("target", "content", "template")

    @model_validator(mode="after")
    def check_single_source(self) -> "WriteFile":
        if self.template is not None and self.content:
            raise ValueError("WriteFile takes either 'content' or 'template', not both")
        return self

    def describe(self) -> str:
        source = f" from {self.template}" if self.template else ""
        return f"write {self.target}{source}"


class DeleteFile(BaseAction):
    """Remove a single file."""

    kind: Literal[ActionKind.DELETE_FILE] = ActionKind.DELETE_FILE

    def describe(self) -> str:
        return f"delete file {self.target}"


class DeleteFolder(BaseAction):
    """Remove a directory and everything below it."""

    kind: Literal[ActionKind.DELETE_FOLDER] = ActionKind.DELETE_FOLDER

    def describe(self) -> str:
        return f"delete folder {self.target}"


class RenamePath(BaseAction):
    """Rename ``source`` to ``target``; the target's parent must already exist."""

    kind: Literal[ActionKind.RENAME_PATH] = ActionKind.RENAME_PATH
    source: str = Field(..., min_length=1)

    parameter_fields: ClassVar[tuple[str, ...]] = ("source",)
    template_fields: ClassVar[tuple[str, ...]] = ("target", "source")

    def describe(self) -> str:
        return f"rename {self.source} -> {self.target}"


class MovePath(BaseAction):
    """Move ``source`` to ``target``, creating missing parent directories."""

    kind: Literal[ActionKind.MOVE_PATH] = ActionKind.MOVE_PATH
    source: str = Field(..., min_length=1)

    parameter_fields: ClassVar[tuple[str, ...]] = ("source",)
    template_fields: ClassVar[tuple[str, ...]] = ("target", "source")

    def describe(self) -> str:
        return f"move {self.source} -> {self.target}"


class ReplaceInFile(BaseAction):
    """Replace ``pattern`` with ``replacement`` inside a text file.

    ``count=0`` replaces every occurrence.  With ``regex=True`` the pattern
    is a Python regular expression and the replacement may use group
    references.
    """

    kind: Literal[ActionKind.REPLACE_IN_FILE] = ActionKind.REPLACE_IN_FILE
    pattern: str = Field(..., min_length=1)
    replacement: str = Field(default="")
    regex: bool = Field(default=False)
    count: int = Field(default=0, ge=0)

    parameter_fields: ClassVar[tuple[str, ...]] = ("pattern", "replacement", "regex", "count")
    template_fields: ClassVar[tuple[str, ...]] = ("target", "pattern", "replacement")

    def describe(self) -> str:
        return f"replace {self.pattern!r} with {self.replacement!r} in {self.target}"


class RunShellCommand(BaseAction):
    """Run ``command`` through the shell with ``target`` as working directory."""

    kind: Literal[ActionKind.RUN_SHELL_COMMAND] = ActionKind.RUN_SHELL_COMMAND
    target: str = Field(default=".", min_length=1)
    command: str = Field(..., min_length=1)

    parameter_fields: ClassVar[tuple[str, ...]] = ("command",)
    template_fields: ClassVar[tuple[str, ...]] = ("target", "command")

    def describe(self) -> str:
        return f"run `{self.command}` in {self.target}"


Action = Annotated[
    Union[WriteFile, DeleteFile, DeleteFolder, RenamePath, MovePath, ReplaceInFile, RunShellCommand],
    Field(discriminator="kind"),
]

ACTION_TYPES: tuple[type[BaseAction], ...] = (
    WriteFile,
    DeleteFile,
    DeleteFolder,
    RenamePath,
    MovePath,
    ReplaceInFile,
    RunShellCommand,
)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ActionResult(BaseModel):
    """Outcome of one action, in the form it was executed (resolved if possible)."""

    model_config = ConfigDict(frozen=True)

    action: Action
    status: ActionStatus
    detail: str = Field(default="", description="What happened, would happen, or why it failed")
    duration_ms: float = Field(default=0.0, ge=0.0)


class RunReport(BaseModel):
    """Ordered record of one run: exactly one result per submitted action."""

    model_config = ConfigDict(frozen=True)

    mode: ExecutionMode
    results: tuple[ActionResult, ...] = Field(default_factory=tuple)
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO-8601 timestamp of when the run finished",
    )

    def __len__(self) -> int:
        return len(self.results)

    def __getitem__(self, index: int) -> ActionResult:
        return self.results[index]

    @property
    def failures(self) -> list[ActionResult]:
        """Every failed result, in submission order."""
        return [r for r in self.results if r.status is ActionStatus.FAILED]

    @computed_field  # type: ignore[misc]
    @property
    def has_failures(self) -> bool:
        """True when at least one action failed."""
        return any(r.status is ActionStatus.FAILED for r in self.results)

    @computed_field  # type: ignore[misc]
    @property
    def total_duration_ms(self) -> float:
        return sum(r.duration_ms for r in self.results)

    def counts(self) -> dict[ActionStatus, int]:
        """Number of results per status, every status present."""
        counts = {status: 0 for status in ActionStatus}
        for result in self.results:
            counts[result.status] += 1
        return counts

    # -- Serialisation helpers -----------------------------------------------

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(indent=indent)

    def save(self, path: Path) -> None:
        """Persist the report to a JSON file, creating parent directories as needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> "RunReport":
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)
