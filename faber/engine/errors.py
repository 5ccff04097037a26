"""Exception taxonomy for the action execution engine.

Per-action errors (:class:`TemplateResolutionError`, :class:`PreconditionError`,
:class:`ActionExecutionError`) never escape :meth:`ActionRunner.run`; the
runner converts them into ``Failed`` results.  :class:`ConfigScriptError` is
raised before a run starts, when a boilerplate's config script cannot be
loaded.
"""

from __future__ import annotations


class FaberError(Exception):
    """Base class for every error raised by faber."""


class TemplateResolutionError(FaberError, LookupError):
    """Raised when a ``{{path}}`` marker cannot be resolved against the data."""

    def __init__(self, path: str, message: str = "") -> None:
        self.path = path
        super().__init__(message or f"unresolved template path: {path}")


class PreconditionError(FaberError):
    """Raised when the filesystem does not satisfy an action's requirements."""


class ActionExecutionError(FaberError):
    """Raised when a mutation or shell command fails during real execution."""

    def __init__(
        self,
        message: str,
        command: str = "",
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class ConfigScriptError(FaberError):
    """Raised when a boilerplate's ``faberconfig.py`` cannot be loaded."""
