"""Faber configuration.

Typed settings for a single ``faber run`` invocation.  Values come from the
environment (``FABER_*``) or a saved JSON file, and CLI flags override them.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}


class FaberConfig(BaseModel):
    """Settings shared by the CLI and the action runner."""

    working_dir: Path = Field(default=Path("."), description="Project directory actions run in")
    config_script: str = Field(default="faberconfig.py", description="Script path, relative to working_dir")
    encoding: str = Field(default="utf-8", description="Encoding used to read and write text files")
    shell_timeout: Optional[int] = Field(
        default=None, ge=1, description="Seconds before a shell action is killed; None waits forever"
    )
    preview: bool = Field(default=True, description="Show the data object before running")
    strict: bool = Field(default=False, description="Exit non-zero when any action failed")

    @property
    def config_script_path(self) -> Path:
        """Absolute-or-relative path to the boilerplate's config script."""
        script = Path(self.config_script)
        if script.is_absolute():
            return script
        return self.working_dir / script

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "FaberConfig":
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "FaberConfig":
        """Build a ``FaberConfig`` from environment variables.

        Recognised variables (all optional):
            FABER_WORKING_DIR, FABER_CONFIG_SCRIPT, FABER_ENCODING,
            FABER_SHELL_TIMEOUT, FABER_PREVIEW, FABER_STRICT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("FABER_WORKING_DIR"):
            kwargs["working_dir"] = Path(os.environ["FABER_WORKING_DIR"])
        if os.environ.get("FABER_CONFIG_SCRIPT"):
            kwargs["config_script"] = os.environ["FABER_CONFIG_SCRIPT"]
        if os.environ.get("FABER_ENCODING"):
            kwargs["encoding"] = os.environ["FABER_ENCODING"]
        if os.environ.get("FABER_SHELL_TIMEOUT"):
            try:
                kwargs["shell_timeout"] = int(os.environ["FABER_SHELL_TIMEOUT"])
            except ValueError as exc:
                raise ValueError("FABER_SHELL_TIMEOUT must be a whole number of seconds") from exc
        if os.environ.get("FABER_PREVIEW"):
            kwargs["preview"] = os.environ["FABER_PREVIEW"].strip().lower() in _TRUTHY
        if os.environ.get("FABER_STRICT"):
            kwargs["strict"] = os.environ["FABER_STRICT"].strip().lower() in _TRUTHY
        return cls(**kwargs)
