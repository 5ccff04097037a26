"""Shared pytest fixtures for the faber test suite.

Provides reusable fixtures for:
- A temporary boilerplate checkout with a handful of files
- A sample project data context
- A quiet ActionRunner bound to the checkout
- A filesystem snapshot helper for no-mutation checks
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest

from faber.engine import ActionRunner


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Temporary boilerplate checkout (auto-cleanup)."""
    root = tmp_path / "boilerplate"
    (root / "src").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "templates").mkdir()

    (root / "src" / "App.txt").write_text(
        "import App from './App';\nexport default App;\n", encoding="utf-8"
    )
    (root / "README.md").write_text(
        "# Boilerplate\n\nWelcome to Boilerplate.\n", encoding="utf-8"
    )
    (root / "package.json").write_text(
        '{\n  "name": "boilerplate",\n  "version": "1.0.0"\n}\n', encoding="utf-8"
    )
    (root / "docs" / "guide.md").write_text("Internal notes\n", encoding="utf-8")
    (root / "templates" / "README.md.j2").write_text(
        textwrap.dedent(
            """\
            # {{ projectName }}

            Client: {{ client.name | upper }}
            {% if isMultisite %}
            Multisite enabled.
            {% endif %}
            """
        ),
        encoding="utf-8",
    )
    (root / "logo.bin").write_bytes(b"\xff\xfe\x00\x81binary")
    yield root


@pytest.fixture
def context() -> dict[str, Any]:
    """Sample project data, as pasted by a user."""
    return {
        "projectName": "Greenpark",
        "clientName": "Unilever",
        "client": {"name": "Unilever", "url": "https://greenpark.digital/"},
        "isMultisite": True,
        "keepDocs": False,
        "team": [{"name": "Ada"}, {"name": "Linus"}],
        "port": 23000,
        "license": None,
    }


@pytest.fixture
def runner(project_dir: Path) -> ActionRunner:
    """ActionRunner bound to ``project_dir`` with progress output disabled."""
    return ActionRunner(project_dir, quiet=True)


# ---------------------------------------------------------------------------
# Snapshot helper
# ---------------------------------------------------------------------------


def _snapshot(root: Path) -> dict[str, bytes | None]:
    """Map every path below *root* to its bytes (``None`` for directories)."""
    tree: dict[str, bytes | None] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        tree[rel] = None if path.is_dir() else path.read_bytes()
    return tree


@pytest.fixture
def snapshot() -> Callable[[Path], dict[str, bytes | None]]:
    """Return a function that captures a directory tree for before/after diffs."""
    return _snapshot
