"""Unit tests for the faber DSL (faber.engine.builder)."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from faber.engine.builder import ActionPlan, Faber, load_config_script
from faber.engine.errors import ConfigScriptError
from faber.engine.models import (
    ActionKind,
    DeleteFile,
    DeleteFolder,
    MovePath,
    RenamePath,
    ReplaceInFile,
    RunShellCommand,
    WriteFile,
)

pytestmark = pytest.mark.unit


class TestDeclarations:
    def test_chaining_returns_builder(self):
        faber = Faber()
        assert faber.rename("a", "b") is faber

    def test_every_factory_in_order(self):
        plan = (
            Faber()
            .write("NOTES.md", "# {{projectName}}")
            .delete_file("LICENSE")
            .delete_folder("docs")
            .rename("src/App.txt", "src/{{projectName}}.txt")
            .move("assets/logo.svg", "public/logo.svg")
            .replace("README.md", "Boilerplate", "{{projectName}}", regex=False, count=1)
            .run("npm install", cwd="frontend")
            .actions({"projectName": "Greenpark"})
        )
        assert [type(a) for a in plan.actions] == [
            WriteFile, DeleteFile, DeleteFolder, RenamePath, MovePath, ReplaceInFile, RunShellCommand,
        ]
        assert plan.actions[6].target == "frontend"
        assert plan.actions[5].count == 1

    def test_declaration_does_not_resolve(self):
        plan = Faber().rename("src/App.txt", "src/{{projectName}}.txt").actions({"projectName": "X"})
        action = plan.actions[0]
        assert action.target == "src/{{projectName}}.txt"
        assert action.resolved is False

    def test_declaration_does_no_io(self, tmp_path: Path):
        Faber().write(str(tmp_path / "nope.txt"), "x").delete_folder(str(tmp_path))
        assert tmp_path.exists()
        assert not (tmp_path / "nope.txt").exists()

    def test_when_condition_recorded(self):
        plan = Faber().delete_folder("docs", when="!keepDocs").actions()
        assert plan.actions[0].when == "!keepDocs"

    def test_invalid_parameters_fail_at_declaration(self):
        with pytest.raises(ValidationError):
            Faber().replace("a.txt", "", "b")

    def test_len_and_clear(self):
        faber = Faber().delete_file("a").delete_file("b")
        assert len(faber) == 2
        faber.clear()
        assert len(faber) == 0

    def test_extend_with_models(self):
        faber = Faber().extend([DeleteFile(target="a"), WriteFile(target="b")])
        assert [a.kind for a in faber.actions().actions] == [ActionKind.DELETE_FILE, ActionKind.WRITE_FILE]

    def test_extend_rejects_non_actions(self):
        with pytest.raises(TypeError):
            Faber().extend([{"kind": "DeleteFile", "target": "a"}])


class TestActionsAccessor:
    def test_returns_plan_with_context(self):
        plan = Faber().delete_file("a").actions({"projectName": "Greenpark"})
        assert isinstance(plan, ActionPlan)
        assert plan.context == {"projectName": "Greenpark"}
        assert len(plan) == 1

    def test_default_context_is_empty(self):
        assert Faber().actions().context == {}

    def test_rejects_non_mapping_context(self):
        with pytest.raises(TypeError):
            Faber().actions(["not", "a", "mapping"])

    def test_repeated_calls_are_independent(self):
        faber = Faber().rename("src/App.txt", "src/{{projectName}}.txt")
        first = faber.actions({"projectName": "One"})
        second = faber.actions({"projectName": "Two"})
        assert first.context != second.context
        assert first.actions is not second.actions
        assert all(not a.resolved for a in first.actions + second.actions)

    def test_later_declarations_do_not_leak_into_earlier_plans(self):
        faber = Faber().delete_file("a")
        plan = faber.actions()
        faber.delete_file("b")
        assert len(plan) == 1
        assert len(faber.actions()) == 2

    def test_context_is_copied(self):
        data = {"client": {"name": "Unilever"}}
        plan = Faber().actions(data)
        data["client"]["name"] = "Changed"
        assert plan.context["client"]["name"] == "Unilever"

    def test_separate_builders_share_nothing(self):
        Faber().delete_file("a")
        assert len(Faber()) == 0


class TestLoadConfigScript:
    def _write(self, directory: Path, body: str) -> Path:
        script = directory / "faberconfig.py"
        script.write_text(textwrap.dedent(body), encoding="utf-8")
        return script

    def test_loads_configure(self, tmp_path: Path):
        script = self._write(
            tmp_path,
            """\
            def configure(faber):
                faber.rename("src/App.txt", "src/{{projectName}}.txt").delete_folder("docs")
            """,
        )
        faber = load_config_script(script)
        assert len(faber) == 2

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigScriptError, match="not found"):
            load_config_script(tmp_path / "faberconfig.py")

    def test_missing_configure(self, tmp_path: Path):
        script = self._write(tmp_path, "ACTIONS = []\n")
        with pytest.raises(ConfigScriptError, match="configure"):
            load_config_script(script)

    def test_import_error_wrapped(self, tmp_path: Path):
        script = self._write(tmp_path, "import this_module_does_not_exist_123\n")
        with pytest.raises(ConfigScriptError, match="Failed to import"):
            load_config_script(script)

    def test_configure_error_wrapped(self, tmp_path: Path):
        script = self._write(
            tmp_path,
            """\
            def configure(faber):
                faber.replace("a.txt", "", "b")
            """,
        )
        with pytest.raises(ConfigScriptError, match="configure\\(\\) failed"):
            load_config_script(script)
