"""Faber action execution engine.

Quick usage::

    from faber.engine import ActionRunner, ExecutionMode, Faber

    plan = (
        Faber()
        .rename("src/App.txt", "src/{{projectName}}.txt")
        .replace("README.md", "Boilerplate", "{{projectName}}")
        .actions({"projectName": "Greenpark"})
    )
    report = ActionRunner("./greenpark").run_sync(plan.actions, plan.context, ExecutionMode.SIMULATE)
"""

from .builder import ActionPlan, Faber, load_config_script
from .errors import (
    ActionExecutionError,
    ConfigScriptError,
    FaberError,
    PreconditionError,
    TemplateResolutionError,
)
from .models import (
    Action,
    ActionKind,
    ActionResult,
    ActionStatus,
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
from .renderer import TemplateRenderer
from .reporter import format_failures, format_report, group_by_status, print_report, summary_text
from .runner import ActionRunner, evaluate_condition, resolve_action
from .template import lookup, resolve

__all__ = [
    # Builder
    "Faber",
    "ActionPlan",
    "load_config_script",
    # Models
    "Action",
    "ActionKind",
    "ActionResult",
    "ActionStatus",
    "ExecutionMode",
    "RunReport",
    "WriteFile",
    "DeleteFile",
    "DeleteFolder",
    "RenamePath",
    "MovePath",
    "ReplaceInFile",
    "RunShellCommand",
    # Templates
    "resolve",
    "lookup",
    "TemplateRenderer",
    # Runner
    "ActionRunner",
    "resolve_action",
    "evaluate_condition",
    # Reporter
    "format_report",
    "format_failures",
    "group_by_status",
    "summary_text",
    "print_report",
    # Errors
    "FaberError",
    "TemplateResolutionError",
    "PreconditionError",
    "ActionExecutionError",
    "ConfigScriptError",
]
