"""Rich rendering of run reports.

Everything here is a pure transformation of a :class:`RunReport` except
:func:`print_report`, which is the single place that writes to the console.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from faber.utils import console as default_console
from faber.utils import format_duration

from .models import ActionResult, ActionStatus, ExecutionMode, RunReport

STATUS_ORDER: tuple[ActionStatus, ...] = (
    ActionStatus.FAILED,
    ActionStatus.APPLIED,
    ActionStatus.SIMULATED,
    ActionStatus.SKIPPED,
)

STATUS_STYLES: dict[ActionStatus, str] = {
    ActionStatus.APPLIED: "green",
    ActionStatus.SIMULATED: "cyan",
    ActionStatus.SKIPPED: "yellow",
    ActionStatus.FAILED: "bold red",
}


def group_by_status(report: RunReport) -> dict[ActionStatus, list[ActionResult]]:
    """Bucket results by status in ``STATUS_ORDER``, keeping submission order within each."""
    groups: dict[ActionStatus, list[ActionResult]] = {status: [] for status in STATUS_ORDER}
    for result in report.results:
        groups[result.status].append(result)
    return groups


def format_report(report: RunReport) -> Table:
    """One row per result, in submission order."""
    title = "Simulated run" if report.mode is ExecutionMode.SIMULATE else "Run"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Status", no_wrap=True)
    table.add_column("Action", no_wrap=True)
    table.add_column("Target")
    table.add_column("Detail")
    table.add_column("Time", justify="right", style="dim")

    for index, result in enumerate(report.results, start=1):
        style = STATUS_STYLES[result.status]
        table.add_row(
            str(index),
            f"[{style}]{result.status.value}[/{style}]",
            result.action.kind.value,
            escape(result.action.target),
            escape(result.detail),
            format_duration(result.duration_ms / 1000),
        )
    return table


def format_failures(report: RunReport) -> Panel | None:
    """List every failed action with enough detail to repair it by hand."""
    failures = [
        (index, result)
        for index, result in enumerate(report.results, start=1)
        if result.status is ActionStatus.FAILED
    ]
    if not failures:
        return None

    lines: list[str] = []
    for index, result in failures:
        lines.append(
            f"[bold]#{index} {result.action.kind.value}[/bold] {escape(result.action.target)}\n"
            f"  [red]{escape(result.detail)}[/red]"
        )
    return Panel(
        "\n".join(lines),
        title=f"{len(failures)} failed action{'s' if len(failures) != 1 else ''}",
        border_style="red",
    )


def summary_text(report: RunReport) -> str:
    """Single-line status counts, e.g. ``3 actions: 2 Applied, 1 Failed (12ms)``."""
    groups = group_by_status(report)
    parts = [f"{len(results)} {status.value}" for status, results in groups.items() if results]
    noun = "action" if len(report) == 1 else "actions"
    breakdown = ", ".join(parts) if parts else "nothing to do"
    return f"{len(report)} {noun}: {breakdown} ({format_duration(report.total_duration_ms / 1000)})"


def print_report(report: RunReport, console: Console | None = None) -> None:
    """Write the table, the failure panel (if any) and the summary line."""
    out = console or default_console
    out.print()
    out.print(format_report(report))
    failures = format_failures(report)
    if failures is not None:
        out.print(failures)
    style = "bold red" if report.has_failures else "bold green"
    out.print(f"[{style}]{escape(summary_text(report))}[/{style}]")
