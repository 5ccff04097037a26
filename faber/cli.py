"""Command-line entry point for ``faber``.

Only routes arguments into the engine and prints what comes back::

    faber run --data '{"projectName":"Greenpark"}'
    faber run --dry --data-file project.yml --no-preview
    python -m faber run --cwd ./greenpark --data-file data.json --strict
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.markup import escape

from faber.config import FaberConfig
from faber.engine import ActionRunner, ConfigScriptError, ExecutionMode, load_config_script, print_report
from faber.utils import (
    console,
    load_data_file,
    parse_json_object,
    print_data_preview,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="faber",
        description="A CLI for creating projects from custom boilerplates.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  faber run --data '{\"projectName\":\"Greenpark\"}'\n"
            "  faber run --dry --data-file project.yml\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser(
        "run",
        help="Run the boilerplate's faberconfig.py actions inside the current project",
    )
    run.add_argument(
        "--dry",
        action="store_true",
        help="Run commands without making any changes",
    )
    source = run.add_mutually_exclusive_group()
    source.add_argument(
        "--data",
        default=None,
        help="Minified JSON object with the project data",
    )
    source.add_argument(
        "--data-file",
        default=None,
        help="Path to a .json, .yml or .yaml file with the project data",
    )
    run.add_argument(
        "--no-preview",
        action="store_true",
        help="Do not show the JSON data preview",
    )
    run.add_argument(
        "--config",
        default=None,
        help="Config script, relative to the project (default: faberconfig.py)",
    )
    run.add_argument(
        "--cwd",
        default=None,
        help="Project directory (default: current directory)",
    )
    run.add_argument(
        "--report",
        default=None,
        help="Save the run report as JSON to this path",
    )
    run.add_argument(
        "--strict",
        action="store_true",
        help="Exit with code 1 when any action failed",
    )
    return parser


def _read_data(args: argparse.Namespace) -> dict:
    if args.data_file:
        return load_data_file(args.data_file)
    if args.data is not None:
        return parse_json_object(args.data)
    if not sys.stdin.isatty():
        return parse_json_object(sys.stdin.read())
    raise ValueError("No project data given. Pass --data '<minified JSON>' or --data-file <path>.")


def cmd_run(args: argparse.Namespace) -> int:
    try:
        config = FaberConfig.from_env()
    except ValueError as exc:
        print_error(f"Error: invalid FABER_* environment setting: {escape(str(exc))}")
        return 1
    if args.cwd:
        config.working_dir = Path(args.cwd)
    if args.config:
        config.config_script = args.config
    if args.no_preview:
        config.preview = False
    if args.strict:
        config.strict = True

    try:
        data = _read_data(args)
    except (OSError, ValueError) as exc:
        print_error(f"Error: {escape(str(exc))}")
        return 1

    try:
        faber = load_config_script(config.config_script_path)
    except ConfigScriptError as exc:
        print_error(f"Error: {escape(str(exc))}")
        return 1

    plan = faber.actions(data)
    mode = ExecutionMode.SIMULATE if args.dry else ExecutionMode.REAL

    if config.preview:
        print_data_preview(plan.context)
    print_summary_table(
        {
            "Project": str(config.working_dir.resolve()),
            "Config script": str(config.config_script_path),
            "Mode": mode.value,
            "Actions": str(len(plan)),
        },
        title="faber run",
    )
    if not len(plan):
        print_warning("The config script did not declare any actions.")

    runner = ActionRunner.from_config(config)
    report = asyncio.run(runner.run_plan(plan, mode))
    print_report(report, console)

    if args.report:
        report.save(Path(args.report))
        console.print(f"  [dim]Report saved to {args.report}[/dim]")

    if report.has_failures:
        print_warning("Some actions failed; fix the files listed above by hand or re-run.")
        return 1 if config.strict else 0
    if mode is ExecutionMode.SIMULATE:
        print_success("Dry run finished, no files were changed.")
    else:
        print_success("All actions completed.")
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``faber`` and ``python -m faber``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "run":
        return cmd_run(args)
    parser.error(f"unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
