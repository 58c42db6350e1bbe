"""Command-line entry point: ``spawnpoint {list,generate,validate}``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.markup import escape
from rich.prompt import Prompt

from . import __version__
from .config import Settings
from .errors import SpawnError
from .generate import generate
from .scaffolder import find_available_templates
from .scaffolder.catalog import build_template_table
from .scaffolder.prompts import parse_var_assignments
from .utils import (
    console,
    format_duration,
    print_error,
    print_success,
    print_summary_table,
    setup_logging,
    truncate,
)
from .validate import validate

logger = logging.getLogger(__name__)


def prompt_choice(prompt: str, options: Sequence[str]) -> int:
    """Numbered rich prompt; returns the index of the chosen option."""
    for number, option in enumerate(options, start=1):
        console.print(f"  [cyan]{number}[/cyan]) {escape(option)}")
    answer = Prompt.ask(
        prompt,
        choices=[str(n) for n in range(1, len(options) + 1)],
        default="1",
        console=console,
    )
    return int(answer) - 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spawnpoint",
        description="Spawn Point -- generate projects from templates and validate them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  spawnpoint list\n"
            "  spawnpoint generate -l rust -t rust-cli -o ./my-app --var projectName=my-app\n"
            "  spawnpoint validate rust rust-cli\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    parser.add_argument(
        "--templates-dir",
        type=Path,
        default=None,
        help="Directory containing templates (overrides SPAWNPOINT_TEMPLATES_DIR)",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the file-copy progress bar",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List available templates")

    gen = commands.add_parser("generate", help="Generate a new project from a template")
    gen.add_argument("-l", "--language", default=None, help="Template language")
    gen.add_argument("-t", "--template", default=None, help="Template name")
    gen.add_argument(
        "-o", "--output-dir",
        type=Path,
        default=Path("."),
        help="Output directory (default: current directory)",
    )
    gen.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Provide a variable value (repeatable)",
    )
    gen.add_argument(
        "--no-input",
        action="store_true",
        help="Never prompt; use --var values and defaults",
    )

    val = commands.add_parser("validate", help="Validate a template's lifecycle")
    val.add_argument("language", help="Template language")
    val.add_argument("template", help="Template name")

    return parser


def build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    updates: dict[str, object] = {"verbose": min(max(args.verbose, settings.verbose), 2)}
    if args.templates_dir is not None:
        updates["templates_dir"] = args.templates_dir
    if args.no_progress:
        updates["show_progress"] = False
    return settings.model_copy(update=updates)


def run_list(settings: Settings) -> int:
    templates = find_available_templates(
        settings.resolve_templates_dir(), settings.manifest_name
    )
    if not templates:
        console.print("No templates found.")
        return 0
    console.print(build_template_table(templates))
    return 0


async def run_generate(settings: Settings, args: argparse.Namespace) -> int:
    interactive = not args.no_input and sys.stdin.isatty()
    result = await generate(
        settings,
        args.output_dir,
        language=args.language,
        template=args.template,
        provided_vars=parse_var_assignments(args.var),
        interactive=interactive,
        chooser=prompt_choice if interactive else None,
    )
    print_summary_table(
        {
            "Template": result.template.name,
            "Output": str(result.output_dir),
            "Files written": str(result.stats.files_written),
            "Binary files": str(result.stats.binary_files),
            "Skipped paths": str(len(result.stats.skipped)),
            "Duration": format_duration(result.duration_seconds),
        },
        title="Generation Summary",
    )
    print_success(f"Successfully generated project in '{result.output_dir}'!")
    return 0


async def run_validate(settings: Settings, args: argparse.Namespace) -> int:
    report = await validate(settings, args.language, args.template)
    if report.configured:
        print_success(f"Validation successful for template '{report.template.name}'!")
    return 0


def report_error(exc: SpawnError) -> None:
    print_error(f"Error: {exc}")
    if exc.step_name:
        console.print(f"[dim]Step: {escape(exc.step_name)}[/dim]")
    if exc.stderr.strip():
        console.print(f"[dim]stderr: {escape(truncate(exc.stderr))}[/dim]")


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for ``spawnpoint`` / ``python -m spawnpoint``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = build_settings(args)
    except (ValueError, SpawnError) as exc:
        print_error(f"Error: invalid configuration: {exc}")
        sys.exit(1)
    setup_logging(settings.verbose)
    logger.debug("Settings: %s", settings)

    try:
        if args.command == "list":
            code = run_list(settings)
        elif args.command == "generate":
            code = asyncio.run(run_generate(settings, args))
        else:
            code = asyncio.run(run_validate(settings, args))
    except SpawnError as exc:
        report_error(exc)
        sys.exit(1)
    except KeyboardInterrupt:
        print_error("Interrupted.")
        sys.exit(130)

    sys.exit(code)


if __name__ == "__main__":
    main()
