"""The ``generate`` operation: render a template into a new project."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel

from .config import Settings
from .errors import ErrorKind, SpawnError
from .runner import CommandRunner, LifecycleOrchestrator
from .scaffolder import (
    RenderStats,
    TemplateEntry,
    TemplateRenderer,
    compute_substitutions,
    find_available_templates,
    gather_variables,
    select_template,
)
from .scaffolder.catalog import Chooser
from .utils import console, format_duration, print_phase_header, print_warning

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    template: TemplateEntry
    output_dir: Path
    base_vars: dict[str, str]
    stats: RenderStats
    duration_seconds: float = 0.0


def prepare_output_dir(output_dir: Path) -> None:
    """Create *output_dir*, refusing a non-directory and warning if it exists."""
    if not output_dir.exists():
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SpawnError.io("create output directory", output_dir, exc) from exc
        logger.info("Created output directory: %s", output_dir)
    elif not output_dir.is_dir():
        raise SpawnError(
            ErrorKind.IO,
            f"Output path '{output_dir}' exists but is not a directory.",
            path=output_dir,
        )
    else:
        print_warning(
            f"Output directory '{output_dir}' already exists. Files may be overwritten."
        )


async def generate(
    settings: Settings,
    output_dir: str | Path,
    *,
    language: str | None = None,
    template: str | None = None,
    provided_vars: Mapping[str, str] | None = None,
    interactive: bool = True,
    chooser: Chooser | None = None,
    invocation_dir: Path | None = None,
) -> GenerationResult:
    """Select a template, collect variables, run hooks and render.

    Args:
        settings: Runtime settings (templates location, progress, ...).
        output_dir: Project directory to create; relative paths are taken
            from *invocation_dir*.
        language: Template language filter.
        template: Template (manifest) name filter.
        provided_vars: Values from ``--var``.
        interactive: Whether prompts may be shown.
        chooser: Interactive template chooser.
        invocation_dir: Directory pre-generate hooks run in (defaults to
            the current directory).

    Raises:
        SpawnError: On selection, variable, hook or rendering failure.
    """
    start = time.monotonic()
    invocation_dir = invocation_dir or Path.cwd()
    output_path = Path(output_dir)
    if not output_path.is_absolute():
        output_path = invocation_dir / output_path

    templates_dir = settings.resolve_templates_dir()
    templates = find_available_templates(templates_dir, settings.manifest_name)
    entry = select_template(templates, language, template, chooser)
    manifest = entry.manifest
    logger.info("Selected template '%s' from %s", entry.name, entry.path)

    console.print(
        Panel(
            f"[cyan]{escape(manifest.name)}[/cyan] ({escape(manifest.language)})\n"
            f"  {escape(manifest.description)}\n"
            f"  Output: {output_path}",
            title="spawnpoint generate",
            border_style="cyan",
        )
    )

    base_vars = gather_variables(manifest, provided_vars, interactive=interactive)
    substitutions = compute_substitutions(base_vars, manifest.variables)

    orchestrator = LifecycleOrchestrator(CommandRunner(settings.kill_grace_seconds))
    await orchestrator.run_hooks(
        "Pre-Generate", manifest.pre_generate, invocation_dir, base_vars
    )

    prepare_output_dir(output_path)
    print_phase_header("Generate")
    renderer = TemplateRenderer(
        manifest,
        manifest_name=settings.manifest_name,
        show_progress=settings.show_progress,
    )
    stats = await renderer.render(entry.path, output_path, base_vars, substitutions)
    console.print(
        f"[green]Generated {stats.files_written} files into {output_path}[/green]"
    )

    await orchestrator.run_hooks(
        "Post-Generate", manifest.post_generate, output_path, base_vars
    )

    elapsed = time.monotonic() - start
    logger.info("Generation finished in %s", format_duration(elapsed))
    return GenerationResult(
        template=entry,
        output_dir=output_path,
        base_vars=base_vars,
        stats=stats,
        duration_seconds=elapsed,
    )
