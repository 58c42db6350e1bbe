"""The ``validate`` operation: render a template with test values and exercise it."""

from __future__ import annotations

import logging
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel

from .config import Settings
from .runner import CommandRunner, LifecycleOrchestrator
from .scaffolder import (
    RenderStats,
    TemplateEntry,
    TemplateRenderer,
    compute_substitutions,
    find_available_templates,
    select_template,
)
from .utils import console, format_duration, print_phase_header

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    template: TemplateEntry
    configured: bool
    stats: RenderStats | None = None
    duration_seconds: float = 0.0


async def validate(
    settings: Settings,
    language: str,
    name: str,
    *,
    invocation_dir: Path | None = None,
) -> ValidationReport:
    """Render a template into a scratch directory and run its validation lifecycle.

    A template without a ``validation`` block is reported and counts as
    valid.  The scratch directory is removed afterwards, whatever the outcome.

    Raises:
        SpawnError: If the template is not found, rendering fails, or a
            lifecycle step fails.
    """
    start = time.monotonic()
    invocation_dir = invocation_dir or Path.cwd()

    templates_dir = settings.resolve_templates_dir()
    templates = find_available_templates(templates_dir, settings.manifest_name)
    entry = select_template(templates, language, name)
    manifest = entry.manifest
    logger.info("Found template '%s' in directory %s", manifest.name, entry.path)

    config = manifest.validation
    if config is None:
        console.print(
            f"Validation not configured for template '{escape(manifest.name)}'. Skipping."
        )
        return ValidationReport(template=entry, configured=False)

    console.print(
        Panel(
            f"[cyan]{escape(manifest.name)}[/cyan] ({escape(manifest.language)})\n"
            f"  Steps: {len(config.setup)} setup, {len(config.steps)} validation, "
            f"{len(config.teardown)} teardown",
            title="spawnpoint validate",
            border_style="magenta",
        )
    )

    base_vars = dict(config.test_variables)
    substitutions = compute_substitutions(base_vars, manifest.variables)

    with tempfile.TemporaryDirectory(
        prefix=f"spawnpoint_validate_{entry.dir_name}_"
    ) as scratch:
        scratch_dir = Path(scratch)
        logger.info("Created temporary directory: %s", scratch_dir)

        print_phase_header("Generate")
        renderer = TemplateRenderer(
            manifest,
            manifest_name=settings.manifest_name,
            show_progress=settings.show_progress,
        )
        stats = await renderer.render(entry.path, scratch_dir, base_vars, substitutions)

        orchestrator = LifecycleOrchestrator(CommandRunner(settings.kill_grace_seconds))
        await orchestrator.run_validation(config, scratch_dir, invocation_dir)

    elapsed = time.monotonic() - start
    logger.info("Validation finished in %s", format_duration(elapsed))
    return ValidationReport(
        template=entry, configured=True, stats=stats, duration_seconds=elapsed
    )
