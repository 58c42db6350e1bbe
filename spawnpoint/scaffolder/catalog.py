"""Template discovery and selection.

A *templates directory* holds one subdirectory per template; a
subdirectory counts as a template when it contains a manifest file.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from rich.table import Table

from ..config import DEFAULT_MANIFEST_NAME
from ..errors import SpawnError
from .manifest import ScaffoldManifest, load_manifest

logger = logging.getLogger(__name__)

# (prompt, options) -> index of the chosen option
Chooser = Callable[[str, Sequence[str]], int]


@dataclass(frozen=True)
class TemplateEntry:
    """A discovered template: its directory name, location and manifest."""

    dir_name: str
    path: Path
    manifest: ScaffoldManifest

    @property
    def language(self) -> str:
        return self.manifest.language

    @property
    def name(self) -> str:
        return self.manifest.name


def find_available_templates(
    templates_dir: str | Path,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
) -> list[TemplateEntry]:
    """Load every template under *templates_dir*, sorted by directory name.

    Directories without a manifest are ignored; directories whose manifest
    fails to load are skipped with a warning.  A missing *templates_dir*
    yields an empty list.
    """
    root = Path(templates_dir)
    if not root.is_dir():
        logger.warning("Templates directory not found or is not a directory: %s", root)
        return []

    try:
        children = sorted(root.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise SpawnError.io("read templates directory", root, exc) from exc

    templates: list[TemplateEntry] = []
    for child in children:
        if not child.is_dir():
            continue
        manifest_path = child / manifest_name
        if not manifest_path.is_file():
            logger.debug("Directory %s does not contain %s.", child, manifest_name)
            continue
        try:
            manifest = load_manifest(manifest_path)
        except SpawnError as exc:
            logger.warning("Skipping directory '%s': %s", child.name, exc)
            continue
        templates.append(TemplateEntry(child.name, child, manifest))

    logger.debug("Found %d templates in %s", len(templates), root)
    return templates


def _choose(
    chooser: Chooser | None,
    prompt: str,
    options: Sequence[str],
    ambiguity: str,
) -> int:
    if chooser is None:
        raise SpawnError.selection(ambiguity)
    index = chooser(prompt, options)
    if not 0 <= index < len(options):
        raise SpawnError.selection(f"Invalid selection {index} for: {prompt}")
    return index


def select_template(
    templates: Sequence[TemplateEntry],
    language: str | None = None,
    name: str | None = None,
    chooser: Chooser | None = None,
) -> TemplateEntry:
    """Pick one template by language and/or manifest name.

    Args:
        templates: Candidates from :func:`find_available_templates`.
        language: Manifest ``language`` to match exactly, if given.
        name: Manifest ``name`` to match exactly, if given.
        chooser: Called to resolve a choice between several candidates.
            Without one, any choice that needs the user is an error.

    Raises:
        SpawnError: ``SELECTION`` when nothing matches or the choice is
            ambiguous.
    """
    if not templates:
        raise SpawnError.selection("No templates found.")

    if language is not None and name is not None:
        for entry in templates:
            if entry.language == language and entry.name == name:
                return entry
        raise SpawnError.selection(
            f"Template '{name}' for language '{language}' not found."
        )

    if name is not None:
        matches = [entry for entry in templates if entry.name == name]
        if not matches:
            raise SpawnError.selection(f"Template '{name}' not found.")
        if len(matches) > 1:
            raise SpawnError.selection(
                f"Template name '{name}' is ambiguous (found in multiple languages), "
                "please specify a language with --language."
            )
        return matches[0]

    if language is None:
        languages = sorted({entry.language for entry in templates})
        if len(languages) == 1:
            language = languages[0]
        else:
            index = _choose(
                chooser,
                "Select the language/framework",
                languages,
                "Several languages are available, please specify one with --language.",
            )
            language = languages[index]

    candidates = [entry for entry in templates if entry.language == language]
    if not candidates:
        raise SpawnError.selection(f"No templates found for language '{language}'.")
    if len(candidates) == 1:
        return candidates[0]

    index = _choose(
        chooser,
        f"Select a template for language '{language}'",
        [entry.name for entry in candidates],
        f"Several templates exist for language '{language}', "
        "please specify one with --template.",
    )
    return candidates[index]


def build_template_table(templates: Sequence[TemplateEntry]) -> Table:
    """Rich table of the available templates for the ``list`` command."""
    table = Table(
        title="Available Spawn Point Templates",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Language", style="green")
    table.add_column("Description")
    table.add_column("Directory", style="dim")

    for entry in templates:
        table.add_row(
            entry.name, entry.language, entry.manifest.description, entry.dir_name
        )
    return table
