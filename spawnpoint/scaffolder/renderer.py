"""Template tree rendering for project scaffolding.

Provides the TemplateRenderer class, which copies a template directory into
an output directory while applying the manifest's rules:

* excluded and condition-failing entries are pruned (directories with their
  whole subtree);
* symbolic links and special files are skipped, never followed;
* path segments go through filename-marker and placeholder substitution;
* binary files are copied byte-for-byte;
* text files are decoded as UTF-8 and every placeholder is replaced.

Rendering is fail-fast: the first filesystem or decoding error aborts the
render and leaves whatever was already written in place.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePath

from rich.markup import escape

from ..config import DEFAULT_MANIFEST_NAME
from ..errors import SpawnError
from ..utils import create_progress
from .conditions import is_pruned, to_posix
from .manifest import ScaffoldManifest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class RenderStats:
    """Counters describing one completed render."""

    files_written: int = 0
    binary_files: int = 0
    directories_created: int = 0
    skipped: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Entry:
    source: Path
    relative: PurePath
    is_dir: bool


# ---------------------------------------------------------------------------
# Substitution helpers
# ---------------------------------------------------------------------------


def substitute_text(content: str, substitutions: Mapping[str, str]) -> str:
    """Replace every occurrence of each placeholder with its value."""
    for placeholder, value in substitutions.items():
        if placeholder:
            content = content.replace(placeholder, value)
    return content


def progress_label(relative_path: PurePath) -> str:
    """Progress-bar description for a file; the path is shown literally."""
    return f"Processing {escape(to_posix(relative_path))}"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders one template tree described by a :class:`ScaffoldManifest`.

    The renderer holds no per-render state; the same instance can render
    the template any number of times with different variables.
    """

    def __init__(
        self,
        manifest: ScaffoldManifest,
        *,
        manifest_name: str = DEFAULT_MANIFEST_NAME,
        show_progress: bool = True,
    ) -> None:
        self.manifest = manifest
        self.manifest_name = manifest_name
        self.show_progress = show_progress

    # -- Public API ----------------------------------------------------------

    async def render(
        self,
        template_root: str | Path,
        output_root: str | Path,
        base_vars: Mapping[str, str],
        substitutions: Mapping[str, str],
    ) -> RenderStats:
        """Copy *template_root* into *output_root* with substitutions applied.

        Args:
            template_root: Directory holding the template and its manifest.
            output_root: Destination directory (created if missing).
            base_vars: Raw variable values; used for conditions and
                filename markers.
            substitutions: Placeholder -> value map from
                :func:`~spawnpoint.scaffolder.variables.compute_substitutions`.

        Returns:
            A :class:`RenderStats` summary.

        Raises:
            SpawnError: ``IO`` for any filesystem failure, ``ENCODING`` for a
                text file that is not valid UTF-8.
        """
        template_root = Path(template_root)
        output_root = Path(output_root)
        stats = RenderStats()

        entries = await asyncio.to_thread(
            self._collect_entries, template_root, base_vars, stats.skipped
        )
        total_files = sum(1 for entry in entries if not entry.is_dir)
        logger.debug(
            "Rendering %d files from %s into %s", total_files, template_root, output_root
        )

        await asyncio.to_thread(_make_dir, output_root)

        with create_progress(disable=not self.show_progress) as progress:
            task = progress.add_task("Copying files...", total=total_files)
            for entry in entries:
                destination = output_root / self.output_relative_path(
                    entry.relative, base_vars, substitutions
                )
                if entry.is_dir:
                    logger.debug("Creating directory: %s", destination)
                    await asyncio.to_thread(_make_dir, destination)
                    stats.directories_created += 1
                    continue

                progress.update(task, description=progress_label(entry.relative))
                if self.is_binary(entry.relative):
                    logger.debug("Copying binary file to: %s", destination)
                    await asyncio.to_thread(_copy_binary, entry.source, destination)
                    stats.binary_files += 1
                else:
                    logger.debug("Substituting text file into: %s", destination)
                    await asyncio.to_thread(
                        _render_text, entry.source, destination, substitutions
                    )
                stats.files_written += 1
                progress.advance(task)

        logger.info(
            "Rendered %d files (%d binary) into %s",
            stats.files_written,
            stats.binary_files,
            output_root,
        )
        return stats

    def is_binary(self, relative_path: str | PurePath) -> bool:
        """Whether the template file at *relative_path* is copied verbatim."""
        path = PurePath(relative_path)
        if to_posix(path) in self.manifest.binary_files:
            return True
        extension = path.suffix[1:]
        if not extension:
            return False
        return any(
            declared in (extension, f".{extension}")
            for declared in self.manifest.binary_extensions
        )

    def output_relative_path(
        self,
        relative_path: PurePath,
        base_vars: Mapping[str, str],
        substitutions: Mapping[str, str],
    ) -> PurePath:
        """Map a template-relative path to its output-relative path."""
        if self.manifest.placeholder_filenames is None:
            return relative_path
        segments = [
            self._substitute_placeholders(
                self._substitute_affix_markers(segment, base_vars), substitutions
            )
            for segment in relative_path.parts
        ]
        return PurePath(*segments)

    # -- Path segment stages ---------------------------------------------------

    def _substitute_affix_markers(
        self, segment: str, base_vars: Mapping[str, str]
    ) -> str:
        """Replace ``<prefix><variable><suffix>`` markers with raw values."""
        affixes = self.manifest.placeholder_filenames
        if affixes is None:
            return segment
        for definition in self.manifest.variables:
            marker = affixes.marker(definition.name)
            if marker not in segment:
                continue
            value = base_vars.get(definition.name)
            if value is None:
                logger.warning(
                    "Variable '%s' used in path marker '%s' has no value.",
                    definition.name,
                    marker,
                )
                continue
            segment = segment.replace(marker, value)
        return segment

    @staticmethod
    def _substitute_placeholders(
        segment: str, substitutions: Mapping[str, str]
    ) -> str:
        return substitute_text(segment, substitutions)

    # -- Tree walking ----------------------------------------------------------

    def _collect_entries(
        self,
        template_root: Path,
        base_vars: Mapping[str, str],
        skipped: list[str],
    ) -> list[_Entry]:
        """Walk the template top-down, pruning excluded and unmet subtrees."""
        entries: list[_Entry] = []

        def visit(directory: Path) -> None:
            try:
                children = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError as exc:
                raise SpawnError.io("read directory", directory, exc) from exc

            for child in children:
                relative = PurePath(child.relative_to(template_root))
                # Links are never followed or copied.
                if child.is_symlink():
                    logger.debug("Skipping symbolic link: %s", relative)
                    continue
                child_is_dir = child.is_dir()
                if not child_is_dir and not child.is_file():
                    logger.debug("Skipping non-file/non-directory entry: %s", relative)
                    continue
                if not child_is_dir and child.name == self.manifest_name:
                    continue
                if is_pruned(relative, self.manifest, base_vars):
                    skipped.append(to_posix(relative))
                    continue
                entries.append(_Entry(child, relative, child_is_dir))
                if child_is_dir:
                    visit(child)

        visit(template_root)
        return entries


# ---------------------------------------------------------------------------
# Synchronous file helpers (run in a worker thread)
# ---------------------------------------------------------------------------


def _make_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SpawnError.io("create directory", path, exc) from exc


def _copy_binary(source: Path, destination: Path) -> None:
    _make_dir(destination.parent)
    try:
        shutil.copy(source, destination)
    except OSError as exc:
        raise SpawnError.io("copy binary file", source, exc) from exc


def _render_text(
    source: Path, destination: Path, substitutions: Mapping[str, str]
) -> None:
    try:
        raw = source.read_bytes()
    except OSError as exc:
        raise SpawnError.io("read template file", source, exc) from exc
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SpawnError.encoding(source, exc) from exc

    _make_dir(destination.parent)
    try:
        destination.write_bytes(substitute_text(content, substitutions).encode("utf-8"))
        shutil.copymode(source, destination)
    except OSError as exc:
        raise SpawnError.io("write file", destination, exc) from exc
