"""Path-level inclusion rules for template trees."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path, PurePath

from .manifest import Condition, ScaffoldManifest

logger = logging.getLogger(__name__)


def to_posix(relative_path: str | PurePath) -> str:
    """Return *relative_path* in the forward-slash form used as manifest keys."""
    return PurePath(relative_path).as_posix().replace("\\", "/")


def is_excluded(relative_path: str | PurePath, manifest: ScaffoldManifest) -> bool:
    """True if any segment of *relative_path* exactly matches an ``exclude`` entry."""
    if not manifest.exclude:
        return False
    excluded = set(manifest.exclude)
    return any(part in excluded for part in PurePath(relative_path).parts)


def evaluate_condition(condition: Condition, base_vars: Mapping[str, str]) -> bool:
    """Compare the variable's value to the expected one, ignoring case.

    A variable with no value fails the condition.
    """
    actual = base_vars.get(condition.variable)
    if actual is None:
        logger.warning(
            "Conditional variable '%s' not found in provided variables.",
            condition.variable,
        )
        return False
    return actual.casefold() == condition.value.casefold()


def is_included(
    relative_path: str | PurePath,
    manifest: ScaffoldManifest,
    base_vars: Mapping[str, str],
) -> bool:
    """True unless a ``conditionalPaths`` entry for this exact path is unmet."""
    key = to_posix(relative_path)
    condition = manifest.conditional_paths.get(key)
    if condition is None:
        return True
    if evaluate_condition(condition, base_vars):
        logger.debug("Condition met for path: %s", key)
        return True
    logger.info("Condition not met for '%s', skipping.", key)
    return False


def is_pruned(
    relative_path: str | Path,
    manifest: ScaffoldManifest,
    base_vars: Mapping[str, str],
) -> bool:
    """Whether the renderer should skip this entry (and its subtree)."""
    return is_excluded(relative_path, manifest) or not is_included(
        relative_path, manifest, base_vars
    )
