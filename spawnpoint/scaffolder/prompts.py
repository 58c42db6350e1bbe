"""Collect base variable values for a template.

Only variables with a ``prompt`` are collected.  Values come from, in order:
explicit ``--var name=value`` arguments, an interactive rich prompt, or the
variable's default when running without input.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from rich.prompt import Confirm, Prompt

from ..errors import SpawnError
from ..utils import console, print_warning
from .manifest import ScaffoldManifest, VariableDefinition, VariableType

logger = logging.getLogger(__name__)

_TRUE_WORDS = frozenset({"true", "yes", "y", "1", "on"})
_FALSE_WORDS = frozenset({"false", "no", "n", "0", "off"})


def parse_var_assignments(assignments: list[str] | None) -> dict[str, str]:
    """Parse ``name=value`` strings from the command line.

    Raises:
        SpawnError: ``CONFIG`` for an assignment without ``=`` or a name.
    """
    values: dict[str, str] = {}
    for item in assignments or []:
        name, sep, value = item.partition("=")
        name = name.strip()
        if not sep or not name:
            raise SpawnError.config(f"Invalid --var '{item}', expected name=value")
        values[name] = value
    return values


def normalise_boolean(definition: VariableDefinition, value: str) -> str:
    """Return ``"true"`` or ``"false"`` for a boolean variable's input."""
    lowered = value.strip().lower()
    if lowered in _TRUE_WORDS:
        return "true"
    if lowered in _FALSE_WORDS:
        return "false"
    raise SpawnError.config(
        f"Variable '{definition.name}' expects a boolean (true/false), got '{value}'"
    )


def _compile_validation(definition: VariableDefinition) -> re.Pattern[str] | None:
    if not definition.validation_regex:
        return None
    try:
        return re.compile(definition.validation_regex)
    except re.error as exc:
        logger.warning(
            "Invalid validation_regex for variable '%s': %s - Skipping validation.",
            definition.name,
            exc,
        )
        return None


def _prompt_string(
    definition: VariableDefinition, pattern: re.Pattern[str] | None
) -> str:
    while True:
        if definition.sensitive:
            value = Prompt.ask(definition.prompt, password=True, console=console)
        elif definition.default is not None:
            value = Prompt.ask(
                definition.prompt, default=definition.default, console=console
            )
        else:
            value = Prompt.ask(definition.prompt, console=console)
        if pattern is None or pattern.search(value):
            return value
        print_warning(f"Input must match regex: {pattern.pattern}")


def _prompt_boolean(definition: VariableDefinition) -> str:
    default = (definition.default or "").strip().lower() in _TRUE_WORDS
    answer = Confirm.ask(definition.prompt, default=default, console=console)
    return "true" if answer else "false"


def gather_variables(
    manifest: ScaffoldManifest,
    provided: Mapping[str, str] | None = None,
    *,
    interactive: bool = True,
) -> dict[str, str]:
    """Return base values for every prompted variable of *manifest*.

    Args:
        manifest: The selected template's manifest.
        provided: Values given up front (e.g. ``--var``); they win over
            prompts and defaults.
        interactive: Prompt for missing values when true; otherwise fall
            back to defaults.

    Raises:
        SpawnError: ``CONFIG`` when a provided value is invalid, or when a
            value is missing and cannot be prompted for.
    """
    provided = dict(provided or {})
    variables: dict[str, str] = {}

    if interactive and any(
        d.is_prompted and d.name not in provided for d in manifest.variables
    ):
        console.print("[bold]Please provide values for the following variables:[/bold]")

    for definition in manifest.variables:
        if not definition.is_prompted:
            if definition.name in provided:
                logger.warning(
                    "Ignoring --var for '%s': it is not a prompted variable.",
                    definition.name,
                )
                provided.pop(definition.name)
            continue

        pattern = _compile_validation(definition)
        is_boolean = definition.var_type is VariableType.BOOLEAN

        if definition.name in provided:
            value = provided.pop(definition.name)
            if is_boolean:
                value = normalise_boolean(definition, value)
            elif pattern is not None and not pattern.search(value):
                raise SpawnError.config(
                    f"Value '{value}' for variable '{definition.name}' "
                    f"does not match regex: {pattern.pattern}"
                )
        elif interactive:
            value = _prompt_boolean(definition) if is_boolean else _prompt_string(
                definition, pattern
            )
        elif definition.default is not None:
            value = definition.default
            if is_boolean:
                value = normalise_boolean(definition, value)
        elif is_boolean:
            value = "false"
        else:
            raise SpawnError.config(
                f"Variable '{definition.name}' requires a value; "
                f"pass --var {definition.name}=VALUE"
            )

        variables[definition.name] = value

    for unknown in provided:
        logger.warning("Ignoring --var for unknown variable '%s'.", unknown)

    logger.debug("Gathered base variables: %s", sorted(variables))
    return variables
