"""Variable resolution: base values to the full placeholder substitution map.

The map returned by :func:`compute_substitutions` is keyed by *placeholder
token* (``--kebab-project-name--``), not by variable name, and holds the
final text to write in place of each token.  It is computed in two passes:

1. Direct values and case transformations for every variable that has a
   base value.
2. Derived variables (e.g. ``fullPackageName``) built from the results of
   pass 1.

Resolution never fails; missing derived inputs fall back to empty values.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence

from .manifest import CaseTransformation, VariableDefinition

logger = logging.getLogger(__name__)

TransformCache = dict[str, dict[CaseTransformation, str]]


# ---------------------------------------------------------------------------
# Case transformations
# ---------------------------------------------------------------------------

_SEPARATORS = re.compile(r"[\W_]+")
_ACRONYM_BOUNDARY = re.compile(r"(?<=[A-Z])(?=[A-Z][a-z])")
_CASE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def split_words(value: str) -> list[str]:
    """Split *value* into words on separators and case boundaries.

    Examples::

        split_words("my app")        -> ["my", "app"]
        split_words("MyCoolApp")     -> ["My", "Cool", "App"]
        split_words("HTTPServer_v2") -> ["HTTP", "Server", "v2"]
    """
    words: list[str] = []
    for chunk in _SEPARATORS.split(value):
        for part in _ACRONYM_BOUNDARY.split(chunk):
            words.extend(w for w in _CASE_BOUNDARY.split(part) if w)
    return words


def to_pascal_case(value: str) -> str:
    return "".join(w[:1].upper() + w[1:].lower() for w in split_words(value))


def to_camel_case(value: str) -> str:
    pascal = to_pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


def to_snake_case(value: str) -> str:
    return "_".join(w.lower() for w in split_words(value))


def to_kebab_case(value: str) -> str:
    return "-".join(w.lower() for w in split_words(value))


def to_shouty_snake_case(value: str) -> str:
    return "_".join(w.upper() for w in split_words(value))


def to_package_name(value: str) -> str:
    """Drop every non-alphanumeric character and lower-case the rest."""
    return "".join(ch for ch in value if ch.isalnum()).lower()


TRANSFORMERS: dict[CaseTransformation, Callable[[str], str]] = {
    CaseTransformation.PASCAL_CASE: to_pascal_case,
    CaseTransformation.CAMEL_CASE: to_camel_case,
    CaseTransformation.SNAKE_CASE: to_snake_case,
    CaseTransformation.KEBAB_CASE: to_kebab_case,
    CaseTransformation.SHOUTY_SNAKE_CASE: to_shouty_snake_case,
    CaseTransformation.PACKAGE_NAME: to_package_name,
}


def transform(kind: CaseTransformation, value: str) -> str:
    """Apply the case transformation *kind* to *value*."""
    return TRANSFORMERS[kind](value)


# ---------------------------------------------------------------------------
# Derived variables
# ---------------------------------------------------------------------------


def _cached_or_computed(
    variable: str,
    kind: CaseTransformation,
    base_vars: Mapping[str, str],
    cache: TransformCache,
    consumer: str,
) -> str:
    """Return a pass-1 transform, recomputing it from the raw value if absent."""
    cached = cache.get(variable, {}).get(kind)
    if cached is not None:
        return cached
    logger.warning(
        "%s transformation for '%s' was not computed; recomputing it for '%s'.",
        kind.value,
        variable,
        consumer,
    )
    return transform(kind, base_vars.get(variable, ""))


def full_package_name(base_vars: Mapping[str, str], cache: TransformCache) -> str:
    """``<orgScope>/<kebab projectName>`` when scoping is on, else the kebab name."""
    use_scope = base_vars.get("useOrgScope", "").strip().lower() == "true"
    scope = base_vars.get("orgScope", "")
    kebab_name = _cached_or_computed(
        "projectName",
        CaseTransformation.KEBAB_CASE,
        base_vars,
        cache,
        "fullPackageName",
    )
    if use_scope and scope and kebab_name:
        return f"{scope}/{kebab_name}"
    return kebab_name


# Variable name -> resolver.  A manifest opts in by declaring a variable with
# one of these names; its placeholder receives the computed value.
DERIVED_VARIABLES: dict[str, Callable[[Mapping[str, str], TransformCache], str]] = {
    "fullPackageName": full_package_name,
}


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def compute_substitutions(
    base_vars: Mapping[str, str],
    definitions: Sequence[VariableDefinition],
) -> dict[str, str]:
    """Build the ``placeholder -> value`` map for one render.

    Args:
        base_vars: Raw values keyed by variable name.
        definitions: Variable definitions from the manifest.

    Returns:
        A new dictionary covering every placeholder reachable from
        *definitions* that has (or derives) a value.
    """
    substitutions: dict[str, str] = {}
    cache: TransformCache = {}

    for definition in definitions:
        if definition.name not in base_vars:
            continue
        raw = base_vars[definition.name]
        if definition.is_prompted:
            substitutions[definition.placeholder_value] = raw

        transforms: dict[CaseTransformation, str] = {}
        for kind, placeholder in definition.transformations.items():
            value = transform(kind, raw)
            substitutions[placeholder] = value
            transforms[kind] = value
        cache[definition.name] = transforms

    for definition in definitions:
        resolver = DERIVED_VARIABLES.get(definition.name)
        if resolver is None:
            continue
        substitutions[definition.placeholder_value] = resolver(base_vars, cache)

    logger.debug("Computed %d substitutions", len(substitutions))
    return substitutions
