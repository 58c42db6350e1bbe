"""spawnpoint scaffolder -- turns a template tree into a project.

Quick usage::

    from spawnpoint.scaffolder import (
        TemplateRenderer, compute_substitutions, load_manifest,
    )

    manifest = load_manifest("templates/rust_cli_v1/scaffold.yaml")
    base_vars = {"projectName": "my app"}
    substitutions = compute_substitutions(base_vars, manifest.variables)
    stats = await TemplateRenderer(manifest).render(
        "templates/rust_cli_v1", "./my-app", base_vars, substitutions
    )
"""

from .catalog import TemplateEntry, find_available_templates, select_template
from .conditions import is_excluded, is_included
from .manifest import (
    CaseTransformation,
    Condition,
    PlaceholderFilenames,
    ScaffoldManifest,
    ValidationConfig,
    ValidationStep,
    VariableDefinition,
    VariableType,
    load_manifest,
    parse_manifest,
)
from .prompts import gather_variables
from .renderer import RenderStats, TemplateRenderer
from .variables import compute_substitutions

__all__ = [
    # Manifest
    "ScaffoldManifest",
    "VariableDefinition",
    "VariableType",
    "CaseTransformation",
    "Condition",
    "PlaceholderFilenames",
    "ValidationStep",
    "ValidationConfig",
    "load_manifest",
    "parse_manifest",
    # Resolution and rendering
    "compute_substitutions",
    "is_excluded",
    "is_included",
    "TemplateRenderer",
    "RenderStats",
    # Catalog
    "TemplateEntry",
    "find_available_templates",
    "select_template",
    "gather_variables",
]
