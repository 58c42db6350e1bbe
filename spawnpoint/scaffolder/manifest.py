"""Scaffold manifest models and loader.

A template directory carries a ``scaffold.yaml`` manifest describing its
variables, which paths are conditional, excluded or binary, and the command
steps to run around generation and during validation.  The manifest is
parsed once into immutable Pydantic v2 models: every optional field is
defaulted at construction time and unknown keys are rejected, so the
rendering engine and the lifecycle never deal with missing or misspelt
settings.

YAML keys are camelCase (``placeholderValue``, ``conditionalPaths``,
``timeoutSecs``); the Python attributes are snake_case.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..errors import SpawnError

logger = logging.getLogger(__name__)

DEFAULT_FILENAME_PREFIX = "__VAR_"
DEFAULT_FILENAME_SUFFIX = "__"


def _stringify(value: Any) -> Any:
    """Coerce YAML scalars (``true``, ``3``) into the strings templates expect."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _stringify_mapping(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _stringify(v) for k, v in value.items()}
    return value


class _ManifestModel(BaseModel):
    """Base for every manifest model: frozen, camelCase keys, no extras."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class CaseTransformation(str, Enum):
    """Case conversions a variable can declare a placeholder for."""

    PASCAL_CASE = "pascalCase"
    CAMEL_CASE = "camelCase"
    SNAKE_CASE = "snakeCase"
    KEBAB_CASE = "kebabCase"
    SHOUTY_SNAKE_CASE = "shoutySnakeCase"
    PACKAGE_NAME = "packageName"

    @classmethod
    def _missing_(cls, value: object) -> "CaseTransformation | None":
        # Accept "PascalCase", "snake_case", "SHOUTY_SNAKE_CASE", "kebab-case".
        if isinstance(value, str):
            key = value.replace("_", "").replace("-", "").lower()
            for member in cls:
                if member.value.lower() == key:
                    return member
        return None


class VariableType(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"


# ---------------------------------------------------------------------------
# Variables & conditions
# ---------------------------------------------------------------------------


class Condition(_ManifestModel):
    """Include a path only when ``variable`` equals ``value`` (case-insensitive)."""

    variable: str
    value: str = "true"

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> Any:
        return _stringify(value)


class VariableDefinition(_ManifestModel):
    """One template variable and the placeholder tokens it feeds."""

    name: str = Field(..., min_length=1)
    prompt: Optional[str] = None
    placeholder_value: str = Field(..., min_length=1)
    var_type: VariableType = VariableType.STRING
    sensitive: bool = False
    default: Optional[str] = None
    transformations: dict[CaseTransformation, str] = Field(default_factory=dict)
    validation_regex: Optional[str] = None

    @field_validator("var_type", mode="before")
    @classmethod
    def _lower_var_type(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("default", mode="before")
    @classmethod
    def _coerce_default(cls, value: Any) -> Any:
        return _stringify(value)

    @property
    def is_prompted(self) -> bool:
        """Whether the variable is collected from the user (and substituted directly)."""
        return self.prompt is not None


class PlaceholderFilenames(_ManifestModel):
    """Affixes that mark a raw variable value inside a file or directory name."""

    prefix: str = DEFAULT_FILENAME_PREFIX
    suffix: str = DEFAULT_FILENAME_SUFFIX

    def marker(self, variable_name: str) -> str:
        """Return the filename marker for *variable_name* (``__VAR_name__``)."""
        return f"{self.prefix}{variable_name}{self.suffix}"


# ---------------------------------------------------------------------------
# Command steps
# ---------------------------------------------------------------------------


class ValidationStep(_ManifestModel):
    """A single shell command run as a hook or as a validation phase step."""

    name: str
    command: str
    working_dir: Optional[Path] = None
    env: dict[str, str] = Field(default_factory=dict)
    timeout_secs: Optional[float] = Field(
        default=None,
        gt=0,
        description=(
            "Wall-clock limit for the whole command; a command needing exactly "
            "this long is reported as timed out"
        ),
    )
    ignore_errors: bool = False
    always_run: bool = False
    check_stderr: bool = False

    @field_validator("env", mode="before")
    @classmethod
    def _coerce_env(cls, value: Any) -> Any:
        return _stringify_mapping(value)


class ValidationConfig(_ManifestModel):
    """The ``validation`` block: test inputs plus setup/steps/teardown."""

    test_variables: dict[str, str] = Field(default_factory=dict)
    setup: list[ValidationStep] = Field(default_factory=list)
    steps: list[ValidationStep] = Field(default_factory=list)
    teardown: list[ValidationStep] = Field(default_factory=list)

    @field_validator("test_variables", mode="before")
    @classmethod
    def _coerce_test_variables(cls, value: Any) -> Any:
        return _stringify_mapping(value)

    @property
    def total_steps(self) -> int:
        return len(self.setup) + len(self.steps) + len(self.teardown)


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class ScaffoldManifest(_ManifestModel):
    """Parsed ``scaffold.yaml``: everything the engine needs about a template."""

    name: str
    description: str = ""
    language: str
    variables: list[VariableDefinition] = Field(default_factory=list)
    placeholder_filenames: Optional[PlaceholderFilenames] = None
    binary_extensions: list[str] = Field(default_factory=list)
    binary_files: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    conditional_paths: dict[str, Condition] = Field(default_factory=dict)
    pre_generate: list[ValidationStep] = Field(default_factory=list)
    post_generate: list[ValidationStep] = Field(default_factory=list)
    validation: Optional[ValidationConfig] = None

    @field_validator("binary_files", mode="before")
    @classmethod
    def _normalise_binary_files(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [PurePosixPath(str(item).replace("\\", "/")).as_posix() for item in value]
        return value

    @field_validator("conditional_paths", mode="before")
    @classmethod
    def _normalise_conditional_paths(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {
                PurePosixPath(str(key).replace("\\", "/")).as_posix(): cond
                for key, cond in value.items()
            }
        return value

    def variable(self, name: str) -> VariableDefinition | None:
        """Return the definition named *name*, if any."""
        for definition in self.variables:
            if definition.name == name:
                return definition
        return None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def parse_manifest(data: Any, source: str | Path = "<memory>") -> ScaffoldManifest:
    """Validate already-deserialised manifest data.

    Raises:
        SpawnError: ``MANIFEST`` if the data is empty or fails validation.
    """
    if data is None:
        raise SpawnError.manifest(source, "manifest is empty")
    if not isinstance(data, dict):
        raise SpawnError.manifest(source, "top level must be a mapping")
    try:
        return ScaffoldManifest.model_validate(data)
    except ValidationError as exc:
        raise SpawnError.manifest(source, str(exc)) from exc


def load_manifest(path: str | Path) -> ScaffoldManifest:
    """Read and validate a ``scaffold.yaml`` file.

    Raises:
        SpawnError: ``MANIFEST`` if the file cannot be read, is not valid
            YAML, or does not match the manifest schema.
    """
    manifest_path = Path(path)
    try:
        raw = manifest_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SpawnError.manifest(manifest_path, f"read failed: {exc}") from exc

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise SpawnError.manifest(manifest_path, f"invalid YAML: {exc}") from exc

    manifest = parse_manifest(data, manifest_path)
    logger.debug("Loaded manifest '%s' from %s", manifest.name, manifest_path)
    return manifest
