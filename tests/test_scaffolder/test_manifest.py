"""Unit tests for the manifest models and loader (spawnpoint.scaffolder.manifest).

Tests cover:
- Defaults for every optional field
- camelCase keys and snake_case attribute names
- CaseTransformation parsing (canonical and alternate spellings)
- Scalar coercion of YAML booleans / numbers
- Unknown keys rejected, models frozen
- load_manifest error reporting
"""

from __future__ import annotations

from pathlib import Path, PurePath

import pytest
from pydantic import ValidationError

from spawnpoint.errors import ErrorKind, SpawnError
from spawnpoint.scaffolder.manifest import (
    CaseTransformation,
    PlaceholderFilenames,
    ScaffoldManifest,
    ValidationStep,
    VariableType,
    load_manifest,
    parse_manifest,
)


# ---------------------------------------------------------------------------
# Defaults & field names
# ---------------------------------------------------------------------------


class TestManifestDefaults:
    @pytest.mark.unit
    def test_minimal_manifest(self, make_manifest):
        manifest = make_manifest()
        assert manifest.description == ""
        assert manifest.variables == []
        assert manifest.placeholder_filenames is None
        assert manifest.binary_extensions == []
        assert manifest.binary_files == []
        assert manifest.exclude == []
        assert manifest.conditional_paths == {}
        assert manifest.pre_generate == []
        assert manifest.post_generate == []
        assert manifest.validation is None

    @pytest.mark.unit
    def test_variable_defaults(self, make_manifest):
        manifest = make_manifest(
            variables=[{"name": "projectName", "placeholderValue": "--name--"}]
        )
        var = manifest.variables[0]
        assert var.prompt is None
        assert var.is_prompted is False
        assert var.var_type is VariableType.STRING
        assert var.sensitive is False
        assert var.default is None
        assert var.transformations == {}
        assert var.validation_regex is None

    @pytest.mark.unit
    def test_step_defaults(self):
        step = ValidationStep(name="build", command="make")
        assert step.working_dir is None
        assert step.env == {}
        assert step.timeout_secs is None
        assert step.ignore_errors is False
        assert step.always_run is False
        assert step.check_stderr is False

    @pytest.mark.unit
    def test_placeholder_filenames_defaults(self, make_manifest):
        manifest = make_manifest(placeholderFilenames={})
        assert manifest.placeholder_filenames == PlaceholderFilenames()
        assert manifest.placeholder_filenames.marker("mainFile") == "__VAR_mainFile__"

    @pytest.mark.unit
    def test_camel_case_keys(self, make_manifest):
        manifest = make_manifest(
            binaryExtensions=[".png"],
            preGenerate=[
                {
                    "name": "hook",
                    "command": "echo hi",
                    "workingDir": "sub",
                    "timeoutSecs": 3,
                    "ignoreErrors": True,
                    "alwaysRun": True,
                    "checkStderr": True,
                }
            ],
        )
        step = manifest.pre_generate[0]
        assert manifest.binary_extensions == [".png"]
        assert step.working_dir == Path("sub")
        assert step.timeout_secs == 3
        assert step.ignore_errors and step.always_run and step.check_stderr

    @pytest.mark.unit
    def test_snake_case_names_accepted(self):
        manifest = ScaffoldManifest(name="x", language="go", binary_extensions=["bin"])
        assert manifest.binary_extensions == ["bin"]

    @pytest.mark.unit
    def test_variable_lookup(self, sample_manifest):
        assert sample_manifest.variable("mainFile").placeholder_value == "--main-file--"
        assert sample_manifest.variable("missing") is None


# ---------------------------------------------------------------------------
# Enumerations and coercion
# ---------------------------------------------------------------------------


class TestCaseTransformation:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("pascalCase", CaseTransformation.PASCAL_CASE),
            ("PascalCase", CaseTransformation.PASCAL_CASE),
            ("snake_case", CaseTransformation.SNAKE_CASE),
            ("kebab-case", CaseTransformation.KEBAB_CASE),
            ("SHOUTY_SNAKE_CASE", CaseTransformation.SHOUTY_SNAKE_CASE),
            ("packageName", CaseTransformation.PACKAGE_NAME),
        ],
    )
    def test_spellings(self, raw, expected):
        assert CaseTransformation(raw) is expected

    @pytest.mark.unit
    def test_unknown_transformation_rejected(self, make_manifest):
        with pytest.raises(SpawnError) as exc_info:
            make_manifest(
                variables=[
                    {
                        "name": "n",
                        "placeholderValue": "--n--",
                        "transformations": {"titleCase": "--Title--"},
                    }
                ]
            )
        assert exc_info.value.kind is ErrorKind.MANIFEST


class TestCoercion:
    @pytest.mark.unit
    def test_yaml_scalars_become_strings(self, make_manifest):
        manifest = make_manifest(
            variables=[
                {
                    "name": "flag",
                    "placeholderValue": "--flag--",
                    "varType": "Boolean",
                    "default": True,
                }
            ],
            conditionalPaths={"extra": {"variable": "flag", "value": False}},
            validation={"testVariables": {"flag": True, "count": 3}},
        )
        assert manifest.variables[0].var_type is VariableType.BOOLEAN
        assert manifest.variables[0].default == "true"
        assert manifest.conditional_paths["extra"].value == "false"
        assert manifest.validation.test_variables == {"flag": "true", "count": "3"}

    @pytest.mark.unit
    def test_condition_value_defaults_to_true(self, make_manifest):
        manifest = make_manifest(conditionalPaths={"docker": {"variable": "useDocker"}})
        assert manifest.conditional_paths["docker"].value == "true"

    @pytest.mark.unit
    def test_paths_normalised_to_posix(self, make_manifest):
        manifest = make_manifest(
            binaryFiles=["assets\\img.bin", "./fonts/a.ttf"],
            conditionalPaths={"scripts\\build.sh": {"variable": "x"}},
        )
        assert manifest.binary_files == ["assets/img.bin", "fonts/a.ttf"]
        assert "scripts/build.sh" in manifest.conditional_paths

    @pytest.mark.unit
    def test_step_env_values_stringified(self):
        step = ValidationStep(name="s", command="env", env={"DEBUG": True, "PORT": 8080})
        assert step.env == {"DEBUG": "true", "PORT": "8080"}

    @pytest.mark.unit
    def test_total_steps(self, make_manifest):
        step = {"name": "s", "command": "true"}
        manifest = make_manifest(
            validation={"setup": [step], "steps": [step, step], "teardown": [step]}
        )
        assert manifest.validation.total_steps == 4


# ---------------------------------------------------------------------------
# Strictness
# ---------------------------------------------------------------------------


class TestStrictness:
    @pytest.mark.unit
    def test_unknown_key_rejected(self, make_manifest):
        with pytest.raises(SpawnError) as exc_info:
            make_manifest(placeholderFilename={"prefix": "x"})
        assert exc_info.value.kind is ErrorKind.MANIFEST
        assert "placeholderFilename" in str(exc_info.value)

    @pytest.mark.unit
    def test_missing_required_field(self):
        with pytest.raises(SpawnError):
            parse_manifest({"name": "no-language"})

    @pytest.mark.unit
    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            ValidationStep(name="s", command="true", timeout_secs=0)

    @pytest.mark.unit
    def test_models_are_frozen(self, sample_manifest):
        with pytest.raises(ValidationError):
            sample_manifest.name = "changed"

    @pytest.mark.unit
    @pytest.mark.parametrize("data", [None, ["a", "b"], "text"])
    def test_non_mapping_rejected(self, data):
        with pytest.raises(SpawnError) as exc_info:
            parse_manifest(data)
        assert exc_info.value.kind is ErrorKind.MANIFEST


# ---------------------------------------------------------------------------
# load_manifest
# ---------------------------------------------------------------------------


class TestLoadManifest:
    @pytest.mark.unit
    def test_load_sample(self, template_tree: Path):
        manifest = load_manifest(template_tree / "scaffold.yaml")
        assert manifest.name == "sample-app"
        assert manifest.variables[0].transformations[CaseTransformation.KEBAB_CASE] == (
            "--kebab-name--"
        )
        assert PurePath("Dockerfile").as_posix() in manifest.conditional_paths

    @pytest.mark.unit
    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(SpawnError) as exc_info:
            load_manifest(tmp_path / "nope.yaml")
        assert exc_info.value.kind is ErrorKind.MANIFEST
        assert exc_info.value.path == tmp_path / "nope.yaml"
        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.unit
    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "scaffold.yaml"
        path.write_text("name: [unclosed\n", encoding="utf-8")
        with pytest.raises(SpawnError) as exc_info:
            load_manifest(path)
        assert "invalid YAML" in str(exc_info.value)

    @pytest.mark.unit
    def test_explicit_null_prompt(self, tmp_path: Path):
        path = tmp_path / "scaffold.yaml"
        path.write_text(
            "name: t\nlanguage: nodejs\nvariables:\n"
            "  - name: fullPackageName\n    prompt: null\n"
            "    placeholderValue: --full-package-name--\n",
            encoding="utf-8",
        )
        manifest = load_manifest(path)
        assert manifest.variables[0].is_prompted is False
