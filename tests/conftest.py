"""Shared pytest fixtures for the spawnpoint test suite.

Provides reusable fixtures for:
- Manifest and step factories
- A sample template tree on disk (text, binary, conditional and excluded paths)
- A templates directory holding several templates
- Settings pointed at the temporary templates directory
"""

from __future__ import annotations

import logging
import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from spawnpoint.config import Settings
from spawnpoint.scaffolder.manifest import (
    ScaffoldManifest,
    ValidationStep,
    parse_manifest,
)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_manifest() -> Callable[..., ScaffoldManifest]:
    """Factory building a manifest from camelCase keyword overrides.

    Usage::

        def test_something(make_manifest):
            manifest = make_manifest(exclude=["node_modules"])
    """

    def factory(**overrides: Any) -> ScaffoldManifest:
        data: dict[str, Any] = {"name": "sample", "language": "python"}
        data.update(overrides)
        return parse_manifest(data)

    return factory


@pytest.fixture
def make_step() -> Callable[..., ValidationStep]:
    """Factory building a ``ValidationStep`` with sensible defaults."""

    def factory(command: str = "true", name: str = "step", **kwargs: Any) -> ValidationStep:
        return ValidationStep(name=name, command=command, **kwargs)

    return factory


# ---------------------------------------------------------------------------
# Sample template
# ---------------------------------------------------------------------------

SAMPLE_MANIFEST: dict[str, Any] = {
    "name": "sample-app",
    "description": "Sample application template",
    "language": "python",
    "variables": [
        {
            "name": "projectName",
            "prompt": "Project name?",
            "placeholderValue": "--project-name--",
            "default": "My App",
            "transformations": {
                "kebabCase": "--kebab-name--",
                "pascalCase": "--PascalName--",
            },
        },
        {
            "name": "includeDocker",
            "prompt": "Include Docker?",
            "placeholderValue": "--include-docker--",
            "varType": "boolean",
            "default": "false",
        },
        {
            "name": "mainFile",
            "prompt": "Main file name?",
            "placeholderValue": "--main-file--",
            "default": "main",
        },
    ],
    "placeholderFilenames": {"prefix": "__VAR_", "suffix": "__"},
    "binaryExtensions": ["png"],
    "binaryFiles": ["assets/blob.dat"],
    "exclude": ["node_modules"],
    "conditionalPaths": {
        "docker": {"variable": "includeDocker"},
        "Dockerfile": {"variable": "includeDocker", "value": "true"},
    },
}

# Not valid UTF-8; must only ever be copied byte-for-byte.
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\xff\xfe--project-name--"


def write_template(root: Path, manifest: dict[str, Any] | None = None) -> Path:
    """Write the sample template tree under *root* and return *root*."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "scaffold.yaml").write_text(
        yaml.safe_dump(manifest or SAMPLE_MANIFEST, sort_keys=False), encoding="utf-8"
    )
    (root / "README.md").write_text(
        "# --project-name--\n\nPackage: --kebab-name--\nClass: --PascalName--\n",
        encoding="utf-8",
    )
    (root / "src").mkdir()
    (root / "src" / "__VAR_mainFile__.py").write_text(
        textwrap.dedent(
            """\
            class --PascalName--:
                name = "--kebab-name--"
            """
        ),
        encoding="utf-8",
    )
    (root / "--kebab-name--.cfg").write_text("name=--project-name--\n", encoding="utf-8")
    (root / "assets").mkdir()
    (root / "assets" / "logo.png").write_bytes(PNG_BYTES)
    (root / "assets" / "blob.dat").write_bytes(b"\xff\x00--kebab-name--")
    (root / "Dockerfile").write_text("FROM python:3.12\n", encoding="utf-8")
    (root / "docker").mkdir()
    (root / "docker" / "compose.yaml").write_text("name: --kebab-name--\n", encoding="utf-8")
    (root / "node_modules" / "dep").mkdir(parents=True)
    (root / "node_modules" / "dep" / "index.js").write_text("x", encoding="utf-8")
    return root


@pytest.fixture
def sample_manifest() -> ScaffoldManifest:
    return parse_manifest(SAMPLE_MANIFEST)


@pytest.fixture
def template_tree(tmp_path: Path) -> Path:
    """The sample template written to ``tmp_path/template``."""
    return write_template(tmp_path / "template")


# ---------------------------------------------------------------------------
# Templates directory & settings
# ---------------------------------------------------------------------------


def _manifest_for(name: str, language: str, **extra: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": name,
        "language": language,
        "description": f"{name} template",
    }
    data.update(extra)
    return data


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    """A templates directory with four templates and two non-templates.

    - ``sample_app_v1``: the full sample template (python / sample-app)
    - ``rust_cli_v1``: rust / cli
    - ``node_cli_v1``: nodejs / cli (same name, different language)
    - ``node_lib_v1``: nodejs / lib
    - ``empty_dir``: no manifest (ignored)
    - ``broken_v1``: invalid manifest (skipped with a warning)
    """
    root = tmp_path / "templates"
    write_template(root / "sample_app_v1")

    for dir_name, name, language in [
        ("rust_cli_v1", "cli", "rust"),
        ("node_cli_v1", "cli", "nodejs"),
        ("node_lib_v1", "lib", "nodejs"),
    ]:
        path = root / dir_name
        path.mkdir(parents=True)
        (path / "scaffold.yaml").write_text(
            yaml.safe_dump(_manifest_for(name, language)), encoding="utf-8"
        )
        (path / "README.md").write_text(f"# {name}\n", encoding="utf-8")

    (root / "empty_dir").mkdir()
    (root / "broken_v1").mkdir()
    (root / "broken_v1" / "scaffold.yaml").write_text(
        "name: broken\nlanguage: [unclosed\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def settings(templates_dir: Path) -> Settings:
    """Settings bound to the temporary templates directory, progress off."""
    return Settings(templates_dir=templates_dir, show_progress=False)


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_spawnpoint_logger():
    """Undo ``setup_logging`` so ``caplog`` sees package records in every test."""
    yield
    logger = logging.getLogger("spawnpoint")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
