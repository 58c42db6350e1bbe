"""spawnpoint configuration.

Typed runtime settings for the CLI and the generate/validate operations.
Settings are Pydantic v2 models so they are validated at construction time
and can be built from environment variables without boiler-plate.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field

from .errors import SpawnError

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = "scaffold.yaml"
TEMPLATES_DIR_ENV = "SPAWNPOINT_TEMPLATES_DIR"


class Settings(BaseModel):
    """Global spawnpoint settings.

    Instances are typically created once by the CLI entry point and then
    passed to the generate/validate operations.
    """

    templates_dir: Path | None = Field(
        default=None, description="Explicit templates directory (CLI or env)"
    )
    manifest_name: str = Field(default=DEFAULT_MANIFEST_NAME, min_length=1)
    verbose: int = Field(default=0, ge=0, le=2)
    kill_grace_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for a killed command to exit after a timeout",
    )
    show_progress: bool = Field(default=True)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def user_templates_dir(self) -> Path:
        """Per-user templates location (``$XDG_CONFIG_HOME/spawnpoint/templates``)."""
        base = os.environ.get("XDG_CONFIG_HOME")
        root = Path(base) if base else Path.home() / ".config"
        return root / "spawnpoint" / "templates"

    @property
    def bundled_templates_dir(self) -> Path:
        """Templates shipped next to the installed package."""
        return Path(__file__).resolve().parent / "templates"

    def candidate_templates_dirs(self) -> list[Path]:
        """Every location searched for templates, most specific first."""
        candidates: list[Path] = []
        if self.templates_dir is not None:
            candidates.append(self.templates_dir)
        env_path = os.environ.get(TEMPLATES_DIR_ENV)
        if env_path:
            candidates.append(Path(env_path))
        candidates.append(self.user_templates_dir)
        candidates.append(self.bundled_templates_dir)
        candidates.append(Path.cwd() / "templates")
        return candidates

    def resolve_templates_dir(self) -> Path:
        """Return the first existing templates directory.

        Raises:
            SpawnError: ``CONFIG`` when none of the candidates exists.
        """
        candidates = self.candidate_templates_dirs()
        for candidate in candidates:
            if candidate.is_dir():
                logger.debug("Using templates directory: %s", candidate)
                return candidate
            logger.debug("Templates directory candidate not found: %s", candidate)
        searched = ", ".join(str(c) for c in candidates)
        raise SpawnError.config(
            f"Could not find a templates directory. Searched: {searched}"
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            SPAWNPOINT_TEMPLATES_DIR, SPAWNPOINT_MANIFEST_NAME,
            SPAWNPOINT_VERBOSE, SPAWNPOINT_KILL_GRACE, SPAWNPOINT_NO_PROGRESS.
        """
        kwargs: dict[str, object] = {}
        if os.environ.get(TEMPLATES_DIR_ENV):
            kwargs["templates_dir"] = Path(os.environ[TEMPLATES_DIR_ENV])
        if os.environ.get("SPAWNPOINT_MANIFEST_NAME"):
            kwargs["manifest_name"] = os.environ["SPAWNPOINT_MANIFEST_NAME"]
        if os.environ.get("SPAWNPOINT_VERBOSE"):
            kwargs["verbose"] = min(int(os.environ["SPAWNPOINT_VERBOSE"]), 2)
        if os.environ.get("SPAWNPOINT_KILL_GRACE"):
            kwargs["kill_grace_seconds"] = float(os.environ["SPAWNPOINT_KILL_GRACE"])
        if os.environ.get("SPAWNPOINT_NO_PROGRESS"):
            kwargs["show_progress"] = False
        return cls(**kwargs)
