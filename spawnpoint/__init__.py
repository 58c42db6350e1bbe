"""spawnpoint -- template-driven project scaffolding with validation lifecycles."""

from .errors import ErrorKind, SpawnError

__version__ = "0.1.0"

__all__ = ["ErrorKind", "SpawnError", "__version__"]
