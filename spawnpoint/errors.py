"""Error types shared by the rendering engine and the command lifecycle.

Every failure surfaced to a caller is a :class:`SpawnError` tagged with one
:class:`ErrorKind`.  The kind set is closed: code that needs to react to a
particular failure matches on ``error.kind`` rather than on a subclass.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    IO = "io"
    ENCODING = "encoding"
    SPAWN = "spawn"
    EXIT_STATUS = "exit_status"
    STDERR = "stderr"
    TIMEOUT = "timeout"
    SELECTION = "selection"
    MANIFEST = "manifest"
    CONFIG = "config"


# Kinds produced by a single command step (outcome or execution failures).
STEP_FAILURE_KINDS: frozenset[ErrorKind] = frozenset(
    {
        ErrorKind.SPAWN,
        ErrorKind.EXIT_STATUS,
        ErrorKind.STDERR,
        ErrorKind.TIMEOUT,
    }
)


class SpawnError(Exception):
    """Raised for every fatal condition in generation or validation.

    Attributes:
        kind: The failure category.
        step_name: Name of the command step involved, if any.
        path: Filesystem path involved, if any.
        exit_code: Exit status of a failed command, if any.
        stdout: Captured stdout of a failed command.
        stderr: Captured stderr of a failed command.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        step_name: str | None = None,
        path: str | Path | None = None,
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.kind = kind
        self.step_name = step_name
        self.path = Path(path) if path is not None else None
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)

    @property
    def is_step_failure(self) -> bool:
        """True when the error came out of running a command step."""
        return self.kind in STEP_FAILURE_KINDS

    def with_step_name(self, step_name: str) -> "SpawnError":
        """Return a copy of this error relabelled with *step_name*."""
        relabelled = SpawnError(
            self.kind,
            str(self),
            step_name=step_name,
            path=self.path,
            exit_code=self.exit_code,
            stdout=self.stdout,
            stderr=self.stderr,
        )
        relabelled.__cause__ = self.__cause__
        return relabelled

    # -- Constructors ------------------------------------------------------

    @classmethod
    def io(cls, action: str, path: str | Path, exc: OSError) -> "SpawnError":
        return cls(ErrorKind.IO, f"Failed to {action} '{path}': {exc}", path=path)

    @classmethod
    def encoding(cls, path: str | Path, exc: UnicodeDecodeError) -> "SpawnError":
        return cls(
            ErrorKind.ENCODING,
            f"File '{path}' is not valid UTF-8 text and is not declared binary: {exc}",
            path=path,
        )

    @classmethod
    def selection(cls, message: str) -> "SpawnError":
        return cls(ErrorKind.SELECTION, message)

    @classmethod
    def manifest(cls, path: str | Path, reason: str) -> "SpawnError":
        return cls(
            ErrorKind.MANIFEST,
            f"Could not load scaffold manifest '{path}': {reason}",
            path=path,
        )

    @classmethod
    def config(cls, message: str) -> "SpawnError":
        return cls(ErrorKind.CONFIG, message)
