"""Shell command execution for lifecycle steps.

Runs one :class:`~spawnpoint.scaffolder.manifest.ValidationStep` through the
platform shell, captures its output and reports an
:class:`ExecutionOutcome`.  Classifying an outcome as a failure (and
honouring ``ignore_errors``) is left to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import signal
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ..errors import ErrorKind, SpawnError
from ..scaffolder.manifest import ValidationStep

logger = logging.getLogger(__name__)

_COMMAND_TOKEN = re.compile(r"\{\{([^{}]+)\}\}")


def substitute_command(command: str, base_vars: Mapping[str, str]) -> str:
    """Replace ``{{name}}`` tokens with base values; unknown tokens are kept."""

    def _replace(match: re.Match[str]) -> str:
        return base_vars.get(match.group(1), match.group(0))

    return _COMMAND_TOKEN.sub(_replace, command)


@dataclass
class ExecutionOutcome:
    """Result of a command that ran to completion."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def failure_kind(self, check_stderr: bool = False) -> ErrorKind | None:
        """``EXIT_STATUS`` or ``STDERR`` when the outcome counts as failed."""
        if self.exit_code != 0:
            return ErrorKind.EXIT_STATUS
        if check_stderr and self.stderr:
            return ErrorKind.STDERR
        return None

    def failed(self, check_stderr: bool = False) -> bool:
        return self.failure_kind(check_stderr) is not None

    def to_error(self, step_name: str, check_stderr: bool = False) -> SpawnError | None:
        """Build the error describing this outcome, or ``None`` if it passed."""
        kind = self.failure_kind(check_stderr)
        if kind is None:
            return None
        if kind is ErrorKind.EXIT_STATUS:
            message = f"Step '{step_name}' failed with exit code {self.exit_code}"
        else:
            message = f"Step '{step_name}' wrote to stderr"
        return SpawnError(
            kind,
            message,
            step_name=step_name,
            exit_code=self.exit_code,
            stdout=self.stdout,
            stderr=self.stderr,
        )


class CommandRunner:
    """Runs lifecycle steps as shell commands.

    Each step runs in its own process group (on POSIX) so that a timeout
    can terminate the whole command tree, not just the shell.
    """

    def __init__(self, kill_grace_seconds: float = 5.0) -> None:
        """
        Args:
            kill_grace_seconds: How long to wait for a killed process to be
                reaped before giving up on it.
        """
        self.kill_grace_seconds = kill_grace_seconds

    async def run(
        self,
        step: ValidationStep,
        working_dir: str | Path,
        base_vars: Mapping[str, str],
    ) -> ExecutionOutcome:
        """Execute *step* in *working_dir* and return its outcome.

        The timeout is a wall-clock deadline covering process start-up and
        output collection.  A command whose own run time equals
        ``step.timeout_secs`` (``sleep 5`` with a 5 second limit) finishes a
        few milliseconds past the deadline and is reported as timed out;
        leave headroom when choosing a limit.

        Args:
            step: The step to run.
            working_dir: Directory the shell starts in.
            base_vars: Values for ``{{name}}`` tokens in the command.

        Returns:
            The outcome, whatever the exit code.

        Raises:
            SpawnError: ``SPAWN`` if the process cannot be started,
                ``TIMEOUT`` if it outlives ``step.timeout_secs``.
        """
        command = substitute_command(step.command, base_vars)
        cwd = Path(working_dir)
        env = {**os.environ, **step.env}
        logger.info("Executing step '%s': `%s` in %s", step.name, command, cwd)

        start_time = time.monotonic()
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                cwd=cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=os.name == "posix",
            )
        except OSError as exc:
            raise SpawnError(
                ErrorKind.SPAWN,
                f"Failed to start step '{step.name}' in '{cwd}': {exc}",
                step_name=step.name,
                path=cwd,
            ) from exc

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=step.timeout_secs
            )
        except asyncio.TimeoutError:
            elapsed = time.monotonic() - start_time
            logger.warning(
                "Step '%s' timed out after %.1fs. Killing...", step.name, elapsed
            )
            await self._kill(process, step.name)
            raise SpawnError(
                ErrorKind.TIMEOUT,
                f"Step '{step.name}' timed out after {step.timeout_secs:g} seconds",
                step_name=step.name,
            ) from None

        outcome = ExecutionOutcome(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
            duration_seconds=time.monotonic() - start_time,
        )
        logger.debug(
            "Step '%s' exited with %d after %.2fs",
            step.name,
            outcome.exit_code,
            outcome.duration_seconds,
        )
        return outcome

    async def _kill(self, process: asyncio.subprocess.Process, step_name: str) -> None:
        """Kill the process (group) and wait briefly for it to be reaped."""
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            logger.debug("Process for step '%s' already exited", step_name)
        except OSError as exc:
            logger.warning("Failed to kill process for step '%s': %s", step_name, exc)

        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Process for step '%s' did not exit within %.1fs of being killed",
                step_name,
                self.kill_grace_seconds,
            )
