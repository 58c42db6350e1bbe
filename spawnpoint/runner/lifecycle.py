"""Phased command execution.

Drives ordered lists of steps through a :class:`CommandRunner`:

- **Hooks** -- ``preGenerate`` / ``postGenerate`` steps around generation
- **Validation** -- ``setup`` -> ``steps`` -> ``teardown`` against a
  scratch rendering of a template

Every phase shares one primitive, :meth:`LifecycleOrchestrator.run_phase`;
only the validation teardown has its own sweep-and-remember policy.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.markup import escape

from ..errors import SpawnError
from ..scaffolder.manifest import ValidationConfig, ValidationStep
from ..utils import console, print_phase_header, truncate
from .command import CommandRunner

logger = logging.getLogger(__name__)


@dataclass
class StepCounter:
    """Running ``[n/total]`` step numbering across the phases of one run."""

    total: int
    current: int = 0

    def advance(self) -> str:
        """Move to the next step and return its ``[n/total]`` label."""
        self.current += 1
        return f"[{self.current}/{self.total}]"


def resolve_working_dir(
    step: ValidationStep, default_dir: Path, override_base: Optional[Path] = None
) -> Path:
    """Directory a step runs in.

    A step's own ``working_dir`` is joined onto *override_base* (or
    *default_dir* when no override base is given); without one the step
    runs in *default_dir*.
    """
    if step.working_dir is None:
        return default_dir
    base = override_base if override_base is not None else default_dir
    return base / step.working_dir


class LifecycleOrchestrator:
    """Runs hook and validation phases, one step at a time."""

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or CommandRunner()

    # -- Shared primitive ------------------------------------------------------

    async def run_step(
        self,
        step: ValidationStep,
        working_dir: Path,
        base_vars: Mapping[str, str],
        label: str,
    ) -> SpawnError | None:
        """Run one step and return its failure, if any.

        ``ignore_errors`` is not applied here; callers decide what a
        failure means for their phase.
        """
        console.print(f"{label} Running step: '{escape(step.name)}'...")
        try:
            outcome = await self.runner.run(step, working_dir, base_vars)
        except SpawnError as exc:
            if not exc.is_step_failure:
                raise
            console.print(
                f"[red]Step '{escape(step.name)}' execution error: {escape(str(exc))}[/red]"
            )
            return exc

        error = outcome.to_error(step.name, step.check_stderr)
        if error is None:
            console.print(f"[green]Step '{escape(step.name)}' successful.[/green]")
            return None

        console.print(f"[red]{escape(str(error))}.[/red]")
        if outcome.stderr.strip():
            console.print(f"[dim]stderr: {escape(truncate(outcome.stderr))}[/dim]")
        if outcome.stdout.strip():
            console.print(f"[dim]stdout: {escape(truncate(outcome.stdout))}[/dim]")
        return error

    async def run_phase(
        self,
        phase_name: str,
        steps: Sequence[ValidationStep],
        default_dir: Path,
        base_vars: Mapping[str, str],
        *,
        override_base: Optional[Path] = None,
        counter: Optional[StepCounter] = None,
        error_label: Optional[str] = None,
    ) -> None:
        """Run *steps* in order, stopping at the first non-ignored failure.

        Args:
            phase_name: Display name of the phase.
            steps: Steps to run.
            default_dir: Directory for steps without a ``working_dir``.
            base_vars: Values for ``{{name}}`` command tokens.
            override_base: Base for steps' own ``working_dir`` (defaults to
                *default_dir*).
            counter: Shared step numbering; a phase-local one is used if
                omitted.
            error_label: Prefix for the step name in raised errors.

        Raises:
            SpawnError: The first failure of a step without ``ignore_errors``.
        """
        if not steps:
            return
        counter = counter or StepCounter(total=len(steps))

        print_phase_header(phase_name)
        for step in steps:
            label = counter.advance()
            run_dir = resolve_working_dir(step, default_dir, override_base)
            error = await self.run_step(step, run_dir, base_vars, label)
            if error is None:
                continue
            if step.ignore_errors:
                logger.warning(
                    "Ignoring failure in %s step '%s' (ignore_errors=true): %s",
                    phase_name,
                    step.name,
                    error,
                )
                continue
            name = f"{error_label}: {step.name}" if error_label else step.name
            raise error.with_step_name(name)
        logger.info("Finished %s phase", phase_name)

    # -- Generation hooks ------------------------------------------------------

    async def run_hooks(
        self,
        phase_name: str,
        steps: Sequence[ValidationStep],
        default_dir: Path,
        base_vars: Mapping[str, str],
    ) -> None:
        """Run generation hooks; step directories are relative to *default_dir*.

        Errors are labelled ``"<phase_name> Hook: <step name>"``.
        """
        await self.run_phase(
            phase_name,
            steps,
            default_dir,
            base_vars,
            error_label=f"{phase_name} Hook",
        )

    # -- Validation ------------------------------------------------------------

    async def run_validation(
        self,
        config: ValidationConfig,
        scratch_dir: Path,
        invocation_dir: Path,
    ) -> None:
        """Run setup, validation steps and teardown for a rendered template.

        Setup and teardown default to *invocation_dir*; validation steps
        default to *scratch_dir*.  Any step's own ``working_dir`` is relative
        to *scratch_dir*.

        A setup failure aborts immediately.  A steps failure still lets
        teardown run (only ``always_run`` steps).  Teardown attempts every
        eligible step and remembers the first non-ignored failure.

        Raises:
            SpawnError: The setup failure, else the steps failure, else the
                first teardown failure.
        """
        base_vars = config.test_variables
        counter = StepCounter(total=config.total_steps)

        await self.run_phase(
            "Setup",
            config.setup,
            invocation_dir,
            base_vars,
            override_base=scratch_dir,
            counter=counter,
        )

        steps_error: SpawnError | None = None
        try:
            await self.run_phase(
                "Validation",
                config.steps,
                scratch_dir,
                base_vars,
                override_base=scratch_dir,
                counter=counter,
            )
        except SpawnError as exc:
            if not exc.is_step_failure:
                raise
            steps_error = exc

        teardown_error = await self._run_teardown(
            config.teardown,
            invocation_dir,
            scratch_dir,
            base_vars,
            counter,
            steps_failed=steps_error is not None,
        )

        if steps_error is not None:
            if teardown_error is not None:
                logger.warning("Teardown also failed: %s", teardown_error)
            raise steps_error
        if teardown_error is not None:
            raise teardown_error

    async def _run_teardown(
        self,
        steps: Sequence[ValidationStep],
        invocation_dir: Path,
        scratch_dir: Path,
        base_vars: Mapping[str, str],
        counter: StepCounter,
        *,
        steps_failed: bool,
    ) -> SpawnError | None:
        if not steps:
            return None

        print_phase_header("Teardown")
        first_error: SpawnError | None = None
        for step in steps:
            label = counter.advance()
            if steps_failed and not step.always_run:
                console.print(
                    f"[dim]{label} Skipping teardown step '{escape(step.name)}' "
                    "(always_run=false and validation failed).[/dim]"
                )
                continue

            run_dir = resolve_working_dir(step, invocation_dir, scratch_dir)
            error = await self.run_step(step, run_dir, base_vars, label)
            if error is None:
                continue
            if step.ignore_errors:
                logger.warning(
                    "Ignoring failure in teardown step '%s' (ignore_errors=true): %s",
                    step.name,
                    error,
                )
                continue
            if first_error is None:
                first_error = error.with_step_name(f"Teardown: {step.name}")
            else:
                logger.warning("Additional teardown failure: %s", error)
        logger.info("Finished Teardown phase")
        return first_error
