"""spawnpoint runner -- executes hook and validation command steps.

Key classes:
    CommandRunner          - Runs one step through the shell with an optional timeout
    ExecutionOutcome       - Exit code, captured output and duration of a step
    LifecycleOrchestrator  - Hook phases and the setup/steps/teardown lifecycle
    StepCounter            - ``[n/total]`` numbering shared across phases
"""

from .command import CommandRunner, ExecutionOutcome, substitute_command
from .lifecycle import LifecycleOrchestrator, StepCounter

__all__ = [
    "CommandRunner",
    "ExecutionOutcome",
    "substitute_command",
    "LifecycleOrchestrator",
    "StepCounter",
]
