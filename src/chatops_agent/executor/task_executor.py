"""Sequential fail-stop execution of a planned command list."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from chatops_agent.executor.models import CommandResult, TaskCommand
from chatops_agent.executor.runner import CommandRunError

logger = logging.getLogger(__name__)


class Runner(Protocol):
    """Anything able to run one shell command line."""

    def run(self, command: str) -> CommandResult:
        """Run a command and return its outcome, raising `CommandRunError` on no status."""


@dataclass(slots=True)
class ExecutionSummary:
    """Counters for one executed plan."""

    planned: int
    attempted: int
    succeeded: int
    skipped: int
    halted: bool


class TaskExecutor:
    """Drive a runner over a command list, stopping at the first failure."""

    def __init__(self, runner: Runner) -> None:
        self.runner = runner

    def run_all(self, commands: Sequence[TaskCommand]) -> list[CommandResult]:
        """Run commands one at a time; return results for the attempted prefix."""

        results: list[CommandResult] = []
        for task in commands:
            logger.info("Executing task: %s (%s)", task.description, task.command)
            try:
                result = self.runner.run(task.command)
            except CommandRunError as error:
                logger.error("Command raised before producing a status: %s", error)
                results.append(CommandResult.failed(command=task.command, error=str(error)))
                break

            results.append(result)
            if not result.success:
                logger.info(
                    "Command failed, skipping the remaining %d",
                    len(commands) - len(results),
                )
                break
        return results


def summarize(
    commands: Sequence[TaskCommand],
    results: Sequence[CommandResult],
) -> ExecutionSummary:
    """Count planned, attempted, succeeded and skipped commands for one fail-stop run."""

    succeeded = sum(1 for result in results if result.success)
    return ExecutionSummary(
        planned=len(commands),
        attempted=len(results),
        succeeded=succeeded,
        skipped=len(commands) - len(results),
        halted=succeeded < len(results),
    )
