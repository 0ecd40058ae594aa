from __future__ import annotations

from pathlib import Path

import allure

from chatops_agent.executor.models import CommandResult, TaskCommand
from chatops_agent.executor.runner import CommandRunner, CommandTimeoutError
from chatops_agent.executor.task_executor import TaskExecutor, summarize

pytestmark = [
    allure.epic("Execution"),
    allure.feature("Fail-stop Task Executor"),
]


class ScriptedRunner:
    def __init__(self, outcomes: dict[str, int | Exception]) -> None:
        self.outcomes = outcomes
        self.calls: list[str] = []

    def run(self, command: str) -> CommandResult:
        self.calls.append(command)
        outcome = self.outcomes[command]
        if isinstance(outcome, Exception):
            raise outcome
        return CommandResult.from_exit_code(
            command=command,
            exit_code=outcome,
            stdout="",
            stderr="",
        )


def test_empty_plan_never_calls_the_runner() -> None:
    runner = ScriptedRunner({})

    assert TaskExecutor(runner).run_all([]) == []
    assert runner.calls == []


def test_all_commands_run_in_order_when_they_succeed() -> None:
    runner = ScriptedRunner({"a": 0, "b": 0, "c": 0})
    commands = [TaskCommand("a"), TaskCommand("b"), TaskCommand("c")]

    results = TaskExecutor(runner).run_all(commands)

    assert runner.calls == ["a", "b", "c"]
    assert [result.success for result in results] == [True, True, True]


def test_stops_after_first_non_zero_exit() -> None:
    runner = ScriptedRunner({"a": 0, "b": 1, "c": 0})
    commands = [TaskCommand("a"), TaskCommand("b"), TaskCommand("c")]

    results = TaskExecutor(runner).run_all(commands)

    assert runner.calls == ["a", "b"]
    assert [result.command for result in results] == ["a", "b"]
    assert [result.success for result in results] == [True, False]
    assert results[1].exit_code == 1


def test_runner_error_becomes_failed_result_and_stops() -> None:
    error = CommandTimeoutError(command="b", timeout_seconds=5)
    runner = ScriptedRunner({"a": 0, "b": error, "c": 0})
    commands = [TaskCommand("a"), TaskCommand("b"), TaskCommand("c")]

    results = TaskExecutor(runner).run_all(commands)

    assert runner.calls == ["a", "b"]
    assert results[1] == CommandResult(
        command="b",
        success=False,
        exit_code=None,
        stdout="",
        stderr=str(error),
    )


def test_real_shell_plan_never_attempts_commands_after_failure(tmp_path: Path) -> None:
    marker = tmp_path / "c-ran"
    commands = [
        TaskCommand("true", "A"),
        TaskCommand("false", "B"),
        TaskCommand(f"touch {marker}", "C"),
    ]

    results = TaskExecutor(CommandRunner(working_dir=tmp_path, timeout_seconds=10)).run_all(
        commands,
    )

    assert [result.success for result in results] == [True, False]
    assert not marker.exists()


def test_real_timeout_is_recorded_without_exit_code(tmp_path: Path) -> None:
    commands = [TaskCommand("sleep 5", "slow"), TaskCommand("echo after", "next")]

    results = TaskExecutor(CommandRunner(working_dir=tmp_path, timeout_seconds=0.3)).run_all(
        commands,
    )

    assert len(results) == 1
    assert results[0].success is False
    assert results[0].exit_code is None
    assert "timed out" in results[0].stderr


def test_success_flag_tracks_exit_code() -> None:
    for exit_code, expected in ((0, True), (1, False), (127, False), (None, False)):
        result = CommandResult.from_exit_code(
            command="x",
            exit_code=exit_code,
            stdout="",
            stderr="",
        )
        assert result.success is expected


def test_summarize_counts_attempted_prefix() -> None:
    commands = [TaskCommand("a"), TaskCommand("b"), TaskCommand("c")]
    results = [
        CommandResult.from_exit_code(command="a", exit_code=0, stdout="", stderr=""),
        CommandResult.from_exit_code(command="b", exit_code=2, stdout="", stderr=""),
    ]

    summary = summarize(commands, results)

    assert summary.planned == 3
    assert summary.attempted == 2
    assert summary.succeeded == 1
    assert summary.skipped == 1
    assert summary.halted is True


def test_summarize_full_success_is_not_halted() -> None:
    commands = [TaskCommand("a"), TaskCommand("b")]
    results = [
        CommandResult.from_exit_code(command=name, exit_code=0, stdout="", stderr="")
        for name in ("a", "b")
    ]

    summary = summarize(commands, results)

    assert summary.attempted == summary.planned == summary.succeeded == 2
    assert summary.skipped == 0
    assert summary.halted is False
