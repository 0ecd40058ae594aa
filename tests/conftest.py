"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from chatops_agent.bot.transport import ChatTransportError
from chatops_agent.executor.models import CommandResult, TaskCommand
from chatops_agent.llm.gateway import LlmGatewayError


class RecordingTransport:
    """Collects outbound messages; optionally fails every send."""

    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[tuple[int, str]] = []
        self.fail = fail
        self.attempts = 0

    def send_message(self, chat_id: int, text: str) -> None:
        self.attempts += 1
        if self.fail:
            raise ChatTransportError("network down")
        self.sent.append((chat_id, text))


class StubGateway:
    """Returns a canned reply or raises a canned gateway error."""

    def __init__(self, reply: str = "[]", *, error: str | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[str] = []

    def chat(self, user_message: str) -> str:
        self.calls.append(user_message)
        if self.error is not None:
            raise LlmGatewayError(self.error)
        return self.reply


class StubExecutor:
    """Marks every command as succeeded without running anything."""

    def __init__(self) -> None:
        self.calls: list[list[TaskCommand]] = []

    def run_all(self, commands: Sequence[TaskCommand]) -> list[CommandResult]:
        self.calls.append(list(commands))
        return [
            CommandResult.from_exit_code(
                command=task.command,
                exit_code=0,
                stdout=f"ran {task.command}\n",
                stderr="",
            )
            for task in commands
        ]


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def stub_executor() -> StubExecutor:
    return StubExecutor()


@pytest.fixture()
def failing_transport() -> RecordingTransport:
    return RecordingTransport(fail=True)


@pytest.fixture()
def make_gateway() -> type[StubGateway]:
    return StubGateway
