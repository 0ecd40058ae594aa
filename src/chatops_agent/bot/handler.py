"""Per-message pipeline: authorize, plan via the model, execute, report."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from typing import Protocol

from chatops_agent.bot.transport import ChatTransport, ChatTransportError, IncomingMessage
from chatops_agent.executor.extractor import extract_commands
from chatops_agent.executor.models import ChatAuthorizationPolicy, CommandResult, TaskCommand
from chatops_agent.executor.task_executor import summarize
from chatops_agent.llm.gateway import LlmGatewayError

logger = logging.getLogger(__name__)

STDOUT_PREVIEW_CHARS = 500
STDERR_PREVIEW_CHARS = 300
TRUNCATION_MARKER = "...(truncated)"

ANALYZING_TEXT = "🔄 Analyzing task..."
NOTHING_TO_RUN_TEXT = "ℹ️ This message does not require running any commands"


class HandleOutcome(str, Enum):
    """Terminal state reached for one inbound message."""

    UNAUTHORIZED = "unauthorized"
    NO_TEXT = "no_text"
    GATEWAY_ERROR = "gateway_error"
    NO_COMMANDS = "no_commands"
    EXECUTED = "executed"


class Gateway(Protocol):
    def chat(self, user_message: str) -> str:
        """Return raw model reply text for the message."""


class Executor(Protocol):
    def run_all(self, commands: Sequence[TaskCommand]) -> list[CommandResult]:
        """Run the plan with fail-stop semantics."""


class MessageHandler:
    """Run the message-to-execution pipeline for one inbound message at a time.

    Holds only read-only collaborators, so one instance can serve messages
    processed concurrently on different threads.
    """

    def __init__(
        self,
        *,
        transport: ChatTransport,
        gateway: Gateway,
        executor: Executor,
        policy: ChatAuthorizationPolicy,
        echo_result: bool = True,
    ) -> None:
        self._transport = transport
        self._gateway = gateway
        self._executor = executor
        self._policy = policy
        self._echo_result = echo_result

    def handle(self, message: IncomingMessage) -> HandleOutcome:
        chat_id = message.chat_id
        logger.info(
            "Received update chat_id=%s from=%s type=%s",
            chat_id,
            message.sender,
            message.chat_type,
        )

        if not self._policy.allows(chat_id):
            logger.info("Ignoring unauthorized chat_id=%s", chat_id)
            return HandleOutcome.UNAUTHORIZED

        if message.text is None:
            logger.info("Ignoring non-text message chat_id=%s", chat_id)
            return HandleOutcome.NO_TEXT

        text = message.text
        logger.info("Processing message chat_id=%s text=%r", chat_id, text)
        self._send_best_effort(chat_id, ANALYZING_TEXT)

        try:
            reply = self._gateway.chat(text)
        except LlmGatewayError as error:
            logger.error("LLM call failed: %s", error)
            self._send_best_effort(chat_id, f"❌ LLM request failed: {error}")
            return HandleOutcome.GATEWAY_ERROR

        commands = extract_commands(reply)
        if not commands:
            self._send_best_effort(chat_id, NOTHING_TO_RUN_TEXT)
            return HandleOutcome.NO_COMMANDS

        self._send_best_effort(chat_id, format_plan(commands))
        results = self._executor.run_all(commands)
        summary = summarize(commands, results)
        logger.info(
            "Plan finished chat_id=%s planned=%d attempted=%d succeeded=%d skipped=%d",
            chat_id,
            summary.planned,
            summary.attempted,
            summary.succeeded,
            summary.skipped,
        )

        if self._echo_result:
            self._send_best_effort(chat_id, format_report(commands, results))
        return HandleOutcome.EXECUTED

    def _send_best_effort(self, chat_id: int, text: str) -> None:
        try:
            self._transport.send_message(chat_id, text)
        except ChatTransportError as error:
            logger.warning("Failed to deliver reply to chat_id=%s: %s", chat_id, error)


def format_plan(commands: Sequence[TaskCommand]) -> str:
    lines = [
        f"{index}. {task.description} → `{task.command}`"
        for index, task in enumerate(commands, start=1)
    ]
    return "📝 Execution plan:\n" + "\n".join(lines)


def format_report(commands: Sequence[TaskCommand], results: Sequence[CommandResult]) -> str:
    """Render the execution report sent back to the chat.

    `results` is the attempted prefix of `commands`; each entry is paired with
    the command at the same index for its description.
    """

    parts = ["📋 Task execution report\n\n"]
    for index, result in enumerate(results):
        description = commands[index].description if index < len(commands) else "unknown"
        status = "✅" if result.success else "❌"
        parts.append(f"{status} {description}\n")
        parts.append(f"  Command: {result.command}\n")
        if result.stdout:
            parts.append(f"  Output:\n{truncate(result.stdout, STDOUT_PREVIEW_CHARS)}\n")
        if result.stderr:
            parts.append(f"  Error:\n{truncate(result.stderr, STDERR_PREVIEW_CHARS)}\n")
        parts.append("\n")
    return "".join(parts)


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}{TRUNCATION_MARKER}"
