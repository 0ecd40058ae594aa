"""Controllers for agent CLI commands."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from chatops_agent.bot.handler import MessageHandler, format_plan, format_report
from chatops_agent.bot.poller import BotPoller
from chatops_agent.bot.transport import TelegramTransport
from chatops_agent.config import Settings
from chatops_agent.executor.extractor import extract_commands
from chatops_agent.executor.models import TaskCommand
from chatops_agent.executor.runner import CommandRunner
from chatops_agent.executor.task_executor import TaskExecutor, summarize
from chatops_agent.llm.gateway import LlmGateway

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunBotCommand:
    """CLI input for the long-running bot."""

    config_path: Path | None
    max_workers: int


@dataclass(slots=True)
class PlanCommand:
    """CLI input for a dry-run plan."""

    config_path: Path | None
    message: str


@dataclass(slots=True)
class ExecCommand:
    """CLI input for local execution of explicit commands."""

    commands: tuple[str, ...]
    working_dir: Path | None
    timeout_seconds: int


@dataclass(slots=True)
class ExecResult:
    """Rendered report plus overall status."""

    lines: list[str]
    success: bool


class AgentCliController:
    """Builds the object graph from settings and runs CLI operations."""

    def run_bot(self, command: RunBotCommand) -> None:
        settings = load_settings(command.config_path)
        settings.validate()
        logger.info(
            "Starting bot token=%s... allowed_chat_ids=%s",
            settings.telegram.bot_token[:10],
            list(settings.telegram.allowed_chat_ids),
        )

        with (
            TelegramTransport(
                settings.telegram.bot_token,
                api_base_url=settings.telegram.api_base_url,
                poll_timeout_seconds=settings.telegram.poll_timeout_seconds,
            ) as transport,
            LlmGateway(settings.llm) as gateway,
        ):
            handler = MessageHandler(
                transport=transport,
                gateway=gateway,
                executor=TaskExecutor(
                    CommandRunner(
                        working_dir=settings.executor.working_dir,
                        timeout_seconds=settings.executor.timeout_seconds,
                    ),
                ),
                policy=settings.authorization_policy(),
                echo_result=settings.executor.echo_result,
            )
            BotPoller(
                source=transport,
                handler=handler,
                max_workers=command.max_workers,
            ).run_forever()

    def plan(self, command: PlanCommand) -> list[str]:
        settings = load_settings(command.config_path)
        settings.validate_for_llm()
        with LlmGateway(settings.llm) as gateway:
            reply = gateway.chat(command.message)

        commands = extract_commands(reply)
        if not commands:
            return ["No commands to execute."]
        return format_plan(commands).splitlines()

    def extract(self, raw_text: str) -> list[str]:
        commands = extract_commands(raw_text)
        return [
            json.dumps(
                [task.to_payload() for task in commands],
                ensure_ascii=False,
                indent=2,
            ),
        ]

    def exec_commands(self, command: ExecCommand) -> ExecResult:
        tasks = [TaskCommand(command=line, description=line) for line in command.commands]
        executor = TaskExecutor(
            CommandRunner(
                working_dir=command.working_dir,
                timeout_seconds=command.timeout_seconds,
            ),
        )
        results = executor.run_all(tasks)
        summary = summarize(tasks, results)
        lines = format_report(tasks, results).rstrip("\n").splitlines()
        lines.append(
            f"Executed {summary.attempted}/{summary.planned} commands; "
            f"succeeded={summary.succeeded} skipped={summary.skipped}",
        )
        return ExecResult(lines=lines, success=not summary.halted)


def load_settings(config_path: Path | None) -> Settings:
    if config_path is not None:
        return Settings.from_toml(config_path)
    return Settings.from_env()
