"""CLI entrypoint for chatops-agent."""

import logging
import sys
from pathlib import Path

import rich_click as click

from chatops_agent import __version__
from chatops_agent.config import ConfigError
from chatops_agent.controllers import (
    AgentCliController,
    ExecCommand,
    PlanCommand,
    RunBotCommand,
)
from chatops_agent.executor.runner import DEFAULT_TIMEOUT_SECONDS
from chatops_agent.llm.gateway import LlmGatewayError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = AgentCliController()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(version=__version__, prog_name="chatops-agent")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Root logging level.",
)
def chatops_agent(log_level: str) -> None:
    """Run shell commands planned by a language model from chat messages."""

    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)


@chatops_agent.command("run")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="TOML config file. If omitted, CHATOPS_* environment variables are used.",
)
@click.option(
    "--max-workers",
    type=click.IntRange(min=1, max=64),
    default=4,
    show_default=True,
    help="How many messages may be processed at the same time.",
)
def run(config_path: Path | None, max_workers: int) -> None:
    """Poll the chat and execute planned commands until interrupted."""

    try:
        CONTROLLER.run_bot(RunBotCommand(config_path=config_path, max_workers=max_workers))
    except ConfigError as error:
        raise click.ClickException(str(error)) from error


@chatops_agent.command("plan")
@click.argument("message")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="TOML config file. If omitted, CHATOPS_* environment variables are used.",
)
def plan(message: str, config_path: Path | None) -> None:
    """Ask the model for a plan and print it without executing anything."""

    try:
        lines = CONTROLLER.plan(PlanCommand(config_path=config_path, message=message))
    except (ConfigError, LlmGatewayError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@chatops_agent.command("extract")
def extract() -> None:
    """Read model output from stdin and print the extracted command list as JSON."""

    _emit_lines(CONTROLLER.extract(sys.stdin.read()))


@chatops_agent.command("exec")
@click.argument("commands", nargs=-1, required=True)
@click.option(
    "--working-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Working directory for the commands. Defaults to the current directory.",
)
@click.option(
    "--timeout-seconds",
    type=click.IntRange(min=1),
    default=DEFAULT_TIMEOUT_SECONDS,
    show_default=True,
    help="Per-command timeout.",
)
def exec_commands(
    commands: tuple[str, ...],
    working_dir: Path | None,
    timeout_seconds: int,
) -> None:
    """Run shell commands in order, stopping at the first failure."""

    result = CONTROLLER.exec_commands(
        ExecCommand(
            commands=commands,
            working_dir=working_dir,
            timeout_seconds=timeout_seconds,
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Execution stopped at a failed command.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    chatops_agent()
