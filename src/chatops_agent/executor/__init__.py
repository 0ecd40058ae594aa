"""Command planning and fail-stop execution."""

from chatops_agent.executor.extractor import extract_commands
from chatops_agent.executor.models import ChatAuthorizationPolicy, CommandResult, TaskCommand
from chatops_agent.executor.runner import (
    CommandRunError,
    CommandRunner,
    CommandSpawnError,
    CommandTimeoutError,
)
from chatops_agent.executor.task_executor import ExecutionSummary, TaskExecutor, summarize

__all__ = [
    "ChatAuthorizationPolicy",
    "CommandResult",
    "CommandRunError",
    "CommandRunner",
    "CommandSpawnError",
    "CommandTimeoutError",
    "ExecutionSummary",
    "TaskCommand",
    "TaskExecutor",
    "extract_commands",
    "summarize",
]
