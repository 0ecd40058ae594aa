"""Chat-facing side of the agent: transport, message pipeline and polling."""

from chatops_agent.bot.handler import HandleOutcome, MessageHandler, format_plan, format_report
from chatops_agent.bot.poller import BotPoller
from chatops_agent.bot.transport import (
    ChatTransport,
    ChatTransportError,
    IncomingMessage,
    TelegramTransport,
    parse_update,
)

__all__ = [
    "BotPoller",
    "ChatTransport",
    "ChatTransportError",
    "HandleOutcome",
    "IncomingMessage",
    "MessageHandler",
    "TelegramTransport",
    "format_plan",
    "format_report",
    "parse_update",
]
