"""Best-effort recovery of a command list from free-form model output."""

from __future__ import annotations

import json
import logging

from chatops_agent.executor.models import TaskCommand

logger = logging.getLogger(__name__)

_FENCE = "```"


class CommandListDecodeError(ValueError):
    """Model output does not hold a JSON array of command objects."""


def extract_commands(raw_text: str) -> list[TaskCommand]:
    """Parse the model reply into an ordered command list.

    Never raises: malformed output is logged and yields an empty list, which
    callers treat the same as "nothing to execute".
    """

    candidate = extract_json_candidate(raw_text)
    try:
        return _decode_command_list(candidate)
    except CommandListDecodeError as error:
        logger.warning(
            "Could not parse command list from model output: %s; text=%r",
            error,
            raw_text,
        )
        return []


def extract_json_candidate(raw_text: str) -> str:
    """Pick the substring most likely to hold the JSON array.

    Order matters: fenced code block, then first `[` to last `]`, then the
    whole text.
    """

    fenced = _fenced_block(raw_text)
    if fenced is not None:
        return fenced

    start = raw_text.find("[")
    end = raw_text.rfind("]")
    if start != -1 and end != -1:
        return raw_text[start : end + 1]

    return raw_text.strip()


def _fenced_block(text: str) -> str | None:
    start = text.find(_FENCE)
    if start == -1:
        return None
    after_fence = text[start + len(_FENCE) :]
    newline = after_fence.find("\n")
    body = after_fence[newline + 1 :] if newline != -1 else after_fence
    end = body.find(_FENCE)
    if end == -1:
        return None
    return body[:end].strip()


def _decode_command_list(candidate: str) -> list[TaskCommand]:
    try:
        payload = json.loads(candidate)
    except (json.JSONDecodeError, RecursionError) as error:
        raise CommandListDecodeError(str(error)) from error

    if not isinstance(payload, list):
        raise CommandListDecodeError(f"expected a JSON array, got {type(payload).__name__}")

    commands: list[TaskCommand] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise CommandListDecodeError(f"item {index} is not an object")
        command = item.get("command")
        if not isinstance(command, str):
            raise CommandListDecodeError(f"item {index} has no string 'command'")
        description = item.get("description", "")
        if not isinstance(description, str):
            raise CommandListDecodeError(f"item {index} has a non-string 'description'")
        commands.append(TaskCommand(command=command, description=description))
    return commands
