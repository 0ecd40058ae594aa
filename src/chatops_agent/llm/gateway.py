"""Client for an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from chatops_agent.config import LlmSettings

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """\
You are an automation agent. Users send you messages through a chat channel;
work out what they want done and return the shell commands to run.

You have full control of a server and may run any shell command.

Reply with a JSON array. Each element has:
- "command": the shell command to run (string)
- "description": a short explanation of what the command does (string)

Reply with the JSON array only, no other text. If the message does not require
running any command, reply with an empty array [].

Example:
[
  {"command": "df -h", "description": "Check disk space"},
  {"command": "free -m", "description": "Check memory usage"}
]"""


class LlmGatewayError(RuntimeError):
    """The model endpoint could not produce a reply."""


class LlmGateway:
    """Send one user message plus the system prompt and return the reply text."""

    def __init__(
        self,
        settings: LlmSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = httpx.Client(
            timeout=httpx.Timeout(settings.request_timeout_seconds, connect=10.0),
            headers={"Authorization": f"Bearer {settings.api_key}"},
            transport=transport,
        )

    @property
    def system_prompt(self) -> str:
        return self._settings.system_prompt or DEFAULT_SYSTEM_PROMPT

    @property
    def completions_url(self) -> str:
        return f"{self._settings.base_url.rstrip('/')}/chat/completions"

    def chat(self, user_message: str) -> str:
        """Return the first choice's message content.

        Raises `LlmGatewayError` on transport failures, non-2xx statuses and
        non-JSON bodies. A well-formed reply without text content yields "".
        """

        body = {
            "model": self._settings.model,
            "max_tokens": self._settings.max_tokens,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": user_message},
            ],
        }
        logger.info("Calling LLM model=%s", self._settings.model)
        logger.debug("LLM request url=%s body=%s", self.completions_url, body)

        try:
            response = self._client.post(self.completions_url, json=body)
        except httpx.HTTPError as error:
            raise LlmGatewayError(f"LLM API request failed: {error}") from error

        if not response.is_success:
            raise LlmGatewayError(f"LLM API error {response.status_code}: {response.text}")

        try:
            payload = response.json()
        except ValueError as error:
            raise LlmGatewayError(f"LLM response is not valid JSON: {error}") from error
        logger.debug("LLM response: %s", payload)
        return _first_choice_content(payload)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> LlmGateway:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def _first_choice_content(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""
