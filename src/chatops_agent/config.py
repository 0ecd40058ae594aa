"""Runtime configuration for the chat agent, loaded once at start-up."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from chatops_agent.executor.models import ChatAuthorizationPolicy

DEFAULT_TELEGRAM_API_BASE_URL = "https://api.telegram.org"


class ConfigError(ValueError):
    """Configuration is missing, unreadable or invalid."""


@dataclass(frozen=True, slots=True)
class TelegramSettings:
    """Chat transport settings."""

    bot_token: str = ""
    allowed_chat_ids: tuple[int, ...] = ()
    api_base_url: str = DEFAULT_TELEGRAM_API_BASE_URL
    poll_timeout_seconds: int = 30


@dataclass(frozen=True, slots=True)
class LlmSettings:
    """OpenAI-compatible completions endpoint settings."""

    base_url: str = ""
    api_key: str = ""
    model: str = ""
    system_prompt: str | None = None
    max_tokens: int = 2048
    request_timeout_seconds: float = 60.0


@dataclass(frozen=True, slots=True)
class ExecutorSettings:
    """Command execution settings."""

    working_dir: Path | None = None
    timeout_seconds: int = 120
    echo_result: bool = True


@dataclass(frozen=True, slots=True)
class Settings:
    """Application settings grouped by concern."""

    telegram: TelegramSettings = field(default_factory=TelegramSettings)
    llm: LlmSettings = field(default_factory=LlmSettings)
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)

    @classmethod
    def from_toml(cls, path: Path) -> Settings:
        """Load settings from a TOML file with `[telegram]`, `[llm]`, `[executor]` tables."""

        try:
            raw = tomllib.loads(path.read_text("utf-8"))
        except OSError as error:
            raise ConfigError(f"Cannot read config file {path}: {error}") from error
        except tomllib.TOMLDecodeError as error:
            raise ConfigError(f"Cannot parse config file {path}: {error}") from error

        telegram = _table(raw, "telegram")
        llm = _table(raw, "llm")
        executor = _table(raw, "executor")
        working_dir = _optional_str(executor, "working_dir")
        return cls(
            telegram=TelegramSettings(
                bot_token=_str(telegram, "bot_token", ""),
                allowed_chat_ids=_chat_ids(telegram.get("allowed_chat_ids", [])),
                api_base_url=_str(telegram, "api_base_url", DEFAULT_TELEGRAM_API_BASE_URL),
                poll_timeout_seconds=_int(telegram, "poll_timeout_seconds", 30),
            ),
            llm=LlmSettings(
                base_url=_str(llm, "base_url", ""),
                api_key=_str(llm, "api_key", ""),
                model=_str(llm, "model", ""),
                system_prompt=_optional_str(llm, "system_prompt"),
                max_tokens=_int(llm, "max_tokens", 2048),
                request_timeout_seconds=_float(llm, "request_timeout_seconds", 60.0),
            ),
            executor=ExecutorSettings(
                working_dir=Path(working_dir) if working_dir else None,
                timeout_seconds=_int(
                    executor,
                    "timeout_seconds",
                    _int(executor, "timeout_secs", 120),
                ),
                echo_result=_bool(executor, "echo_result", default=True),
            ),
        )

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from `CHATOPS_*` environment variables."""

        working_dir = os.getenv("CHATOPS_EXECUTOR_WORKING_DIR", "").strip()
        return cls(
            telegram=TelegramSettings(
                bot_token=os.getenv("CHATOPS_TELEGRAM_BOT_TOKEN", "").strip(),
                allowed_chat_ids=_chat_ids_from_csv(
                    os.getenv("CHATOPS_TELEGRAM_ALLOWED_CHAT_IDS", ""),
                ),
                api_base_url=os.getenv(
                    "CHATOPS_TELEGRAM_API_BASE_URL",
                    DEFAULT_TELEGRAM_API_BASE_URL,
                ),
                poll_timeout_seconds=_env_int("CHATOPS_TELEGRAM_POLL_TIMEOUT_SECONDS", 30),
            ),
            llm=LlmSettings(
                base_url=os.getenv("CHATOPS_LLM_BASE_URL", "").strip(),
                api_key=os.getenv("CHATOPS_LLM_API_KEY", "").strip(),
                model=os.getenv("CHATOPS_LLM_MODEL", "").strip(),
                system_prompt=os.getenv("CHATOPS_LLM_SYSTEM_PROMPT") or None,
                max_tokens=_env_int("CHATOPS_LLM_MAX_TOKENS", 2048),
                request_timeout_seconds=_env_float("CHATOPS_LLM_REQUEST_TIMEOUT_SECONDS", 60.0),
            ),
            executor=ExecutorSettings(
                working_dir=Path(working_dir) if working_dir else None,
                timeout_seconds=_env_int("CHATOPS_EXECUTOR_TIMEOUT_SECONDS", 120),
                echo_result=_env_bool("CHATOPS_EXECUTOR_ECHO_RESULT", default=True),
            ),
        )

    def validate(self) -> None:
        """Raise `ConfigError` if settings cannot drive the agent."""

        self.validate_for_llm()
        if not self.telegram.bot_token:
            raise ConfigError("Telegram bot token is required (telegram.bot_token).")
        if self.telegram.poll_timeout_seconds < 0:
            raise ConfigError("telegram.poll_timeout_seconds must be >= 0.")
        if self.executor.timeout_seconds <= 0:
            raise ConfigError("executor.timeout_seconds must be > 0.")

    def validate_for_llm(self) -> None:
        """Raise `ConfigError` if the model endpoint settings are unusable."""

        parsed = urlparse(self.llm.base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ConfigError(
                "Invalid LLM base URL: "
                f"{self.llm.base_url!r}. Expected an absolute http:// or https:// URL.",
            )
        if not self.llm.api_key:
            raise ConfigError("LLM API key is required (llm.api_key).")
        if not self.llm.model:
            raise ConfigError("LLM model name is required (llm.model).")
        if self.llm.max_tokens <= 0:
            raise ConfigError("llm.max_tokens must be > 0.")

    def authorization_policy(self) -> ChatAuthorizationPolicy:
        return ChatAuthorizationPolicy(allowed_chat_ids=frozenset(self.telegram.allowed_chat_ids))


def _table(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"Config section [{name}] must be a table.")
    return value


def _int(table: dict[str, Any], key: str, default: int) -> int:
    value = table.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Config value {key!r} must be an integer, got {value!r}.")
    return value


def _float(table: dict[str, Any], key: str, default: float) -> float:
    value = table.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigError(f"Config value {key!r} must be a number, got {value!r}.")
    return float(value)


def _str(table: dict[str, Any], key: str, default: str) -> str:
    value = table.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"Config value {key!r} must be a string, got {value!r}.")
    return value


def _optional_str(table: dict[str, Any], key: str) -> str | None:
    return _str(table, key, "") or None


def _bool(table: dict[str, Any], key: str, *, default: bool) -> bool:
    value = table.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"Config value {key!r} must be a boolean, got {value!r}.")
    return value


def _chat_ids(values: object) -> tuple[int, ...]:
    if not isinstance(values, list):
        raise ConfigError("telegram.allowed_chat_ids must be a list of integers.")
    chat_ids: list[int] = []
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"Invalid chat id in telegram.allowed_chat_ids: {value!r}")
        chat_ids.append(value)
    return tuple(chat_ids)


def _chat_ids_from_csv(raw: str) -> tuple[int, ...]:
    chat_ids: list[int] = []
    for part in raw.split(","):
        token = part.strip()
        if not token:
            continue
        try:
            chat_ids.append(int(token))
        except ValueError as error:
            raise ConfigError(
                f"Invalid CHATOPS_TELEGRAM_ALLOWED_CHAT_IDS entry: {token!r}",
            ) from error
    return tuple(chat_ids)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ConfigError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ConfigError(f"Invalid number value for {name}: {value!r}") from error


def _env_bool(name: str, *, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"Invalid boolean value for {name}: {value!r}")
