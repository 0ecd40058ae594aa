from __future__ import annotations

import json
from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from chatops_agent.llm.gateway import LlmGateway, LlmGatewayError
from chatops_agent.main import chatops_agent

pytestmark = [
    allure.epic("Command Line"),
    allure.feature("CLI Commands"),
]


def _llm_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHATOPS_LLM_BASE_URL", "https://llm.example/v1")
    monkeypatch.setenv("CHATOPS_LLM_API_KEY", "sk-test")
    monkeypatch.setenv("CHATOPS_LLM_MODEL", "m")


def test_extract_prints_commands_as_json() -> None:
    model_output = 'Here:\n```json\n[{"command": "uptime", "description": "Load"}]\n```'

    result = CliRunner().invoke(
        chatops_agent,
        ["--log-level", "ERROR", "extract"],
        input=model_output,
    )

    assert result.exit_code == 0
    assert json.loads(result.output) == [{"command": "uptime", "description": "Load"}]


def test_extract_prints_empty_list_for_prose() -> None:
    result = CliRunner().invoke(
        chatops_agent,
        ["--log-level", "ERROR", "extract"],
        input="nothing to do",
    )

    assert result.exit_code == 0
    assert json.loads(result.output) == []


def test_exec_runs_commands_and_reports(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        chatops_agent,
        ["exec", "--working-dir", str(tmp_path), "echo hi", "true"],
    )

    assert result.exit_code == 0
    assert "✅ echo hi" in result.output
    assert "Executed 2/2 commands; succeeded=2 skipped=0" in result.output


def test_exec_stops_at_failure_and_exits_non_zero(tmp_path: Path) -> None:
    marker = tmp_path / "later"

    result = CliRunner().invoke(
        chatops_agent,
        ["exec", "--working-dir", str(tmp_path), "exit 2", f"touch {marker}"],
    )

    assert result.exit_code == 1
    assert "❌ exit 2" in result.output
    assert "Executed 1/2 commands; succeeded=0 skipped=1" in result.output
    assert not marker.exists()


def test_plan_prints_model_plan_without_executing(monkeypatch: pytest.MonkeyPatch) -> None:
    _llm_env(monkeypatch)
    monkeypatch.setattr(
        LlmGateway,
        "chat",
        lambda self, message: '[{"command": "df -h", "description": "Disk"}]',
    )

    result = CliRunner().invoke(chatops_agent, ["plan", "disk?"])

    assert result.exit_code == 0
    assert "📝 Execution plan:" in result.output
    assert "1. Disk → `df -h`" in result.output


def test_plan_reports_gateway_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    _llm_env(monkeypatch)

    def _fail(self, message: str) -> str:
        raise LlmGatewayError("LLM API error 503: overloaded")

    monkeypatch.setattr(LlmGateway, "chat", _fail)

    result = CliRunner().invoke(chatops_agent, ["plan", "disk?"])

    assert result.exit_code == 1
    assert "overloaded" in result.output


def test_run_rejects_invalid_config(tmp_path: Path) -> None:
    path = tmp_path / "agent.toml"
    path.write_text('[telegram]\nbot_token = ""\n[llm]\nbase_url = "nope"\n', "utf-8")

    result = CliRunner().invoke(chatops_agent, ["run", "--config", str(path)])

    assert result.exit_code == 1
    assert "Invalid LLM base URL" in result.output


def test_plan_reports_wrongly_typed_config_value(tmp_path: Path) -> None:
    path = tmp_path / "agent.toml"
    path.write_text('[llm]\nrequest_timeout_seconds = "abc"\n', "utf-8")

    result = CliRunner().invoke(chatops_agent, ["plan", "hi", "--config", str(path)])

    assert result.exit_code == 1
    assert "request_timeout_seconds" in result.output
