import asyncio

import pytest
from pydantic import ValidationError

from project_agent.api.service import ProjectAgentService
from project_agent.config.settings import Settings
from project_agent.prompts import load_system_prompt


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("AGENT_CONFIG_FILE", str(tmp_path / "missing.yaml"))
    s = Settings()
    assert s.default_model == "project-assistant"
    assert s.max_tool_rounds == 8
    assert s.asset_search_threshold == 0.6
    assert s.document_search_threshold == 0.7
    assert s.search_limit_default == 5


def test_yaml_source_and_env_priority(monkeypatch, tmp_path):
    cfg = tmp_path / "agent.yaml"
    cfg.write_text("app_name: Poster Studio\nmax_tool_rounds: 3\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AGENT_CONFIG_FILE", str(cfg))
    monkeypatch.setenv("MAX_TOOL_ROUNDS", "4")
    s = Settings()
    assert s.app_name == "Poster Studio"
    assert s.max_tool_rounds == 4


def test_validation(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AGENT_CONFIG_FILE", str(tmp_path / "missing.yaml"))
    with pytest.raises(ValidationError):
        Settings(max_tool_rounds=21)
    assert Settings(openai_api_key="   ").openai_api_key is None


def test_short_api_key_is_dropped_not_fatal(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AGENT_CONFIG_FILE", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-short")
    with pytest.warns(UserWarning):
        s = Settings()
    assert s.openai_api_key is None

    svc = ProjectAgentService(s)
    asyncio.run(svc.initialize())
    assert svc.initialized is False
    assert asyncio.run(svc.chat("Hi there!")).suggestions


def test_system_prompt_mentions_app():
    text = load_system_prompt("project-assistant", app_name="Poster Studio")
    assert "Poster Studio" in text
    assert "{app_name}" not in text
