import pytest

from project_agent.providers import create_provider
from project_agent.providers.openai_client import OpenAIResponsesClient
from project_agent.providers.registry import (
    OPENAI_CONFIG,
    PROVIDER_REGISTRY,
    ModelConfig,
    ProviderConfig,
    get_provider_config,
)


class SettingsStub:
    default_provider = "openai"
    openai_api_key = "sk-test-123456"


def test_create_provider_default():
    provider = create_provider(cfg=SettingsStub())
    assert isinstance(provider, OpenAIResponsesClient)
    assert provider.name == "openai"


def test_create_provider_unknown():
    with pytest.raises(KeyError):
        create_provider("kimi", cfg=SettingsStub())


def test_registry_resolves_logical_names():
    assert get_provider_config("OpenAI") is OPENAI_CONFIG
    assert OPENAI_CONFIG.resolve("project-assistant").provider_model == "gpt-4o-mini"
    assert OPENAI_CONFIG.resolve("gpt-4o").provider_model == "gpt-4o"
    with pytest.raises(KeyError):
        get_provider_config("glm")


def test_create_provider_uses_registry_config(monkeypatch):
    custom = ProviderConfig(
        name="openai",
        base_url="https://proxy.example.test/v1",
        models={"project-assistant": ModelConfig("project-assistant", "gpt-4o", 512, 0.2)},
    )
    monkeypatch.setitem(PROVIDER_REGISTRY, "openai", custom)
    provider = create_provider("OPENAI", cfg=SettingsStub())
    assert provider._provider_config is custom
