import pytest

from chat_agent.infrastructure.config.settings import AgentSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("GROQ_API_KEY", "CHAT_AGENT_GROQ_API_KEY", "TAVILY_API_KEY", "CHAT_AGENT_TAVILY_API_KEY"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = AgentSettings(_env_file=None)

    assert settings.max_history == 20
    assert settings.session_idle_timeout_seconds == 1800
    assert settings.cache_max_entries == 1000
    assert settings.cache_default_ttl_seconds == 3600
    assert settings.max_retries == 3
    assert settings.context_window_messages == 10
    assert settings.llm_model == "openai/gpt-oss-120b"
    assert settings.groq_api_key is None
    assert not settings.llm_configured


def test_prefixed_environment_overrides(monkeypatch):
    monkeypatch.setenv("CHAT_AGENT_MAX_HISTORY", "40")
    monkeypatch.setenv("CHAT_AGENT_REQUEST_TIMEOUT_SECONDS", "5")

    settings = AgentSettings(_env_file=None)

    assert settings.max_history == 40
    assert settings.request_timeout_seconds == 5


def test_conventional_provider_keys(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    monkeypatch.setenv("TAVILY_API_KEY", "tvly-test")

    settings = AgentSettings(_env_file=None)

    assert settings.groq_api_key == "gsk-test"
    assert settings.tavily_api_key == "tvly-test"
    assert settings.llm_configured


def test_blank_key_is_not_configured():
    assert not AgentSettings(_env_file=None, groq_api_key="   ").llm_configured
