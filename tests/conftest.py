import pytest

from chat_agent.domain.context.memory.response_cache import ResponseCache
from chat_agent.domain.context.memory.session_store import SessionStore
from chat_agent.domain.orchestration.core.main_agent import AgentOrchestrator
from chat_agent.domain.tool.tool_executor import RegistryToolExecutor
from chat_agent.domain.tool.tool_registry import ToolRegistry
from chat_agent.domain.tool.web_search import WebSearchTool

from tests.fakes import FakeClock, FakeSearch, SleepRecorder


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def search():
    return FakeSearch(results=["Sunny, 22C"])


@pytest.fixture
def make_agent(clock, sleep_recorder, search):
    """Build an orchestrator around a provider with fake time and search"""

    def _make(provider, **overrides):
        sessions = overrides.pop("sessions", None) or SessionStore(clock=clock)
        cache = overrides.pop("cache", None) or ResponseCache(clock=clock)
        registry = ToolRegistry()
        registry.register_tool(WebSearchTool(overrides.pop("search", search)))

        return AgentOrchestrator(
            sessions=sessions,
            cache=cache,
            tool_executor=RegistryToolExecutor(registry),
            provider=provider,
            sleep=sleep_recorder,
            **overrides
        )

    return _make
