"""
Composition root for the agent.

Builds the session store, response cache, tool executor and orchestrator from
settings, owns their lifecycle (background sweeps) and exposes the operations the
web layer calls.
"""

from typing import Dict, Any, Optional
import structlog

from chat_agent.domain.context.context_manager import ContextManager
from chat_agent.domain.context.memory.response_cache import ResponseCache
from chat_agent.domain.context.memory.session_store import SessionStore
from chat_agent.domain.orchestration.core.main_agent import AgentOrchestrator
from chat_agent.domain.tool.tool_executor import RegistryToolExecutor, ToolExecutor
from chat_agent.domain.tool.tool_registry import ToolRegistry
from chat_agent.domain.tool.web_search import SearchProvider, WebSearchTool
from chat_agent.infrastructure.config.settings import AgentSettings
from chat_agent.infrastructure.llm.chat_provider import LLMProvider, LangChainChatProvider, build_groq_chat_model
from chat_agent.infrastructure.observability.logging import agent_logger

logger = structlog.get_logger(__name__)


class _UnconfiguredSearch:
    """Search provider used when no Tavily key is configured"""

    async def search(self, query: str):
        raise RuntimeError("web search is not configured")


class AgentService:
    """Public entry points: generate plus cache and conversation administration"""

    def __init__(
        self,
        orchestrator: AgentOrchestrator,
        sessions: SessionStore,
        cache: ResponseCache,
    ):
        self.orchestrator = orchestrator
        self.sessions = sessions
        self.cache = cache
        self._started = False

    @classmethod
    def from_settings(
        cls,
        settings: Optional[AgentSettings] = None,
        provider: Optional[LLMProvider] = None,
        search_provider: Optional[SearchProvider] = None,
        tool_executor: Optional[ToolExecutor] = None,
    ) -> "AgentService":
        """Wire every component from settings; explicit collaborators win"""

        settings = settings or AgentSettings()

        sessions = SessionStore(
            max_history=settings.max_history,
            idle_timeout=settings.session_idle_timeout_seconds,
            sweep_interval=settings.session_sweep_interval_seconds,
        )
        cache = ResponseCache(
            max_entries=settings.cache_max_entries,
            default_ttl=settings.cache_default_ttl_seconds,
            sweep_interval=settings.cache_sweep_interval_seconds,
            context_turns=settings.cache_context_turns,
        )

        if tool_executor is None:
            if search_provider is None:
                search_provider = _build_search_provider(settings)
            registry = ToolRegistry()
            registry.register_tool(WebSearchTool(search_provider, timeout=settings.tool_timeout_seconds))
            tool_executor = RegistryToolExecutor(registry)

        if provider is None and settings.llm_configured:
            provider = LangChainChatProvider(build_groq_chat_model(
                api_key=settings.groq_api_key,
                model=settings.llm_model,
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
            ))
        if provider is None:
            logger.error("GROQ_API_KEY not found; every turn will answer with an apology")

        orchestrator = AgentOrchestrator(
            sessions=sessions,
            cache=cache,
            tool_executor=tool_executor,
            provider=provider,
            context_manager=ContextManager(context_window=settings.context_window_messages),
            max_retries=settings.max_retries,
            max_tool_iterations=settings.max_tool_iterations,
            request_timeout=settings.request_timeout_seconds,
        )
        return cls(orchestrator=orchestrator, sessions=sessions, cache=cache)

    async def start(self) -> None:
        """Start background sweeps"""

        if self._started:
            return
        self.sessions.start_sweeper()
        self.cache.start_sweeper()
        self._started = True
        logger.info("Agent service started")

    async def shutdown(self) -> None:
        """Stop background sweeps"""

        await self.sessions.stop_sweeper()
        await self.cache.stop_sweeper()
        self._started = False
        logger.info("Agent service shutdown")

    async def generate(self, session_id: str, user_message: str) -> str:
        return await self.orchestrator.generate(session_id, user_message)

    # Cache administration

    async def get_cache_stats(self) -> Dict[str, Any]:
        stats = await self.cache.stats()
        return stats.model_dump()

    async def get_cache_info(self) -> Dict[str, Any]:
        return await self.cache.info()

    async def clear_cache(self) -> None:
        await self.cache.clear()
        agent_logger.log_context_update("*", "response_cache", "clear")

    async def delete_cache_entry(self, raw_message: str) -> bool:
        """Delete cached replies to this message text, whatever conversation produced them"""

        removed = await self.cache.delete_by_message(raw_message)
        agent_logger.log_context_update("*", "response_cache", "delete", {"removed": removed})
        return removed > 0

    # Conversation administration

    async def get_conversation_stats(self) -> Dict[str, Any]:
        stats = await self.sessions.stats()
        return stats.model_dump()

    async def clear_conversation(self, session_id: str) -> bool:
        existed = await self.sessions.clear(session_id)
        agent_logger.log_context_update(session_id, "session", "clear", {"existed": existed})
        return existed

    async def clear_all_conversations(self) -> None:
        await self.sessions.clear_all()
        agent_logger.log_context_update("*", "session", "clear_all")


def _build_search_provider(settings: AgentSettings) -> SearchProvider:
    if not settings.tavily_api_key:
        logger.warning("TAVILY_API_KEY not found; webSearch will report failures to the model")
        return _UnconfiguredSearch()

    from chat_agent.infrastructure.search.tavily_search import TavilySearchProvider

    return TavilySearchProvider(api_key=settings.tavily_api_key, max_results=settings.search_max_results)
