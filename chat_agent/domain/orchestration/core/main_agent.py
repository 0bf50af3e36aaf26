from typing import TypedDict, List, Dict, Any, Optional, Literal, Callable, Awaitable
import asyncio
import re
import time
import uuid
import structlog
from langgraph.graph import StateGraph, END
from langgraph.errors import GraphRecursionError
from langchain_core.messages import AIMessage, BaseMessage, ToolMessage
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_exponential

from chat_agent.domain.context.context_manager import ContextManager
from chat_agent.domain.context.memory.response_cache import ResponseCache
from chat_agent.domain.context.memory.session_store import SessionStore
from chat_agent.domain.formatting.plain_text import has_code, strip_markdown
from chat_agent.domain.models.conversation import (
    CacheCategory, ExhaustionReason, Message, Role, ToolCall
)
from chat_agent.domain.models.errors import ProviderError, TransientProviderError
from chat_agent.domain.tool.tool_executor import ToolExecutor
from chat_agent.infrastructure.llm.chat_provider import LLMProvider, classify_provider_error
from chat_agent.infrastructure.observability.logging import agent_logger, metrics

logger = structlog.get_logger(__name__)


HIGH_DEMAND_REPLY = (
    "I'm experiencing high demand right now and couldn't complete your request. "
    "Please try again in a moment."
)
TECHNICAL_DIFFICULTIES_REPLY = (
    "I'm experiencing technical difficulties right now. Please try again in a moment."
)
EMPTY_REPLY = "I couldn't generate a response. Please try rephrasing your question."

_WEATHER_TERMS = re.compile(r"\b(weather|forecast|temperature|rain(ing)?|snow(ing)?|humidity|sunny|windy)\b", re.I)
_NEWS_TERMS = re.compile(r"\b(news|headlines?|breaking|latest|current events?|this week|today)\b", re.I)


def apology_for(reason: ExhaustionReason) -> str:
    """User-safe reply for a failed turn"""

    if reason == ExhaustionReason.RATE_LIMITED:
        return HIGH_DEMAND_REPLY
    return TECHNICAL_DIFFICULTIES_REPLY


def categorize_reply(user_message: str, raw_reply: str) -> CacheCategory:
    """Pick the cache category, which decides how long the reply stays cached"""

    if has_code(raw_reply):
        return CacheCategory.CODE
    if _WEATHER_TERMS.search(user_message):
        return CacheCategory.WEATHER
    if _NEWS_TERMS.search(user_message):
        return CacheCategory.NEWS
    return CacheCategory.GENERAL


def _text(content: Any) -> str:
    """Flatten LangChain message content (str or content blocks) to text"""

    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return "" if content is None else str(content)


class TurnState(TypedDict):
    """State for one user turn through the agent loop"""
    session_id: str
    user_message: str
    history: List[Message]
    fingerprint: str
    messages: List[BaseMessage]
    model_calls: int
    response: Optional[AIMessage]
    tool_calls: List[ToolCall]
    reply: Optional[str]
    category: CacheCategory
    cacheable: bool
    cache_hit: bool
    failure: Optional[ExhaustionReason]


class AgentOrchestrator:
    """Drives LLM and tool calls for one turn until a final reply is produced

    The session store and response cache are injected; the orchestrator holds
    no conversation state of its own.
    """

    def __init__(
        self,
        sessions: SessionStore,
        cache: ResponseCache,
        tool_executor: ToolExecutor,
        provider: Optional[LLMProvider],
        context_manager: Optional[ContextManager] = None,
        max_retries: int = 3,
        max_tool_iterations: int = 8,
        request_timeout: Optional[float] = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.sessions = sessions
        self.cache = cache
        self.tool_executor = tool_executor
        self.provider = provider
        self.context_manager = context_manager or ContextManager()
        self.max_retries = max_retries
        self.max_tool_iterations = max_tool_iterations
        self.request_timeout = request_timeout
        self._sleep = sleep
        self.workflow = self._create_workflow()

    def _create_workflow(self):
        """Create the turn workflow graph"""

        workflow = StateGraph(TurnState)

        workflow.add_node("check_cache", self.check_cache_node)
        workflow.add_node("compose", self.compose_node)
        workflow.add_node("model_call", self.model_call_node)
        workflow.add_node("tool_dispatch", self.tool_dispatch_node)
        workflow.add_node("finalize", self.finalize_node)
        workflow.add_node("exhausted", self.exhausted_node)

        workflow.set_entry_point("check_cache")

        workflow.add_conditional_edges(
            "check_cache",
            self.route_after_cache,
            {
                "hit": END,
                "miss": "compose",
                "exhausted": "exhausted"
            }
        )
        workflow.add_edge("compose", "model_call")

        workflow.add_conditional_edges(
            "model_call",
            self.route_after_model,
            {
                "tools": "tool_dispatch",
                "final": "finalize",
                "exhausted": "exhausted"
            }
        )
        workflow.add_edge("tool_dispatch", "model_call")

        workflow.add_edge("finalize", END)
        workflow.add_edge("exhausted", END)

        return workflow.compile()

    async def check_cache_node(self, state: TurnState) -> Dict[str, Any]:
        """Short-circuit on missing configuration or a live cached reply"""

        if self.provider is None:
            logger.error("LLM provider is not configured; answering with apology")
            return {"failure": ExhaustionReason.CONFIGURATION}

        cached = await self.cache.get(state["fingerprint"])
        if cached is not None:
            metrics.increment_counter("turns.cache_hit")
            return {"reply": cached, "cache_hit": True}

        return {}

    async def compose_node(self, state: TurnState) -> Dict[str, Any]:
        """Build the outbound message list"""

        messages = self.context_manager.build_messages(state["history"], state["user_message"])
        return {"messages": messages}

    async def model_call_node(self, state: TurnState) -> Dict[str, Any]:
        """Call the provider, retrying transient failures with backoff"""

        if state["model_calls"] >= self.max_tool_iterations:
            logger.warning("Tool loop iteration limit reached", model_calls=state["model_calls"])
            return {"failure": ExhaustionReason.ITERATION_LIMIT}

        model_calls = state["model_calls"] + 1
        try:
            response = await self._call_with_retry(state["messages"])
        except TransientProviderError as e:
            reason = ExhaustionReason.RATE_LIMITED if e.is_rate_limit else ExhaustionReason.PAYLOAD_TOO_LARGE
            logger.error("Provider retries exhausted", status_code=e.status_code, attempts=self.max_retries)
            return {"model_calls": model_calls, "failure": reason}
        except ProviderError as e:
            logger.error("Provider call failed", status_code=e.status_code, error=str(e))
            return {"model_calls": model_calls, "failure": ExhaustionReason.PROVIDER_ERROR}

        return {"model_calls": model_calls, "response": response}

    async def tool_dispatch_node(self, state: TurnState) -> Dict[str, Any]:
        """Execute every requested tool call and feed the results back"""

        session_id = state["session_id"]
        response = state["response"]
        content = _text(response.content)

        calls = [
            ToolCall(
                id=call.get("id") or f"call_{uuid.uuid4().hex[:12]}",
                function_name=call["name"],
                arguments=call.get("args") or {}
            )
            for call in response.tool_calls
        ]

        # Calls whose arguments failed to parse are answered with an error result
        rejected: Dict[str, str] = {}
        for bad in response.invalid_tool_calls:
            call = ToolCall(
                id=bad.get("id") or f"call_{uuid.uuid4().hex[:12]}",
                function_name=bad.get("name") or "unknown"
            )
            calls.append(call)
            rejected[call.id] = self.tool_executor.reject_malformed(
                call.function_name, bad.get("error"), call_id=call.id
            )

        messages = list(state["messages"])
        messages.append(AIMessage(
            content=content,
            tool_calls=[
                {"name": call.function_name, "args": call.arguments, "id": call.id}
                for call in calls
            ]
        ))
        await self.sessions.append(session_id, Role.ASSISTANT, content, tool_calls=calls)

        executed = []
        for call in calls:
            if call.id in rejected:
                result = rejected[call.id]
            else:
                result = await self.tool_executor.execute(call.function_name, call.arguments, call_id=call.id)
            executed.append(call.model_copy(update={"result": result}))

            messages.append(ToolMessage(content=result, tool_call_id=call.id, name=call.function_name))
            await self.sessions.append(
                session_id,
                Role.TOOL,
                result,
                tool_call_id=call.id,
                tool_name=call.function_name
            )

        return {
            "messages": messages,
            "tool_calls": state["tool_calls"] + executed,
            "response": None
        }

    async def finalize_node(self, state: TurnState) -> Dict[str, Any]:
        """Reduce the final model text to plain text and pick its cache category"""

        raw = _text(state["response"].content)
        reply = strip_markdown(raw)
        if not reply:
            return {"reply": EMPTY_REPLY, "cacheable": False}

        return {
            "reply": reply,
            "category": categorize_reply(state["user_message"], raw),
            "cacheable": True
        }

    async def exhausted_node(self, state: TurnState) -> Dict[str, Any]:
        """Fixed apology for a failed turn"""

        reason = state.get("failure") or ExhaustionReason.INTERNAL_ERROR
        metrics.increment_counter(f"turns.exhausted.{reason.value}")
        return {"reply": apology_for(reason), "failure": reason, "cacheable": False}

    def route_after_cache(self, state: TurnState) -> Literal["hit", "miss", "exhausted"]:
        if state.get("failure"):
            route = "exhausted"
        elif state.get("cache_hit"):
            route = "hit"
        else:
            route = "miss"

        agent_logger.log_workflow_transition(state["session_id"], "check_cache", route)
        return route

    def route_after_model(self, state: TurnState) -> Literal["tools", "final", "exhausted"]:
        if state.get("failure"):
            route = "exhausted"
        elif state.get("response") is not None and (
            state["response"].tool_calls or state["response"].invalid_tool_calls
        ):
            route = "tools"
        else:
            route = "final"

        agent_logger.log_workflow_transition(
            state["session_id"], "model_call", route, condition=f"model_calls={state['model_calls']}"
        )
        return route

    async def _call_with_retry(self, messages: List[BaseMessage]) -> AIMessage:
        """Provider call with exponential backoff of 2^attempt seconds on transient errors"""

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=2, exp_base=2),
            retry=retry_if_exception_type(TransientProviderError),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        response = None
        async for attempt in retrying:
            with attempt:
                response = await self._complete(messages)
        return response

    async def _complete(self, messages: List[BaseMessage]) -> AIMessage:
        started = time.perf_counter()
        try:
            response = await self.provider.complete(messages, self.tool_executor.tool_schemas())
        except ProviderError:
            metrics.increment_counter("provider.failures")
            raise
        except Exception as e:
            metrics.increment_counter("provider.failures")
            raise classify_provider_error(e) from e
        finally:
            metrics.record_latency("provider.complete", (time.perf_counter() - started) * 1000)
        return response

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Transient provider failure, backing off",
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            status_code=getattr(error, "status_code", None)
        )

    async def generate(self, session_id: str, user_message: str) -> str:
        """Produce the reply for one user turn; never raises"""

        user_message = user_message or ""

        with structlog.contextvars.bound_contextvars(session_id=session_id):
            async with self.sessions.exclusive(session_id):
                history = await self.sessions.get_context(session_id)
                await self.sessions.append(session_id, Role.USER, user_message)

                state: TurnState = {
                    "session_id": session_id,
                    "user_message": user_message,
                    "history": history,
                    "fingerprint": self.cache.fingerprint(session_id, history, user_message),
                    "messages": [],
                    "model_calls": 0,
                    "response": None,
                    "tool_calls": [],
                    "reply": None,
                    "category": CacheCategory.GENERAL,
                    "cacheable": False,
                    "cache_hit": False,
                    "failure": None
                }

                logger.info("Processing message", preview=user_message[:80], history_length=len(history))
                final = await self._run_workflow(state)
                return await self._commit(final)

    async def _run_workflow(self, state: TurnState) -> Dict[str, Any]:
        config = {"recursion_limit": 2 * self.max_tool_iterations + 10}

        try:
            return await asyncio.wait_for(self.workflow.ainvoke(state, config=config), timeout=self.request_timeout)
        except asyncio.TimeoutError:
            logger.error("Agent turn timed out", timeout=self.request_timeout)
            reason = ExhaustionReason.TIMEOUT
        except GraphRecursionError:
            logger.error("Agent graph exceeded its recursion limit")
            reason = ExhaustionReason.ITERATION_LIMIT
        except Exception:
            logger.exception("Agent loop failed unexpectedly")
            reason = ExhaustionReason.INTERNAL_ERROR

        metrics.increment_counter(f"turns.exhausted.{reason.value}")
        return {**state, "reply": apology_for(reason), "failure": reason, "cacheable": False}

    async def _commit(self, final: Dict[str, Any]) -> str:
        """Record the reply in the session, and in the cache when it is a fresh answer"""

        session_id = final["session_id"]
        reply = final.get("reply") or TECHNICAL_DIFFICULTIES_REPLY

        await self.sessions.append(session_id, Role.ASSISTANT, reply)

        if final.get("cacheable") and not final.get("cache_hit") and final.get("failure") is None:
            await self.cache.set(
                final["fingerprint"],
                reply,
                category=final.get("category", CacheCategory.GENERAL),
                message=final["user_message"]
            )

        logger.info(
            "Turn complete",
            cache_hit=bool(final.get("cache_hit")),
            failure=final["failure"].value if final.get("failure") else None,
            fingerprint=final.get("fingerprint"),
            model_calls=final.get("model_calls", 0),
            tool_calls=len(final.get("tool_calls") or [])
        )
        return reply
