"""
LLM provider boundary.

The agent loop talks to an ``LLMProvider``: an ordered message list plus tool
schemas in, one assistant message out. ``LangChainChatProvider`` adapts any
LangChain chat model with tool binding (Groq by default) and maps SDK
failures onto the transient/terminal error taxonomy by HTTP status code.
"""

from typing import Any, Dict, List, Optional, Protocol
import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage

from chat_agent.domain.models.errors import (
    ConfigurationError, ProviderError, TerminalProviderError, TransientProviderError
)

logger = structlog.get_logger(__name__)

# Rate limited and payload too large
TRANSIENT_STATUS_CODES = {413, 429}


class LLMProvider(Protocol):
    async def complete(self, messages: List[BaseMessage], tools: List[Dict[str, Any]]) -> AIMessage:
        ...


def _status_code(exc: BaseException) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "response", None), "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def classify_provider_error(exc: BaseException) -> ProviderError:
    """Map an SDK exception onto TransientProviderError or TerminalProviderError"""

    if isinstance(exc, ProviderError):
        return exc

    status = _status_code(exc)
    message = str(exc) or type(exc).__name__
    if status in TRANSIENT_STATUS_CODES:
        return TransientProviderError(message, status_code=status)
    return TerminalProviderError(message, status_code=status)


class LangChainChatProvider:
    """Adapts a LangChain chat model to the LLMProvider contract"""

    def __init__(self, chat_model: BaseChatModel):
        self.chat_model = chat_model

    async def complete(self, messages: List[BaseMessage], tools: List[Dict[str, Any]]) -> AIMessage:
        model = self.chat_model.bind_tools(tools, tool_choice="auto") if tools else self.chat_model

        try:
            response = await model.ainvoke(messages)
        except Exception as e:
            error = classify_provider_error(e)
            logger.warning(
                "LLM provider call failed",
                status_code=error.status_code,
                transient=isinstance(error, TransientProviderError),
                error=str(error)
            )
            raise error from e

        if not isinstance(response, AIMessage):
            response = AIMessage(content=getattr(response, "content", str(response)))
        return response


def build_groq_chat_model(
    api_key: Optional[str],
    model: str,
    temperature: float = 0,
    max_tokens: Optional[int] = None,
) -> BaseChatModel:
    """Build the Groq chat model; retries are handled by the agent loop"""

    if not api_key:
        raise ConfigurationError("GROQ_API_KEY is required to build the chat model")

    from langchain_groq import ChatGroq

    logger.info("Building Groq chat model", model=model, max_tokens=max_tokens)
    return ChatGroq(
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        api_key=api_key,
        max_retries=0,
    )
