import pytest
from langchain_core.messages import AIMessage, HumanMessage

from chat_agent.domain.models.errors import (
    ConfigurationError, TerminalProviderError, TransientProviderError
)
from chat_agent.infrastructure.llm.chat_provider import (
    LangChainChatProvider, build_groq_chat_model, classify_provider_error
)


class _Response:
    def __init__(self, status_code):
        self.status_code = status_code


class StatusError(Exception):
    def __init__(self, message, status_code=None, response_status=None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if response_status is not None:
            self.response = _Response(response_status)


class FakeChatModel:
    def __init__(self, result):
        self.result = result
        self.bound = None
        self.received = None

    def bind_tools(self, tools, tool_choice=None):
        self.bound = (tools, tool_choice)
        return self

    async def ainvoke(self, messages):
        self.received = messages
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.mark.parametrize("error,expected_type,status", [
    (StatusError("slow down", status_code=429), TransientProviderError, 429),
    (StatusError("too big", response_status=413), TransientProviderError, 413),
    (StatusError("server", status_code=500), TerminalProviderError, 500),
    (StatusError("bad key", status_code=401), TerminalProviderError, 401),
    (RuntimeError("connection reset"), TerminalProviderError, None),
])
def test_classify_provider_error(error, expected_type, status):
    classified = classify_provider_error(error)

    assert type(classified) is expected_type
    assert classified.status_code == status


def test_rate_limit_flag():
    assert classify_provider_error(StatusError("x", status_code=429)).is_rate_limit
    assert not classify_provider_error(StatusError("x", status_code=413)).is_rate_limit


def test_already_classified_error_passes_through():
    error = TransientProviderError("x", status_code=429)

    assert classify_provider_error(error) is error


@pytest.mark.asyncio
async def test_provider_binds_tools_and_returns_message():
    model = FakeChatModel(AIMessage(content="hi"))
    provider = LangChainChatProvider(model)
    tools = [{"type": "function", "function": {"name": "webSearch"}}]

    response = await provider.complete([HumanMessage(content="hello")], tools)

    assert response.content == "hi"
    assert model.bound == (tools, "auto")
    assert model.received[0].content == "hello"


@pytest.mark.asyncio
async def test_provider_without_tools_skips_binding():
    model = FakeChatModel(AIMessage(content="hi"))

    await LangChainChatProvider(model).complete([HumanMessage(content="hello")], [])

    assert model.bound is None


@pytest.mark.asyncio
async def test_provider_maps_sdk_errors():
    provider = LangChainChatProvider(FakeChatModel(StatusError("slow down", status_code=429)))

    with pytest.raises(TransientProviderError) as exc_info:
        await provider.complete([HumanMessage(content="hello")], [])

    assert exc_info.value.status_code == 429


def test_groq_model_requires_key():
    with pytest.raises(ConfigurationError):
        build_groq_chat_model(api_key=None, model="openai/gpt-oss-120b")

    with pytest.raises(ConfigurationError):
        build_groq_chat_model(api_key="", model="openai/gpt-oss-120b")
