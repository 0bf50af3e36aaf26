from datetime import datetime, timezone

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from chat_agent.domain.context.context_manager import ContextManager
from chat_agent.domain.models.conversation import Message, Role, ToolCall


def _fixed_now():
    return datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def _tool_exchange(call_id: str = "call_1"):
    return [
        Message(role=Role.USER, content="weather in Paris?"),
        Message(
            role=Role.ASSISTANT,
            content="",
            tool_calls=[ToolCall(id=call_id, function_name="webSearch", arguments={"query": "paris weather"})]
        ),
        Message(role=Role.TOOL, content="Sunny", tool_call_id=call_id, tool_name="webSearch"),
        Message(role=Role.ASSISTANT, content="It's sunny."),
    ]


def test_system_message_carries_current_time():
    manager = ContextManager(now=_fixed_now)

    message = manager.system_message()

    assert isinstance(message, SystemMessage)
    assert "Wed, 01 May 2024 12:30:00 GMT" in message.content
    assert "webSearch" in message.content


def test_build_messages_orders_system_history_user():
    manager = ContextManager(now=_fixed_now)
    history = [
        Message(role=Role.USER, content="hi"),
        Message(role=Role.ASSISTANT, content="hello"),
    ]

    messages = manager.build_messages(history, "how are you?")

    assert [type(m) for m in messages] == [SystemMessage, HumanMessage, AIMessage, HumanMessage]
    assert messages[-1].content == "how are you?"


def test_tool_exchange_is_replayed_with_its_result():
    replayed = ContextManager().replay_history(_tool_exchange())

    assert [type(m) for m in replayed] == [HumanMessage, AIMessage, ToolMessage, AIMessage]
    assert replayed[1].tool_calls[0]["id"] == "call_1"
    assert replayed[1].tool_calls[0]["args"] == {"query": "paris weather"}
    assert replayed[2].tool_call_id == "call_1"


def test_window_keeps_only_trailing_messages():
    history = [Message(role=Role.USER, content=str(i)) for i in range(15)]

    replayed = ContextManager(context_window=10).replay_history(history)

    assert [m.content for m in replayed] == [str(i) for i in range(5, 15)]


def test_tool_result_cut_from_its_call_is_dropped():
    # window starts at the tool result, so its call is outside
    exchange = _tool_exchange()

    replayed = ContextManager(context_window=2).replay_history(exchange)

    assert [type(m) for m in replayed] == [AIMessage]
    assert replayed[0].content == "It's sunny."


def test_unanswered_tool_call_is_dropped():
    history = [
        Message(role=Role.USER, content="search this"),
        Message(
            role=Role.ASSISTANT,
            content="",
            tool_calls=[ToolCall(id="lost", function_name="webSearch", arguments={"query": "x"})]
        ),
        Message(role=Role.ASSISTANT, content="Sorry, something went wrong."),
    ]

    replayed = ContextManager().replay_history(history)

    assert [type(m) for m in replayed] == [HumanMessage, AIMessage]
    assert not replayed[1].tool_calls


def test_zero_window_sends_no_history():
    assert ContextManager(context_window=0).replay_history(_tool_exchange()) == []
