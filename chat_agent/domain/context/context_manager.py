from typing import List, Sequence, Set, Callable
from datetime import datetime, timezone
import structlog
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from chat_agent.domain.models.conversation import Message, Role

logger = structlog.get_logger(__name__)


SYSTEM_PROMPT = """You are an advanced AI assistant designed to provide helpful, accurate, and engaging responses.

CORE BEHAVIOR:
- Provide clear, concise, and well-structured answers
- Use a friendly and professional tone
- Admit when you don't know something rather than guessing
- Ask clarifying questions when needed for better assistance

RESPONSE GUIDELINES:
- Keep responses focused and relevant to the user's question
- Write plain text; the chat window does not render markdown
- Include examples or analogies when they help explain complex concepts
- Avoid unnecessary repetition or verbose explanations
- NEVER use prefixes like "This is a reply to your message:" or similar phrases
- Respond directly and naturally as if in a normal conversation

CURRENT CONTEXT:
- Current date and time: {now}
- You have access to real-time web search through the webSearch tool; use it for current events, news, weather and anything that may have changed recently"""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContextManager:
    """Assembles the outbound message list for a model call"""

    def __init__(self, context_window: int = 10, now: Callable[[], datetime] = _utc_now):
        self.context_window = context_window
        self._now = now

    def system_message(self) -> SystemMessage:
        stamp = self._now().strftime("%a, %d %b %Y %H:%M:%S GMT")
        return SystemMessage(content=SYSTEM_PROMPT.format(now=stamp))

    def build_messages(self, history: Sequence[Message], user_message: str) -> List[BaseMessage]:
        """System instruction, the trailing prior turns, then the new user message"""

        messages: List[BaseMessage] = [self.system_message()]
        messages.extend(self.replay_history(history))
        messages.append(HumanMessage(content=user_message))

        logger.debug(
            "Built model context",
            prior_turns=len(messages) - 2,
            history_length=len(history)
        )
        return messages

    def replay_history(self, history: Sequence[Message]) -> List[BaseMessage]:
        """Convert the trailing window to provider messages

        Tool calls are only replayed together with their results; a window edge
        or an interrupted turn can leave either half orphaned, and orphans are
        dropped.
        """

        if self.context_window <= 0:
            return []
        window = list(history)[-self.context_window:]

        answered: Set[str] = {m.tool_call_id for m in window if m.role == Role.TOOL and m.tool_call_id}
        requested: Set[str] = set()
        replayed: List[BaseMessage] = []

        for message in window:
            if message.role == Role.USER:
                replayed.append(HumanMessage(content=message.content))

            elif message.role == Role.ASSISTANT:
                calls = [call for call in message.tool_calls if call.id in answered]
                if calls:
                    replayed.append(AIMessage(
                        content=message.content,
                        tool_calls=[
                            {"name": call.function_name, "args": call.arguments, "id": call.id}
                            for call in calls
                        ]
                    ))
                    requested.update(call.id for call in calls)
                elif message.content:
                    replayed.append(AIMessage(content=message.content))

            elif message.role == Role.TOOL:
                if message.tool_call_id in requested:
                    replayed.append(ToolMessage(
                        content=message.content,
                        tool_call_id=message.tool_call_id,
                        name=message.tool_name
                    ))

        return replayed
