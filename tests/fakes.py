import asyncio
from typing import Any, Dict, List, Optional

from langchain_core.messages import AIMessage, BaseMessage


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProvider:
    """Plays back responses (or raises exceptions) in order; repeats the last one"""

    def __init__(self, *script: Any, delay: float = 0.0):
        self.script = list(script)
        self.delay = delay
        self.calls: List[List[BaseMessage]] = []
        self.tools_seen: List[List[Dict[str, Any]]] = []

    async def complete(self, messages: List[BaseMessage], tools: List[Dict[str, Any]]) -> AIMessage:
        self.calls.append(list(messages))
        self.tools_seen.append(tools)
        if self.delay:
            await asyncio.sleep(self.delay)

        index = min(len(self.calls) - 1, len(self.script) - 1)
        item = self.script[index]
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item(messages)
        return item


class FakeSearch:
    def __init__(self, results: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.results = results if results is not None else []
        self.error = error
        self.queries: List[str] = []

    async def search(self, query: str) -> List[str]:
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.results


class SleepRecorder:
    def __init__(self):
        self.waits: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


def tool_call_message(query: str, call_id: str = "call_1", content: str = "") -> AIMessage:
    return AIMessage(
        content=content,
        tool_calls=[{"name": "webSearch", "args": {"query": query}, "id": call_id}]
    )

