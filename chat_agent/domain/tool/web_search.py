from typing import Any, List, Protocol
from pydantic import BaseModel, Field

from chat_agent.domain.models.errors import ToolExecutionError
from chat_agent.domain.tool.base_tool import BaseTool


class SearchProvider(Protocol):
    async def search(self, query: str) -> List[str]:
        """Return result snippets, best first"""
        ...


class WebSearchArgs(BaseModel):
    query: str = Field(min_length=1, description="the search query to search on")


class WebSearchTool(BaseTool):
    """Searches the web and hands the model the concatenated result content"""

    name = "webSearch"
    description = "you can search for information on the internet"
    args_schema = WebSearchArgs

    def __init__(self, provider: SearchProvider, timeout: float = 20.0):
        self.provider = provider
        self.timeout = timeout

    async def run(self, **kwargs: Any) -> str:
        query = kwargs["query"]
        try:
            snippets = await self.provider.search(query)
        except Exception as e:
            raise ToolExecutionError(self.name, str(e) or type(e).__name__) from e

        return "\n\n".join(snippet for snippet in snippets if snippet)

    def failure_message(self, reason: str) -> str:
        return f"search failed: {reason}"
