"""
Tavily-backed search provider for the webSearch tool.
"""

from typing import List, Optional
import structlog
from tavily import AsyncTavilyClient

logger = structlog.get_logger(__name__)


class TavilySearchProvider:
    """Thin async wrapper returning the content field of each Tavily result"""

    def __init__(self, api_key: str, max_results: int = 5, client: Optional[AsyncTavilyClient] = None):
        self.client = client or AsyncTavilyClient(api_key=api_key)
        self.max_results = max_results

    async def search(self, query: str) -> List[str]:
        logger.info("Running web search", query=query[:80])

        response = await self.client.search(query, max_results=self.max_results)
        results = response.get("results", []) if isinstance(response, dict) else []

        return [result.get("content", "") for result in results]
