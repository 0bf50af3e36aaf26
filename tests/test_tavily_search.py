import pytest

from chat_agent.infrastructure.search.tavily_search import TavilySearchProvider


class FakeTavilyClient:
    def __init__(self, response):
        self.response = response
        self.calls = []

    async def search(self, query, **kwargs):
        self.calls.append((query, kwargs))
        return self.response


@pytest.mark.asyncio
async def test_returns_content_of_each_result():
    client = FakeTavilyClient({"results": [{"content": "one", "url": "a"}, {"content": "two", "url": "b"}]})
    provider = TavilySearchProvider(api_key="tvly-test", max_results=3, client=client)

    assert await provider.search("python") == ["one", "two"]
    assert client.calls == [("python", {"max_results": 3})]


@pytest.mark.asyncio
async def test_missing_results_yield_nothing():
    provider = TavilySearchProvider(api_key="tvly-test", client=FakeTavilyClient({}))

    assert await provider.search("python") == []
