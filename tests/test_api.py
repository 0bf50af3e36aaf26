import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from chat_agent.application.agent_service import AgentService
from chat_agent.application.api.api_server import create_app
from chat_agent.infrastructure.config.settings import AgentSettings

from tests.fakes import FakeSearch, ScriptedProvider


@pytest.fixture
def provider():
    return ScriptedProvider(AIMessage(content="**Paris** is the capital of France."))


@pytest.fixture
def client(provider):
    settings = AgentSettings(_env_file=None, groq_api_key=None, tavily_api_key=None)
    service = AgentService.from_settings(settings, provider=provider, search_provider=FakeSearch())

    with TestClient(create_app(service=service, settings=settings)) as test_client:
        yield test_client


def test_chat_returns_plain_reply(client):
    response = client.post("/ai", json={"message": "Capital of France?", "sessionId": "abc"})

    assert response.status_code == 200
    assert response.json() == {"reply": "Paris is the capital of France."}


@pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "   "}])
def test_chat_requires_message(client, body):
    response = client.post("/ai", json=body)

    assert response.status_code == 400
    assert response.json() == {"reply": "Message is required"}


def test_conversation_admin(client):
    client.post("/ai", json={"message": "hello", "sessionId": "abc"})
    client.post("/ai", json={"message": "hello", "sessionId": "xyz"})

    stats = client.get("/conversations/stats").json()
    assert stats["total_sessions"] == 2
    assert stats["total_messages"] == 4

    response = client.delete("/conversations/abc")
    assert response.json()["details"] == {"session_id": "abc", "existed": True}
    assert client.get("/conversations/stats").json()["total_sessions"] == 1

    client.delete("/conversations")
    assert client.get("/conversations/stats").json()["total_sessions"] == 0


def test_cache_admin(client, provider):
    client.post("/ai", json={"message": "Capital of France?", "sessionId": "abc"})

    stats = client.get("/cache/stats").json()
    assert stats["sets"] == 1
    assert stats["total_live_keys"] == 1

    info = client.get("/cache/info").json()
    assert info["keys"] == 1
    assert info["max_keys"] == 1000
    assert info["category_ttls"]["code"] == 7200

    assert client.post("/cache/delete", json={"message": "capital of france?"}).json() == {"deleted": True}
    assert client.post("/cache/delete", json={"message": "capital of france?"}).json() == {"deleted": False}

    client.post("/ai", json={"message": "Other question", "sessionId": "abc"})
    assert client.delete("/cache").json()["status"] == "cleared"
    assert client.get("/cache/stats").json()["total_live_keys"] == 0


def test_cache_delete_requires_message(client):
    assert client.post("/cache/delete", json={"message": ""}).status_code == 422


def test_health(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["llm_configured"] is True
    assert "timestamp" in body
    assert isinstance(body["metrics"], dict)


def test_unconfigured_service_answers_with_apology(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    settings = AgentSettings(_env_file=None, groq_api_key=None, tavily_api_key=None)
    service = AgentService.from_settings(settings, search_provider=FakeSearch())

    with TestClient(create_app(service=service, settings=settings)) as client:
        reply = client.post("/ai", json={"message": "hello"}).json()["reply"]
        health = client.get("/health").json()

    assert reply.startswith("I'm experiencing technical difficulties")
    assert health["llm_configured"] is False
