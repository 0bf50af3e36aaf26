from typing import Dict, Any
from datetime import datetime, timezone
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
import structlog

from chat_agent.application.agent_service import AgentService
from chat_agent.application.api.schema.chat import (
    CacheDeleteRequest, CacheDeleteResponse, ChatRequest, ChatResponse, StatusResponse
)
from chat_agent.infrastructure.observability.logging import metrics

logger = structlog.get_logger(__name__)

router = APIRouter()


def _service(request: Request) -> AgentService:
    return request.app.state.agent_service


@router.post("/ai", response_model=ChatResponse)
async def chat_endpoint(body: ChatRequest, request: Request):
    """Answer one chat turn; failures still come back as reply text"""

    if not body.message or not body.message.strip():
        return JSONResponse(status_code=400, content={"reply": "Message is required"})

    reply = await _service(request).generate(body.session_id, body.message)
    return ChatResponse(reply=reply)


@router.get("/cache/stats")
async def cache_stats(request: Request) -> Dict[str, Any]:
    return await _service(request).get_cache_stats()


@router.get("/cache/info")
async def cache_info(request: Request) -> Dict[str, Any]:
    return await _service(request).get_cache_info()


@router.delete("/cache", response_model=StatusResponse)
async def clear_cache(request: Request):
    await _service(request).clear_cache()
    return StatusResponse(status="cleared")


@router.post("/cache/delete", response_model=CacheDeleteResponse)
async def delete_cache_entry(body: CacheDeleteRequest, request: Request):
    deleted = await _service(request).delete_cache_entry(body.message)
    return CacheDeleteResponse(deleted=deleted)


@router.get("/conversations/stats")
async def conversation_stats(request: Request) -> Dict[str, Any]:
    return await _service(request).get_conversation_stats()


@router.delete("/conversations/{session_id}", response_model=StatusResponse)
async def clear_conversation(session_id: str, request: Request):
    existed = await _service(request).clear_conversation(session_id)
    return StatusResponse(status="cleared", details={"session_id": session_id, "existed": existed})


@router.delete("/conversations", response_model=StatusResponse)
async def clear_all_conversations(request: Request):
    await _service(request).clear_all_conversations()
    return StatusResponse(status="cleared")


@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check endpoint"""

    service = _service(request)
    return {
        "status": "healthy",
        "llm_configured": service.orchestrator.provider is not None,
        "metrics": metrics.get_metrics_summary(),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
