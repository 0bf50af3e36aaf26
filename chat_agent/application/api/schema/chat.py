from typing import Dict, Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Incoming chat turn"""
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    session_id: str = Field(default="default", alias="sessionId")


class ChatResponse(BaseModel):
    """Reply text, also used for failures"""
    reply: str


class CacheDeleteRequest(BaseModel):
    message: str = Field(min_length=1)


class CacheDeleteResponse(BaseModel):
    deleted: bool


class StatusResponse(BaseModel):
    status: str
    details: Optional[Dict[str, Any]] = None
