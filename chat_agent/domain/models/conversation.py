from typing import Dict, Any, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    """Conversation message roles"""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class CacheCategory(str, Enum):
    """Reply categories, each with its own cache TTL"""
    GENERAL = "general"
    CODE = "code"
    NEWS = "news"
    WEATHER = "weather"

    @classmethod
    def parse(cls, value: Any) -> "CacheCategory":
        """Resolve a category, falling back to GENERAL for anything unrecognised"""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GENERAL


class ExhaustionReason(str, Enum):
    """Why a turn ended on the apology path"""
    RATE_LIMITED = "rate_limited"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    PROVIDER_ERROR = "provider_error"
    CONFIGURATION = "configuration"
    ITERATION_LIMIT = "iteration_limit"
    TIMEOUT = "timeout"
    INTERNAL_ERROR = "internal_error"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ToolCall(BaseModel):
    """A tool invocation requested by the model"""
    id: str = Field(description="Provider-assigned call identifier")
    function_name: str = Field(description="Name of the requested tool")
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[str] = Field(None, description="Tool output, set after execution")


class Message(BaseModel):
    """Immutable conversation record"""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    timestamp: datetime = Field(default_factory=utc_now)
    tool_call_id: Optional[str] = Field(None, description="Originating call id for tool messages")
    tool_name: Optional[str] = Field(None, description="Tool name for tool messages")
    tool_calls: Tuple[ToolCall, ...] = Field(default=(), description="Calls requested by an assistant turn")

    def render(self) -> str:
        """Render as 'role: content' for fingerprinting"""
        return f"{self.role.value}: {self.content}"


class Session(BaseModel):
    """Per-session dialogue state, owned by the session store"""
    session_id: str
    messages: List[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    last_activity_at: float = Field(description="Clock reading of the last append")


class CacheEntry(BaseModel):
    """Cached reply, owned by the response cache"""
    key: str
    value: str
    created_at: float
    ttl_seconds: int
    category: CacheCategory = CacheCategory.GENERAL
    message_key: Optional[str] = Field(None, description="Fingerprint of the originating utterance alone")

    def is_expired(self, now: float) -> bool:
        return now >= self.created_at + self.ttl_seconds


class SessionStats(BaseModel):
    total_sessions: int
    active_sessions: int
    total_messages: int


class CacheStats(BaseModel):
    hits: int
    misses: int
    sets: int
    deletes: int
    total_live_keys: int
    hit_rate: float
