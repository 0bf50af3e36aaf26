"""
Agent configuration.

All settings can be overridden via environment variables with the CHAT_AGENT_
prefix (e.g. CHAT_AGENT_MAX_HISTORY=40). Provider credentials are also read
from the conventional GROQ_API_KEY and TAVILY_API_KEY variables.
"""

from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentSettings(BaseSettings):
    """Configuration for the agent service and its stores"""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    environment: Literal["development", "production", "testing"] = "development"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Providers
    groq_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("groq_api_key", "CHAT_AGENT_GROQ_API_KEY", "GROQ_API_KEY"),
    )
    tavily_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("tavily_api_key", "CHAT_AGENT_TAVILY_API_KEY", "TAVILY_API_KEY"),
    )
    llm_model: str = "openai/gpt-oss-120b"
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, gt=0)
    search_max_results: int = Field(default=5, gt=0)
    tool_timeout_seconds: float = Field(default=20.0, gt=0)

    # Agent loop
    max_retries: int = Field(default=3, ge=1, description="Total provider attempts per model call")
    max_tool_iterations: int = Field(default=8, ge=1, description="Model calls allowed per turn")
    request_timeout_seconds: float = Field(default=60.0, gt=0)
    context_window_messages: int = Field(default=10, ge=0, description="Prior turns sent to the model")

    # Session store
    max_history: int = Field(default=20, ge=1)
    session_idle_timeout_seconds: float = Field(default=30 * 60, gt=0)
    session_sweep_interval_seconds: float = Field(default=10 * 60, gt=0)

    # Response cache
    cache_max_entries: int = Field(default=1000, ge=1)
    cache_default_ttl_seconds: int = Field(default=3600, gt=0)
    cache_sweep_interval_seconds: float = Field(default=10 * 60, gt=0)
    cache_context_turns: int = Field(default=3, ge=0)

    # HTTP adapter
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def llm_configured(self) -> bool:
        return bool(self.groq_api_key and self.groq_api_key.strip())
