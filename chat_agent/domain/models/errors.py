"""
Exception hierarchy for the agent orchestration layer.

Everything here is raised below the agent loop and absorbed by it; callers of
``AgentOrchestrator.generate`` only ever receive reply text.
"""

from typing import Optional


class AgentError(Exception):
    """Base exception for all agent errors"""


class ConfigurationError(AgentError):
    """Raised when required credentials or settings are missing"""


class ProviderError(AgentError):
    """Raised when the LLM provider call fails"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientProviderError(ProviderError):
    """Rate limited (429) or payload too large (413); retried with backoff"""

    @property
    def is_rate_limit(self) -> bool:
        return self.status_code == 429


class TerminalProviderError(ProviderError):
    """Any other provider failure; not retried"""


class ToolExecutionError(AgentError):
    """Raised by a tool when it cannot produce a result"""

    def __init__(self, tool_name: str, reason: str):
        super().__init__(f"{tool_name}: {reason}")
        self.tool_name = tool_name
        self.reason = reason
