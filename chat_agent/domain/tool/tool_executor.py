from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional
import asyncio
import time
import structlog

from chat_agent.domain.models.errors import ToolExecutionError
from chat_agent.domain.tool.tool_registry import ToolRegistry
from chat_agent.domain.tool.tool_validator import ToolParameterValidator
from chat_agent.infrastructure.observability.logging import agent_logger, metrics

logger = structlog.get_logger(__name__)


class ToolExecutor(ABC):
    """Executes a named tool and returns text"""

    @abstractmethod
    async def execute(self, name: str, arguments: Dict[str, Any], call_id: Optional[str] = None) -> str:
        """Run the tool; failures come back as text, never as exceptions"""
        pass

    @abstractmethod
    def tool_schemas(self) -> List[Dict[str, Any]]:
        """Function-calling schemas offered to the model"""
        pass

    @abstractmethod
    def reject_malformed(self, name: str, error: Optional[str], call_id: Optional[str] = None) -> str:
        """Result text for a call whose arguments the provider could not parse"""
        pass


class RegistryToolExecutor(ToolExecutor):
    """Executes tools from a registry with validation and a per-tool timeout"""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def tool_schemas(self) -> List[Dict[str, Any]]:
        return self.registry.get_tool_schemas()

    def reject_malformed(self, name: str, error: Optional[str], call_id: Optional[str] = None) -> str:
        tool = self.registry.get_tool(name)
        if tool is None:
            logger.warning("Model requested unknown tool", tool_name=name)
            return f"unknown tool: {name}"

        reason = f"invalid arguments ({error or 'arguments could not be parsed'})"
        agent_logger.log_tool_execution(name, call_id, {}, success=False, error=reason)
        metrics.increment_counter(f"tool.{name}.failures")
        return tool.failure_message(reason)

    async def execute(self, name: str, arguments: Dict[str, Any], call_id: Optional[str] = None) -> str:
        tool = self.registry.get_tool(name)
        if tool is None:
            logger.warning("Model requested unknown tool", tool_name=name)
            return f"unknown tool: {name}"

        params, errors = ToolParameterValidator.validate_tool_call(tool, arguments)
        if errors:
            agent_logger.log_tool_execution(name, call_id, arguments, success=False, error="; ".join(errors))
            return tool.failure_message("invalid arguments (" + "; ".join(errors) + ")")

        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(tool.run(**params), timeout=tool.timeout)
        except asyncio.TimeoutError:
            error = f"timed out after {tool.timeout:g}s"
        except ToolExecutionError as e:
            error = e.reason
        except Exception as e:
            logger.exception("Tool raised unexpectedly", tool_name=name)
            error = str(e) or type(e).__name__
        else:
            duration_ms = (time.perf_counter() - started) * 1000
            agent_logger.log_tool_execution(name, call_id, params, duration_ms=duration_ms)
            metrics.record_latency(f"tool.{name}", duration_ms)
            return result

        duration_ms = (time.perf_counter() - started) * 1000
        agent_logger.log_tool_execution(name, call_id, params, duration_ms=duration_ms, success=False, error=error)
        metrics.increment_counter(f"tool.{name}.failures")
        return tool.failure_message(error)
