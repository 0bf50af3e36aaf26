"""
Structured logging and in-process metrics for the agent loop.

Every module logs through ``structlog.get_logger(__name__)``. The orchestrator
binds ``session_id`` into the structlog contextvars for the length of a turn, so
events from the stores, tools and provider carry it without passing it around.
"""

from typing import Dict, Any, Optional
import logging
import sys
import structlog


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "chat-agent",
    environment: str = "development"
) -> None:
    """Route structlog through stdlib logging on stdout, as JSON or console lines"""

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = structlog.processors.JSONRenderer() if log_format == "json" else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=service_name, environment=environment)


class AgentLogger:
    """Typed events for tool runs, graph transitions and store administration"""

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)

    def log_tool_execution(
        self,
        tool_name: str,
        call_id: Optional[str],
        input_data: Dict[str, Any],
        duration_ms: Optional[float] = None,
        success: bool = True,
        error: Optional[str] = None
    ):
        self.logger.info(
            "tool_execution",
            tool_name=tool_name,
            call_id=call_id,
            input_data=input_data,
            duration_ms=duration_ms,
            success=success,
            error=error
        )

    def log_workflow_transition(
        self,
        session_id: str,
        from_node: str,
        to_node: str,
        condition: Optional[str] = None
    ):
        self.logger.info(
            "workflow_transition",
            session_id=session_id,
            from_node=from_node,
            to_node=to_node,
            condition=condition
        )

    def log_context_update(
        self,
        session_id: str,
        context_type: str,
        action: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Session or cache changed outside a turn; session_id is "*" for store-wide actions"""

        self.logger.info(
            "context_update",
            session_id=session_id,
            context_type=context_type,
            action=action,
            details=details or {}
        )


agent_logger = AgentLogger("chat_agent")


class _LatencyStats:
    __slots__ = ("count", "total", "low", "high")

    def __init__(self):
        self.count = 0
        self.total = 0.0
        self.low: Optional[float] = None
        self.high: Optional[float] = None

    def add(self, duration_ms: float) -> None:
        self.count += 1
        self.total += duration_ms
        self.low = duration_ms if self.low is None else min(self.low, duration_ms)
        self.high = duration_ms if self.high is None else max(self.high, duration_ms)

    def summary(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg": self.total / self.count if self.count else 0.0,
            "min": self.low or 0.0,
            "max": self.high or 0.0
        }


class MetricsCollector:
    """Provider and tool latencies plus turn outcome counters, served on /health"""

    def __init__(self):
        self.latencies: Dict[str, _LatencyStats] = {}
        self.counters: Dict[str, int] = {}

    def record_latency(self, operation: str, duration_ms: float):
        self.latencies.setdefault(operation, _LatencyStats()).add(duration_ms)
        agent_logger.logger.debug("metric", metric_type="latency", operation=operation, duration_ms=duration_ms)

    def increment_counter(self, name: str, value: int = 1):
        self.counters[name] = self.counters.get(name, 0) + value
        agent_logger.logger.debug("metric", metric_type="counter", name=name, value=value)

    def get_metrics_summary(self) -> Dict[str, Any]:
        return {
            "counters": dict(self.counters),
            "latency_ms": {operation: stats.summary() for operation, stats in self.latencies.items()}
        }


metrics = MetricsCollector()
