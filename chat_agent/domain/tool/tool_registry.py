from typing import Dict, List, Any, Optional
import structlog

from chat_agent.domain.tool.base_tool import BaseTool

logger = structlog.get_logger(__name__)


class ToolRegistry:
    """Registry for managing available tools"""

    def __init__(self):
        self.tools: Dict[str, BaseTool] = {}

    def register_tool(self, tool: BaseTool) -> None:
        """Register a new tool"""

        self.tools[tool.name] = tool
        logger.debug("Registered tool", tool_name=tool.name)

    def get_tool(self, name: str) -> Optional[BaseTool]:
        return self.tools.get(name)

    def get_tool_schemas(self) -> List[Dict[str, Any]]:
        """Schemas for every registered tool, in registration order"""

        return [tool.to_schema() for tool in self.tools.values()]
