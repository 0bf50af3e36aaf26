from typing import Dict, Any, List, Tuple
from pydantic import ValidationError

from chat_agent.domain.tool.base_tool import BaseTool


class ToolParameterValidator:
    @staticmethod
    def validate_tool_call(tool: BaseTool, parameters: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
        """Validate arguments against the tool schema; returns (clean args, errors)"""

        try:
            parsed = tool.args_schema.model_validate(parameters or {})
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            ]
            return {}, errors

        return parsed.model_dump(exclude_none=True), []
