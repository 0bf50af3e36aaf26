from abc import ABC, abstractmethod
from typing import Dict, Any, Type
from pydantic import BaseModel


class BaseTool(ABC):
    """Base class for tools the model may call"""

    name: str
    description: str
    args_schema: Type[BaseModel]
    timeout: float = 20.0

    @abstractmethod
    async def run(self, **kwargs: Any) -> str:
        """Execute the tool and return text for the model"""
        pass

    def failure_message(self, reason: str) -> str:
        """Text handed back to the model when the tool fails"""
        return f"{self.name} failed: {reason}"

    def to_schema(self) -> Dict[str, Any]:
        """Function-calling schema in the OpenAI tool format"""

        parameters = self.args_schema.model_json_schema()
        parameters.pop("title", None)

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters
            }
        }
