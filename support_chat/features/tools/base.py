from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol


@dataclass
class ToolExecutionResult:
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None


class Tool(Protocol):
    """A function the model may ask to call."""

    name: str
    description: str
    parameters: Dict[str, Any]

    async def execute(self, params: Dict[str, Any]) -> Any:
        ...


def tool_definition(tool: Tool) -> Dict[str, Any]:
    """Tool definition in OpenAI function-calling format."""
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters,
        },
    }
