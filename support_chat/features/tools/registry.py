import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from .base import Tool, ToolExecutionResult, tool_definition

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Tools available to the model, looked up by name."""

    def __init__(self, tools: Optional[Iterable[Tool]] = None):
        self._tools: Dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool):
        if tool.name in self._tools:
            logger.warning(f"⚠️ Tool {tool.name} is already registered. Overwriting.")
        self._tools[tool.name] = tool
        logger.info(f"🔧 Tool registered: {tool.name}")

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def all(self) -> List[Tool]:
        return list(self._tools.values())

    def definitions(self) -> List[Dict[str, Any]]:
        return [tool_definition(tool) for tool in self._tools.values()]

    def clear(self):
        self._tools.clear()

    @property
    def count(self) -> int:
        return len(self._tools)

    async def execute(self, name: str, args_json: str) -> ToolExecutionResult:
        """
        Execute a tool by name with JSON-encoded arguments.

        Failures (unknown tool, malformed arguments, missing required
        parameters, errors raised by the tool) are returned as an unsuccessful
        result, never raised.
        """
        tool = self.get(name)
        if tool is None:
            logger.warning(f"⚠️ Model requested unknown tool: {name}")
            return ToolExecutionResult(success=False, error=f"Tool not found: {name}")

        try:
            args = json.loads(args_json or "{}")
        except json.JSONDecodeError as e:
            logger.warning(f"⚠️ Invalid arguments for tool {name}: {e}")
            return ToolExecutionResult(success=False, error=f"Invalid arguments: {e.msg}")
        if not isinstance(args, dict):
            return ToolExecutionResult(success=False, error="Invalid arguments: expected a JSON object")

        missing = [p for p in tool.parameters.get("required", []) if p not in args]
        if missing:
            return ToolExecutionResult(
                success=False, error=f"Missing required parameter: {', '.join(missing)}"
            )

        logger.info(f"🔧 Executing tool: {name} with args: {args}")
        try:
            data = await tool.execute(args)
        except Exception as e:
            logger.error(f"❌ Tool execution failed: {name}: {e}", exc_info=True)
            return ToolExecutionResult(success=False, error=str(e) or type(e).__name__)

        logger.info(f"✅ Tool execution successful: {name}")
        return ToolExecutionResult(success=True, data=data)
