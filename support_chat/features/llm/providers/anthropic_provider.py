import json
import logging
import time
from typing import Any, Dict, List, Optional

import anthropic
from anthropic import AsyncAnthropic

from ....core.exceptions import LLMUnavailableError
from ..errors import GENERIC, map_anthropic_error
from ..types import (
    ConversationContext,
    LLMMetadata,
    LLMResponse,
    ToolCall,
    build_conversation_messages,
    build_system_prompt,
)

logger = logging.getLogger(__name__)


def to_anthropic_tools(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """OpenAI function definitions -> Anthropic tool definitions."""
    converted = []
    for tool in tools:
        function = tool.get("function", tool)
        converted.append({
            "name": function["name"],
            "description": function.get("description", ""),
            "input_schema": function.get("parameters", {"type": "object", "properties": {}}),
        })
    return converted


class AnthropicProvider:
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout: float = 30.0,
        client: Optional[AsyncAnthropic] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client or AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)
        logger.info(f"✅ Anthropic client initialized: model={model}")

    async def close(self):
        await self.client.close()

    async def generate_reply(
        self, context: ConversationContext, tools: Optional[List[Dict[str, Any]]] = None
    ) -> LLMResponse:
        start_time = time.monotonic()
        messages = build_conversation_messages(context)
        # Messages API requires the first turn to come from the user
        while messages and messages[0]["role"] != "user":
            messages.pop(0)

        params: Dict[str, Any] = {
            "model": self.model,
            "system": build_system_prompt(context.knowledge_base),
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if tools:
            params["tools"] = to_anthropic_tools(tools)

        logger.debug(f"🤖 Calling Anthropic: model={self.model}, messages={len(messages)}")

        try:
            response = await self.client.messages.create(**params)
        except anthropic.AnthropicError as e:
            raise map_anthropic_error(e) from e

        text_parts = []
        tool_calls = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(ToolCall(id=block.id, name=block.name, arguments=json.dumps(block.input)))

        reply = "".join(text_parts).strip()
        if not reply and not tool_calls:
            logger.error("❌ No response content from Anthropic")
            raise LLMUnavailableError(GENERIC)

        processing_time_ms = int((time.monotonic() - start_time) * 1000)
        tokens = response.usage.input_tokens + response.usage.output_tokens
        logger.info(f"✅ Claude response: {len(reply)} chars, {tokens} tokens, {processing_time_ms}ms")

        return LLMResponse(
            reply=reply,
            tool_calls=tool_calls,
            metadata=LLMMetadata(model=self.model, tokens=tokens, processing_time_ms=processing_time_ms),
        )

    async def health_check(self) -> bool:
        try:
            response = await self.client.messages.create(
                model=self.model,
                messages=[{"role": "user", "content": "Hi"}],
                max_tokens=5,
            )
        except anthropic.AnthropicError as e:
            logger.error(f"❌ Anthropic health check failed: {e}")
            return False
        return len(response.content) > 0
