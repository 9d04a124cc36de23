"""
Gemini provider over the Generative Language REST API.
"""
import json
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from ....core.exceptions import LLMUnavailableError
from ..errors import GENERIC, map_http_error
from ..types import (
    ConversationContext,
    LLMMetadata,
    LLMResponse,
    ToolCall,
    build_conversation_messages,
    build_system_prompt,
)

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def to_function_declarations(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    declarations = []
    for tool in tools:
        function = tool.get("function", tool)
        declarations.append({
            "name": function["name"],
            "description": function.get("description", ""),
            "parameters": function.get("parameters", {"type": "object", "properties": {}}),
        })
    return declarations


class GeminiProvider:
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client or httpx.AsyncClient(
            base_url=GEMINI_BASE_URL,
            timeout=httpx.Timeout(timeout),
        )
        logger.info(f"✅ Gemini client initialized: model={model}")

    async def close(self):
        """Explicit client shutdown."""
        await self.client.aclose()

    def _build_payload(self, context: ConversationContext, tools: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
        contents = [
            {"role": "user" if msg["role"] == "user" else "model", "parts": [{"text": msg["content"]}]}
            for msg in build_conversation_messages(context)
        ]
        payload: Dict[str, Any] = {
            "systemInstruction": {"parts": [{"text": build_system_prompt(context.knowledge_base)}]},
            "contents": contents,
            "generationConfig": {
                "maxOutputTokens": self.max_tokens,
                "temperature": self.temperature,
            },
        }
        if tools:
            payload["tools"] = [{"functionDeclarations": to_function_declarations(tools)}]
        return payload

    async def generate_reply(
        self, context: ConversationContext, tools: Optional[List[Dict[str, Any]]] = None
    ) -> LLMResponse:
        start_time = time.monotonic()
        payload = self._build_payload(context, tools)
        logger.debug(f"🤖 Calling Gemini: model={self.model}, messages={len(payload['contents'])}")

        try:
            response = await self.client.post(
                f"/models/{self.model}:generateContent",
                json=payload,
                headers={"x-goog-api-key": self.api_key},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise map_http_error(e) from e
        except ValueError as e:
            logger.error(f"❌ Gemini returned invalid JSON: {e}")
            raise LLMUnavailableError(GENERIC) from e

        candidates = data.get("candidates") or []
        parts = candidates[0].get("content", {}).get("parts", []) if candidates else []

        text_parts = []
        tool_calls = []
        for index, part in enumerate(parts):
            if "text" in part:
                text_parts.append(part["text"])
            elif "functionCall" in part:
                call = part["functionCall"]
                tool_calls.append(ToolCall(
                    id=call.get("id") or f"call_{index}",
                    name=call["name"],
                    arguments=json.dumps(call.get("args", {})),
                ))

        reply = "".join(text_parts).strip()
        if not reply and not tool_calls:
            logger.error(f"❌ No response content from Gemini: finishReason={candidates[0].get('finishReason') if candidates else None}")
            raise LLMUnavailableError(GENERIC)

        processing_time_ms = int((time.monotonic() - start_time) * 1000)
        tokens = data.get("usageMetadata", {}).get("totalTokenCount")
        logger.info(f"✅ Gemini response: {len(reply)} chars, {tokens} tokens, {processing_time_ms}ms")

        return LLMResponse(
            reply=reply,
            tool_calls=tool_calls,
            metadata=LLMMetadata(model=self.model, tokens=tokens, processing_time_ms=processing_time_ms),
        )

    async def health_check(self) -> bool:
        return bool(self.api_key and self.model)
