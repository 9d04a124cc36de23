"""
OpenAI chat completions provider, also used for OpenRouter (OpenAI-compatible API).
"""
import logging
import time
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from ....core.exceptions import LLMUnavailableError
from ..errors import GENERIC, map_openai_error
from ..types import (
    ConversationContext,
    LLMMetadata,
    LLMResponse,
    ToolCall,
    build_conversation_messages,
    build_system_prompt,
)

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenAIProvider:
    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout: float = 30.0,
        base_url: Optional[str] = None,
        default_headers: Optional[Dict[str, str]] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        # The LLM call is never retried: SDK retries are off
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            default_headers=default_headers,
        )
        logger.info(f"✅ {self.name} client initialized: model={model}")

    async def close(self):
        await self.client.close()

    async def generate_reply(
        self, context: ConversationContext, tools: Optional[List[Dict[str, Any]]] = None
    ) -> LLMResponse:
        start_time = time.monotonic()
        messages = [{"role": "system", "content": build_system_prompt(context.knowledge_base)}]
        messages.extend(build_conversation_messages(context))

        params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"

        logger.debug(f"🤖 Calling {self.name}: model={self.model}, messages={len(messages)}, tools={len(tools or [])}")

        try:
            completion = await self.client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            raise map_openai_error(e) from e

        message = completion.choices[0].message if completion.choices else None
        if message is None:
            logger.error(f"❌ Empty completion from {self.name}")
            raise LLMUnavailableError(GENERIC)

        tool_calls = [
            ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "{}")
            for tc in (message.tool_calls or [])
        ]
        reply = (message.content or "").strip()
        if not reply and not tool_calls:
            logger.error(f"❌ No response content from {self.name}")
            raise LLMUnavailableError(GENERIC)

        processing_time_ms = int((time.monotonic() - start_time) * 1000)
        tokens = completion.usage.total_tokens if completion.usage else None
        logger.info(
            f"✅ {self.name} response: {len(reply)} chars, {tokens} tokens, "
            f"{processing_time_ms}ms, tool_calls={len(tool_calls)}"
        )

        return LLMResponse(
            reply=reply,
            tool_calls=tool_calls,
            metadata=LLMMetadata(model=self.model, tokens=tokens, processing_time_ms=processing_time_ms),
        )

    async def health_check(self) -> bool:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": "Hi"}],
                max_tokens=5,
            )
        except openai.OpenAIError as e:
            logger.error(f"❌ {self.name} health check failed: {e}")
            return False
        return bool(completion.choices and completion.choices[0].message.content)


class OpenRouterProvider(OpenAIProvider):
    name = "openrouter"

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout: float = 30.0,
        referer: str = "https://localhost",
        title: str = "Customer Support Agent",
        client: Optional[AsyncOpenAI] = None,
    ):
        self._api_key = api_key
        super().__init__(
            api_key,
            model,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout,
            base_url=OPENROUTER_BASE_URL,
            default_headers={"HTTP-Referer": referer, "X-Title": title},
            client=client,
        )

    async def health_check(self) -> bool:
        # configuration only, a real call would count against the OpenRouter quota
        return bool(self._api_key and self.client is not None)
