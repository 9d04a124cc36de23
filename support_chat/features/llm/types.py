"""
Types shared by the LLM service and its providers.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from ..conversation.service import ContextMessage


class ProviderType(str, enum.Enum):
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


@dataclass
class ConversationContext:
    conversation_id: str
    messages: List[ContextMessage]
    knowledge_base: str
    available_tools: Optional[List[Dict[str, Any]]] = None


@dataclass
class ToolCall:
    """Tool invocation requested by the model; ``arguments`` is the raw JSON string."""

    id: str
    name: str
    arguments: str


@dataclass
class LLMMetadata:
    model: str
    tokens: Optional[int] = None
    processing_time_ms: int = 0


@dataclass
class LLMResponse:
    reply: str
    metadata: LLMMetadata
    tool_calls: List[ToolCall] = field(default_factory=list)


class LLMProvider(Protocol):
    model: str

    async def generate_reply(
        self, context: ConversationContext, tools: Optional[List[Dict[str, Any]]] = None
    ) -> LLMResponse:
        ...

    async def health_check(self) -> bool:
        ...


def build_system_prompt(knowledge_base: str) -> str:
    return f"""You are a helpful and friendly customer support agent for an e-commerce store. Your goal is to assist customers with their questions clearly, concisely, and professionally.

Guidelines:
- Be polite, empathetic, and helpful
- Provide accurate information based on the knowledge base below
- If you don't know something, admit it and offer to help in other ways
- Keep responses concise but complete
- Use a warm, conversational tone

{knowledge_base}

Answer the customer's questions based on this information. If asked about something not covered in the knowledge base, politely explain that you don't have that specific information but offer to help with related questions."""


def build_conversation_messages(context: ConversationContext) -> List[Dict[str, str]]:
    """History in chat format: ``user`` stays ``user``, ``ai`` becomes ``assistant``."""
    return [
        {"role": "user" if msg.sender == "user" else "assistant", "content": msg.text}
        for msg in context.messages
    ]
