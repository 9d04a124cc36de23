from .factory import create_provider
from .service import LLMService
from .types import ConversationContext, LLMMetadata, LLMResponse, ProviderType, ToolCall

__all__ = [
    "ConversationContext",
    "LLMMetadata",
    "LLMResponse",
    "LLMService",
    "ProviderType",
    "ToolCall",
    "create_provider",
]
