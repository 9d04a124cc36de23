import logging
from typing import Any, Dict, List, Optional

from ...core.exceptions import LLMUnavailableError
from .errors import GENERIC
from .types import ConversationContext, LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class LLMService:
    """
    Gateway to the configured LLM provider.

    Tool calls requested by the model are returned to the caller and never
    executed here.
    """

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    @property
    def model(self) -> str:
        return getattr(self.provider, "model", "unknown")

    async def generate_reply(
        self, context: ConversationContext, tools: Optional[List[Dict[str, Any]]] = None
    ) -> LLMResponse:
        """
        Generate the assistant reply for ``context``.

        Raises:
            LLMUnavailableError: on any provider failure, with a message safe
                to show to the customer
        """
        logger.debug(
            f"Generating LLM reply: conversation={context.conversation_id}, messages={len(context.messages)}"
        )
        try:
            response = await self.provider.generate_reply(context, tools)
        except LLMUnavailableError:
            raise
        except Exception as e:
            logger.error(f"❌ Unexpected error generating LLM reply: {e}", exc_info=True)
            raise LLMUnavailableError(GENERIC) from e

        logger.info(
            f"✅ LLM reply generated: conversation={context.conversation_id}, "
            f"length={len(response.reply)}, time={response.metadata.processing_time_ms}ms"
        )
        return response

    async def health_check(self) -> bool:
        try:
            return await self.provider.health_check()
        except Exception as e:
            logger.error(f"❌ LLM health check failed: {e}")
            return False

    async def close(self):
        close = getattr(self.provider, "close", None)
        if close is not None:
            await close()
