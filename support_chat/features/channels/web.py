import logging
from typing import Any, Dict, Optional

from .base import IncomingMessage, OutgoingMessage

logger = logging.getLogger(__name__)


class WebChannel:
    """Browser widget. Replies go back in the HTTP response, so sending is a no-op."""

    type = "web"
    name = "Web"

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    async def initialize(self):
        logger.debug("Web channel ready")

    async def shutdown(self):
        pass

    async def send_message(self, message: OutgoingMessage):
        logger.debug(f"Web reply for {message.channel_user_id} delivered in HTTP response")

    def verify_webhook(self, payload: Dict[str, Any], signature: Optional[str] = None) -> bool:
        return True

    def parse_incoming_message(self, payload: Dict[str, Any]) -> Optional[IncomingMessage]:
        text = payload.get("message")
        if not isinstance(text, str) or not text.strip():
            return None
        return IncomingMessage(
            text=text,
            channel_user_id=str(payload.get("userId") or "anonymous"),
            channel=self.type,
        )
