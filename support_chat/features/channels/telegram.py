"""
Telegram Bot API channel.

Inbound updates arrive on ``POST /webhooks/telegram``; replies are sent with
``sendMessage``. When a webhook secret is configured, Telegram echoes it in
the ``X-Telegram-Bot-Api-Secret-Token`` header and it must match.
"""
import logging
import secrets
from typing import Any, Dict, Optional

import httpx

from ...core.exceptions import ChannelDeliveryError
from .base import IncomingMessage, OutgoingMessage

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramChannel:
    type = "telegram"
    name = "Telegram"

    def __init__(
        self,
        bot_token: Optional[str],
        webhook_secret: Optional[str] = None,
        enabled: bool = False,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.bot_token = bot_token
        self.webhook_secret = webhook_secret
        self.enabled = enabled and bool(bot_token)
        self.client = client or httpx.AsyncClient(base_url=TELEGRAM_API_URL, timeout=timeout)

    async def initialize(self):
        if not self.enabled:
            return
        logger.info("✅ Telegram channel initialized")

    async def shutdown(self):
        await self.client.aclose()

    async def send_message(self, message: OutgoingMessage):
        try:
            resp = await self.client.post(
                f"/bot{self.bot_token}/sendMessage",
                json={"chat_id": message.channel_user_id, "text": message.text},
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"❌ Telegram sendMessage failed for chat {message.channel_user_id}: {e}")
            raise ChannelDeliveryError("Failed to deliver reply via Telegram") from e
        logger.info(f"📤 Telegram reply sent to chat {message.channel_user_id}")

    def verify_webhook(self, payload: Dict[str, Any], signature: Optional[str] = None) -> bool:
        if not self.webhook_secret:
            return True
        return bool(signature) and secrets.compare_digest(signature, self.webhook_secret)

    def parse_incoming_message(self, payload: Dict[str, Any]) -> Optional[IncomingMessage]:
        """Text messages only; other update types return None."""
        message = payload.get("message") or payload.get("edited_message")
        if not isinstance(message, dict):
            return None
        text = message.get("text")
        chat = message.get("chat") or {}
        if not text or "id" not in chat:
            return None

        sender = message.get("from") or {}
        return IncomingMessage(
            text=text,
            channel_user_id=str(chat["id"]),
            channel=self.type,
            metadata={
                "update_id": payload.get("update_id"),
                "message_id": message.get("message_id"),
                "username": sender.get("username"),
            },
        )
