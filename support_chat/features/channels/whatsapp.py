"""
WhatsApp Business Cloud API channel.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from ...core.exceptions import ChannelDeliveryError
from .base import IncomingMessage, OutgoingMessage

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/v19.0"


class WhatsAppChannel:
    type = "whatsapp"
    name = "WhatsApp"

    def __init__(
        self,
        access_token: Optional[str],
        phone_number_id: Optional[str],
        verify_token: Optional[str] = None,
        enabled: bool = False,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.verify_token = verify_token
        self.enabled = enabled and bool(access_token and phone_number_id)
        self.client = client or httpx.AsyncClient(base_url=GRAPH_API_URL, timeout=timeout)

    async def initialize(self):
        if not self.enabled:
            return
        logger.info("✅ WhatsApp channel initialized")

    async def shutdown(self):
        await self.client.aclose()

    async def send_message(self, message: OutgoingMessage):
        try:
            resp = await self.client.post(
                f"/{self.phone_number_id}/messages",
                headers={"Authorization": f"Bearer {self.access_token}"},
                json={
                    "messaging_product": "whatsapp",
                    "to": message.channel_user_id,
                    "type": "text",
                    "text": {"body": message.text},
                },
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"❌ WhatsApp send failed for {message.channel_user_id}: {e}")
            raise ChannelDeliveryError("Failed to deliver reply via WhatsApp") from e
        logger.info(f"📤 WhatsApp reply sent to {message.channel_user_id}")

    def verify_webhook(self, payload: Dict[str, Any], signature: Optional[str] = None) -> bool:
        # X-Hub-Signature-256 is not checked
        return True

    def verify_subscription(self, mode: Optional[str], token: Optional[str], challenge: Optional[str]) -> Optional[str]:
        """Meta webhook handshake: the challenge to echo, or None when rejected."""
        if mode == "subscribe" and self.verify_token and token == self.verify_token:
            return challenge or ""
        return None

    def parse_incoming_message(self, payload: Dict[str, Any]) -> Optional[IncomingMessage]:
        """First text message of the notification; statuses and media are ignored."""
        for entry in payload.get("entry") or []:
            for change in entry.get("changes") or []:
                value = change.get("value") or {}
                for message in value.get("messages") or []:
                    if message.get("type") != "text":
                        continue
                    body = (message.get("text") or {}).get("body")
                    if body and message.get("from"):
                        return IncomingMessage(
                            text=body,
                            channel_user_id=str(message["from"]),
                            channel=self.type,
                            metadata={"message_id": message.get("id")},
                        )
        return None
