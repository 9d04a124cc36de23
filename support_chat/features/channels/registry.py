import logging
from typing import Dict, List

from ...core.config import Settings
from ...core.exceptions import NotFoundError
from .base import Channel
from .telegram import TelegramChannel
from .web import WebChannel
from .whatsapp import WhatsAppChannel

logger = logging.getLogger(__name__)


class ChannelRegistry:
    def __init__(self, channels: List[Channel] = ()):
        self._channels: Dict[str, Channel] = {}
        for channel in channels:
            self.register(channel)

    def register(self, channel: Channel):
        self._channels[channel.type] = channel

    def get(self, channel_type: str) -> Channel:
        """
        Raises:
            NotFoundError: unknown or disabled channel
        """
        channel = self._channels.get(channel_type)
        if channel is None or not channel.enabled:
            raise NotFoundError(f"Channel {channel_type} is not enabled")
        return channel

    def enabled(self) -> List[Channel]:
        return [c for c in self._channels.values() if c.enabled]

    async def initialize_all(self):
        for channel in self.enabled():
            await channel.initialize()
        logger.info(f"📡 Channels enabled: {', '.join(c.type for c in self.enabled()) or 'none'}")

    async def shutdown_all(self):
        for channel in self._channels.values():
            await channel.shutdown()


def build_channels(settings: Settings) -> ChannelRegistry:
    return ChannelRegistry([
        WebChannel(enabled=True),
        TelegramChannel(
            settings.TELEGRAM_BOT_TOKEN,
            webhook_secret=settings.TELEGRAM_WEBHOOK_SECRET,
            enabled=settings.TELEGRAM_ENABLED,
        ),
        WhatsAppChannel(
            settings.WHATSAPP_ACCESS_TOKEN,
            settings.WHATSAPP_PHONE_NUMBER_ID,
            verify_token=settings.WHATSAPP_VERIFY_TOKEN,
            enabled=settings.WHATSAPP_ENABLED,
        ),
    ])
