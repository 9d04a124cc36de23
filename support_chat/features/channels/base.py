from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


@dataclass
class IncomingMessage:
    text: str
    channel_user_id: str
    channel: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OutgoingMessage:
    text: str
    channel_user_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class Channel(Protocol):
    """Messaging platform adapter: parse inbound webhooks, deliver replies."""

    type: str
    name: str
    enabled: bool

    async def initialize(self) -> None:
        ...

    async def shutdown(self) -> None:
        ...

    async def send_message(self, message: OutgoingMessage) -> None:
        ...

    def verify_webhook(self, payload: Dict[str, Any], signature: Optional[str] = None) -> bool:
        ...

    def parse_incoming_message(self, payload: Dict[str, Any]) -> Optional[IncomingMessage]:
        ...
