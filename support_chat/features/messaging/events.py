import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class EventType(str, enum.Enum):
    MESSAGE_RECEIVED = "message.received"
    MESSAGE_SENT = "message.sent"
    CONVERSATION_STARTED = "conversation.started"
    REQUEST_FAILED = "request.failed"


@dataclass
class DomainEvent:
    type: EventType
    conversation_id: Optional[str]
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
