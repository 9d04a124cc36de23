"""
Pydantic schemas for chat endpoints.

Field names follow the public JSON contract (``sessionId``,
``processingTime``) through aliases.
"""
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return False
    return True


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1, description="Customer message")
    session_id: Optional[str] = Field(None, alias="sessionId", description="Existing conversation id")

    @field_validator("session_id")
    @classmethod
    def validate_session_id(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_uuid(value):
            raise ValueError("sessionId must be a valid UUID")
        return value


class SendMessageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reply: str
    session_id: str = Field(..., alias="sessionId")
    processing_time: int = Field(..., alias="processingTime")


class HistoryMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender: str
    text: str
    timestamp: datetime


class ConversationHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    messages: List[HistoryMessageResponse]
