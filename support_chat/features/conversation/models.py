import enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from ...core.database import Base, new_uuid, utcnow


class MessageSender(str, enum.Enum):
    USER = "user"
    AI = "ai"


class ConversationStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class Conversation(Base):
    """Диалог с пользователем. Никогда не удаляется, закрытие мягкое."""
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=new_uuid)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    # имя "metadata" занято в declarative-классах
    meta = Column("metadata", JSON, nullable=True)
    status = Column(String(20), nullable=False, default=ConversationStatus.ACTIVE.value)

    # Связи
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.created_at",
    )

    def __repr__(self):
        return f"<Conversation {self.id} ({self.status})>"


class Message(Base):
    """Сообщение диалога. Неизменяемое, только добавление."""
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_uuid)
    conversation_id = Column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender = Column(String(10), nullable=False)
    text = Column(Text, nullable=False)
    channel = Column(String(20), nullable=False, default="web")
    channel_user_id = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    meta = Column("metadata", JSON, nullable=True)  # llm_model, tokens, processing_time_ms, tool_calls

    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        Index("idx_messages_conversation_created", "conversation_id", "created_at"),
    )

    def __repr__(self):
        return f"<Message {self.id} {self.sender} in {self.conversation_id}>"
