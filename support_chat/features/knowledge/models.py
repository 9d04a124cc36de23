from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from ...core.database import Base, new_uuid, utcnow


class KnowledgeEntry(Base):
    """Фрагмент базы знаний, подставляемый в системный промпт."""
    __tablename__ = "knowledge_entries"

    id = Column(String(36), primary_key=True, default=new_uuid)
    category = Column(String(100), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False, default=0)  # выше = важнее
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_knowledge_category_active", "category", "is_active"),
    )

    def __repr__(self):
        return f"<KnowledgeEntry {self.category}/{self.title}>"
