"""
CRUD operations for the knowledge base.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .models import KnowledgeEntry

logger = logging.getLogger(__name__)


class KnowledgeCRUD:
    """CRUD operations over ``knowledge_entries``."""

    def __init__(self, db: Session):
        self.db = db

    def _ordered(self, query):
        return query.order_by(
            KnowledgeEntry.category,
            KnowledgeEntry.priority.desc(),
            KnowledgeEntry.title,
        )

    def get_active(self) -> List[KnowledgeEntry]:
        query = self.db.query(KnowledgeEntry).filter(KnowledgeEntry.is_active.is_(True))
        return self._ordered(query).all()

    def get_by_category(self, category: str) -> List[KnowledgeEntry]:
        query = self.db.query(KnowledgeEntry).filter(
            KnowledgeEntry.category == category,
            KnowledgeEntry.is_active.is_(True),
        )
        return self._ordered(query).all()

    def get(self, entry_id: str) -> Optional[KnowledgeEntry]:
        return self.db.query(KnowledgeEntry).filter(KnowledgeEntry.id == entry_id).first()

    def count(self) -> int:
        return self.db.query(KnowledgeEntry).count()

    def create(self, category: str, title: str, content: str, priority: int = 0) -> KnowledgeEntry:
        entry = KnowledgeEntry(
            category=category,
            title=title,
            content=content,
            priority=priority,
            is_active=True,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.info(f"📚 Knowledge entry added: id={entry.id}, {category}/{title}")
        return entry

    def update(self, entry_id: str, updates: Dict[str, Any]) -> Optional[KnowledgeEntry]:
        entry = self.get(entry_id)
        if entry is None:
            return None
        for field, value in updates.items():
            setattr(entry, field, value)
        self.db.commit()
        self.db.refresh(entry)
        logger.info(f"📝 Knowledge entry updated: id={entry_id}, fields={sorted(updates)}")
        return entry

    def delete(self, entry_id: str) -> bool:
        entry = self.get(entry_id)
        if entry is None:
            return False
        self.db.delete(entry)
        self.db.commit()
        logger.info(f"🗑️ Knowledge entry deleted: id={entry_id}")
        return True
