"""
Change log of authored material
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Uuid

from quimica.core.database import Base


class HistoryAction(str, Enum):
    """Recorded change kinds"""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class HistoryEntry(Base):
    """Snapshot of an entity taken when it was created, updated or deleted"""
    __tablename__ = "history_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(50), nullable=False, default="content", index=True)
    entity_id = Column(Integer, nullable=True)
    action = Column(String(20), nullable=False)
    at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    snapshot = Column(JSON, nullable=False, default=dict)

    def __repr__(self):
        return f"<HistoryEntry(id={self.id}, action={self.action}, entity_id={self.entity_id})>"
