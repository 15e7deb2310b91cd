"""
Change history of authored content
"""
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from quimica.core.logging_config import LoggingConfig
from quimica.models.history import HistoryAction, HistoryEntry

logger = LoggingConfig.get_logger(__name__)

DateBound = Union[date, datetime, None]

ALL = "all"


def _lower_bound(value: DateBound) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _upper_bound(value: DateBound) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.combine(value, time.max)


def _is_filter(value: Optional[str]) -> bool:
    return bool(value) and value != ALL


class HistoryService:
    """Records snapshots of content changes and filters them for review"""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        action: HistoryAction,
        entity_id: Optional[int],
        snapshot: Dict[str, Any],
        user_id: Optional[UUID] = None,
        entity_type: str = "content",
        commit: bool = True,
    ) -> HistoryEntry:
        """
        Append a history entry

        Args:
            action: create, update or delete
            entity_id: Id of the changed entity
            snapshot: JSON-serializable view of the entity after the change
            user_id: Who made the change
            entity_type: Kind of entity (default: content)
            commit: Commit immediately; pass False to join the caller's transaction

        Returns:
            Created HistoryEntry
        """
        entry = HistoryEntry(
            entity_type=entity_type,
            entity_id=entity_id,
            action=HistoryAction(action).value,
            user_id=user_id,
            snapshot=snapshot,
            at=datetime.utcnow(),
        )
        self.db.add(entry)
        if commit:
            self.db.commit()
            self.db.refresh(entry)
        logger.debug(f"Recorded {entry.action} of {entity_type} {entity_id}")
        return entry

    def list_entries(
        self,
        action: Optional[str] = None,
        author: Optional[str] = None,
        content_type: Optional[str] = None,
        query: Optional[str] = None,
        start: DateBound = None,
        end: DateBound = None,
        entity_type: Optional[str] = None,
    ) -> List[HistoryEntry]:
        """
        List entries newest first, filtered in a single pass

        `all` or an empty value disables a filter. Dates bound `at` inclusively;
        a plain date covers the whole day.
        """
        base = self.db.query(HistoryEntry)
        if entity_type:
            base = base.filter(HistoryEntry.entity_type == entity_type)
        entries = base.order_by(HistoryEntry.at.desc(), HistoryEntry.id.desc()).all()

        needle = (query or "").strip().lower()
        lower = _lower_bound(start)
        upper = _upper_bound(end)

        result = []
        for entry in entries:
            snapshot = entry.snapshot or {}
            if _is_filter(action) and entry.action != action:
                continue
            if _is_filter(author) and snapshot.get("author") != author:
                continue
            if _is_filter(content_type) and snapshot.get("type") != content_type:
                continue
            if needle:
                title = str(snapshot.get("title") or "").lower()
                description = str(snapshot.get("description") or "").lower()
                if needle not in title and needle not in description:
                    continue
            if lower and entry.at < lower:
                continue
            if upper and entry.at > upper:
                continue
            result.append(entry)
        return result

    def facets(self) -> Dict[str, List[str]]:
        """Distinct actions, authors and types present in the history"""
        actions, authors, types = set(), set(), set()
        for entry in self.db.query(HistoryEntry).all():
            snapshot = entry.snapshot or {}
            actions.add(entry.action)
            if snapshot.get("author"):
                authors.add(snapshot["author"])
            if snapshot.get("type"):
                types.add(snapshot["type"])
        return {
            "actions": sorted(actions),
            "authors": sorted(authors),
            "types": sorted(types),
        }

    def clear(self, user_id: Optional[UUID] = None) -> int:
        """
        Delete history entries

        Args:
            user_id: Only delete entries made by this user; None deletes everything

        Returns:
            Number of deleted entries
        """
        query = self.db.query(HistoryEntry)
        if user_id is not None:
            query = query.filter(HistoryEntry.user_id == user_id)
        try:
            count = query.delete(synchronize_session=False)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error clearing history: {e}", exc_info=True)
            raise
        logger.info(f"Cleared {count} history entries")
        return count
