"""
Service for content blocks and their lesson links
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from quimica.core.logging_config import LoggingConfig
from quimica.core.permissions import is_admin
from quimica.models.content import Content, ContentLesson
from quimica.models.history import HistoryAction
from quimica.models.lesson import Lesson
from quimica.models.user import User
from quimica.services.history_service import HistoryService

logger = LoggingConfig.get_logger(__name__)

MIN_TITLE_LENGTH = 3

_UPDATABLE_FIELDS = (
    "title", "description", "body_html", "order", "content_type", "author",
    "difficulty", "safety", "tags", "resources",
)


def clean_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Trimmed, non-empty, de-duplicated tags in their original order"""
    seen = []
    for tag in tags or []:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def clean_resources(resources: Optional[Iterable[Any]]) -> List[Any]:
    """Resources without blank entries"""
    cleaned = []
    for resource in resources or []:
        if resource is None:
            continue
        if isinstance(resource, str):
            resource = resource.strip()
            if not resource:
                continue
        cleaned.append(resource)
    return cleaned


def content_snapshot(content: Content) -> Dict[str, Any]:
    """JSON view of a content block as stored in the history"""
    return {
        "title": content.title,
        "description": content.description,
        "type": content.content_type,
        "author": content.author,
        "difficulty": content.difficulty,
        "tags": list(content.tags or []),
        "resources": list(content.resources or []),
        "safety": content.safety,
        "version": content.version,
        "created_at": content.created_at.isoformat() if content.created_at else None,
    }


class ContentService:
    """Service for content CRUD, lesson links and change history"""

    def __init__(self, db: Session):
        self.db = db
        self.history = HistoryService(db)

    def _ordered(self, query):
        return query.order_by(Content.order.is_(None), Content.order.asc(), Content.id.asc())

    def list_contents(self) -> List[Content]:
        return self._ordered(self.db.query(Content)).all()

    def list_contents_by_teacher(self, user_id: UUID, is_admin: bool = False) -> List[Content]:
        """
        Contents attached to a teacher's lessons; admins get every content

        Each returned Content exposes `lessons` in link order.
        """
        query = self.db.query(Content)
        if not is_admin:
            linked_ids = (
                self.db.query(ContentLesson.content_id)
                .join(Lesson, Lesson.id == ContentLesson.lesson_id)
                .filter(Lesson.created_by == user_id)
            )
            query = query.filter(
                (Content.id.in_(linked_ids)) | (Content.created_by == user_id)
            )
        return self._ordered(query).all()

    def list_contents_by_lesson(self, lesson_id: int) -> List[Content]:
        """Contents of a lesson in link order"""
        return (
            self.db.query(Content)
            .join(ContentLesson, ContentLesson.content_id == Content.id)
            .filter(ContentLesson.lesson_id == lesson_id)
            .order_by(ContentLesson.order.asc(), Content.id.asc())
            .all()
        )

    def get_content(self, content_id: int) -> Optional[Content]:
        return self.db.query(Content).filter(Content.id == content_id).first()

    def can_manage(self, user: User, content: Content) -> bool:
        """Admins, the author, and owners of any linked lesson may edit a content"""
        if is_admin(user):
            return True
        if content.created_by is not None and content.created_by == user.id:
            return True
        return any(lesson.created_by == user.id for lesson in content.lessons)

    def next_order(self) -> int:
        current = self.db.query(func.max(Content.order)).scalar()
        return (current or 0) + 1

    def _validate_title(self, title: Optional[str]) -> str:
        title = (title or "").strip()
        if len(title) < MIN_TITLE_LENGTH:
            raise ValueError(f"Title must be at least {MIN_TITLE_LENGTH} characters")
        return title

    def _validate_lessons(self, lesson_ids: Optional[List[int]]) -> List[int]:
        ordered = []
        for lesson_id in lesson_ids or []:
            if lesson_id not in ordered:
                ordered.append(lesson_id)
        if not ordered:
            raise ValueError("Select at least one lesson")
        found = {
            row[0]
            for row in self.db.query(Lesson.id).filter(Lesson.id.in_(ordered)).all()
        }
        missing = [lesson_id for lesson_id in ordered if lesson_id not in found]
        if missing:
            raise ValueError(f"Lessons not found: {missing}")
        return ordered

    def _set_links(self, content: Content, lesson_ids: List[int]):
        existing = {link.lesson_id: link for link in content.lesson_links}
        links = []
        for index, lesson_id in enumerate(lesson_ids):
            link = existing.pop(lesson_id, None) or ContentLesson(lesson_id=lesson_id)
            link.order = index
            links.append(link)
        # delete-orphan removes whatever is left in `existing`
        content.lesson_links = links

    def create_content(
        self,
        title: str,
        lesson_ids: List[int],
        user_id: Optional[UUID] = None,
        **fields,
    ) -> Content:
        """
        Create a content block attached to one or more lessons

        Args:
            title: At least three characters after trimming
            lesson_ids: Lessons to attach, link order follows the list
            user_id: Author
            **fields: description, body_html, order, content_type, author,
                difficulty, safety, tags, resources

        Returns:
            Created Content

        Raises:
            ValueError: If the title is too short or no valid lesson is given
        """
        title = self._validate_title(title)
        lesson_ids = self._validate_lessons(lesson_ids)

        values = {key: value for key, value in fields.items() if key in _UPDATABLE_FIELDS}
        values["tags"] = clean_tags(values.get("tags"))
        values["resources"] = clean_resources(values.get("resources"))
        if values.get("order") is None:
            values["order"] = self.next_order()

        now = datetime.utcnow()
        values["title"] = title
        content = Content(
            **values,
            version=1,
            created_by=user_id,
            updated_by=user_id,
            created_at=now,
            updated_at=now,
        )

        try:
            self.db.add(content)
            self.db.flush()
            self._set_links(content, lesson_ids)
            self.history.record(
                HistoryAction.CREATE, content.id, content_snapshot(content), user_id, commit=False
            )
            self.db.commit()
            self.db.refresh(content)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating content: {e}", exc_info=True)
            raise

        logger.info(f"Created content {content.id}: {content.title}")
        return content

    def update_content(
        self,
        content_id: int,
        user_id: Optional[UUID] = None,
        lesson_ids: Optional[List[int]] = None,
        **fields,
    ) -> Optional[Content]:
        """
        Update a content block, bump its version and log the change

        Args:
            content_id: Content to update
            user_id: Editor
            lesson_ids: When given, replaces the lesson links
            **fields: Fields to change; unknown keys are ignored

        Returns:
            Updated Content, or None if it does not exist

        Raises:
            ValueError: On a too-short title or an empty lesson list
        """
        content = self.get_content(content_id)
        if not content:
            return None

        # Nothing touches the content until the input is valid
        values = {key: value for key, value in fields.items() if key in _UPDATABLE_FIELDS}
        if "title" in values:
            values["title"] = self._validate_title(values["title"])
        if lesson_ids is not None:
            lesson_ids = self._validate_lessons(lesson_ids)
        if "tags" in values:
            values["tags"] = clean_tags(values["tags"])
        if "resources" in values:
            values["resources"] = clean_resources(values["resources"])

        for key, value in values.items():
            setattr(content, key, value)

        content.version = (content.version or 0) + 1
        content.updated_at = datetime.utcnow()
        content.updated_by = user_id

        try:
            if lesson_ids is not None:
                self._set_links(content, lesson_ids)
            self.history.record(
                HistoryAction.UPDATE, content.id, content_snapshot(content), user_id, commit=False
            )
            self.db.commit()
            self.db.refresh(content)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating content {content_id}: {e}", exc_info=True)
            raise

        logger.info(f"Updated content {content_id} to version {content.version}")
        return content

    def delete_content(self, content_id: int, user_id: Optional[UUID] = None) -> bool:
        """Delete a content block and its links; the last snapshot goes to history"""
        content = self.get_content(content_id)
        if not content:
            return False

        snapshot = content_snapshot(content)
        try:
            self.db.delete(content)
            self.history.record(HistoryAction.DELETE, content_id, snapshot, user_id, commit=False)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting content {content_id}: {e}", exc_info=True)
            raise

        logger.info(f"Deleted content {content_id}")
        return True

    def add_lesson(self, content_id: int, lesson_id: int, order: Optional[int] = None) -> ContentLesson:
        """
        Attach a lesson to a content block

        Raises:
            ValueError: If content or lesson is missing, or the link already exists
        """
        if not self.get_content(content_id):
            raise ValueError(f"Content {content_id} not found")
        if not self.db.query(Lesson.id).filter(Lesson.id == lesson_id).first():
            raise ValueError(f"Lesson {lesson_id} not found")

        existing = self.db.query(ContentLesson).filter(
            ContentLesson.content_id == content_id,
            ContentLesson.lesson_id == lesson_id,
        ).first()
        if existing:
            raise ValueError("Lesson is already linked to this content")

        if order is None:
            order = self.db.query(func.count()).select_from(ContentLesson).filter(
                ContentLesson.content_id == content_id
            ).scalar() or 0

        link = ContentLesson(content_id=content_id, lesson_id=lesson_id, order=order)
        try:
            self.db.add(link)
            self.db.commit()
            self.db.refresh(link)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error linking lesson {lesson_id} to content {content_id}: {e}", exc_info=True)
            raise
        return link

    def remove_lesson(self, content_id: int, lesson_id: int) -> bool:
        link = self.db.query(ContentLesson).filter(
            ContentLesson.content_id == content_id,
            ContentLesson.lesson_id == lesson_id,
        ).first()
        if not link:
            return False
        try:
            self.db.delete(link)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error unlinking lesson {lesson_id} from content {content_id}: {e}", exc_info=True)
            raise
        return True

    def replace_lessons(self, content_id: int, lesson_ids: List[int]) -> Optional[Content]:
        """
        Replace every lesson link of a content; order follows the given list

        Raises:
            ValueError: If the list is empty or references missing lessons
        """
        content = self.get_content(content_id)
        if not content:
            return None
        lesson_ids = self._validate_lessons(lesson_ids)
        try:
            self._set_links(content, lesson_ids)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error replacing lessons of content {content_id}: {e}", exc_info=True)
            raise
        self.db.refresh(content)
        return content
