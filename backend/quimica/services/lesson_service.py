"""
Service for managing lessons
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from quimica.core.logging_config import LoggingConfig
from quimica.models.ar_model import ARModel
from quimica.models.content import ContentLesson
from quimica.models.lesson import Lesson
from quimica.models.quiz import Quiz

logger = LoggingConfig.get_logger(__name__)

_UPDATABLE_FIELDS = ("title", "description", "level", "thumbnail_url")


class LessonService:
    """Service for lesson CRUD and lookups"""

    def __init__(self, db: Session):
        self.db = db

    def list_lessons(self) -> List[Lesson]:
        """All lessons ordered by title"""
        return self.db.query(Lesson).order_by(Lesson.title.asc(), Lesson.id.asc()).all()

    def list_lessons_by_teacher(self, user_id: UUID, is_admin: bool = False) -> List[Lesson]:
        """
        Lessons a teacher authored; admins see every lesson

        Args:
            user_id: Teacher id
            is_admin: Return all lessons

        Returns:
            Lessons ordered by title
        """
        query = self.db.query(Lesson)
        if not is_admin:
            query = query.filter(Lesson.created_by == user_id)
        return query.order_by(Lesson.title.asc(), Lesson.id.asc()).all()

    def search_lessons(self, query: Optional[str], limit: int = 10) -> List[Lesson]:
        """
        Case-insensitive title search

        Args:
            query: Text to look for in lesson titles
            limit: Maximum number of lessons returned

        Returns:
            Matching lessons ordered by title, empty for a blank query
        """
        text = (query or "").strip()
        if not text:
            return []
        return (
            self.db.query(Lesson)
            .filter(func.lower(Lesson.title).contains(text.lower(), autoescape=True))
            .order_by(Lesson.title.asc())
            .limit(limit)
            .all()
        )

    def get_lesson(self, lesson_id: int) -> Optional[Lesson]:
        return self.db.query(Lesson).filter(Lesson.id == lesson_id).first()

    def get_full_lesson(self, lesson_id: int) -> Optional[Dict[str, Any]]:
        """
        Lesson with its contents (link order), 3D models and quizzes

        Returns:
            Dict with keys lesson, contents, models, quizzes; None if the lesson is missing
        """
        lesson = self.get_lesson(lesson_id)
        if not lesson:
            return None

        links = (
            self.db.query(ContentLesson)
            .filter(ContentLesson.lesson_id == lesson_id)
            .order_by(ContentLesson.order.asc())
            .all()
        )
        models = (
            self.db.query(ARModel)
            .filter(ARModel.lesson_id == lesson_id)
            .order_by(ARModel.name.asc())
            .all()
        )
        quizzes = (
            self.db.query(Quiz)
            .filter(Quiz.lesson_id == lesson_id)
            .order_by(Quiz.order.is_(None), Quiz.order.asc(), Quiz.id.asc())
            .all()
        )
        return {
            "lesson": lesson,
            "contents": [link.content for link in links],
            "models": models,
            "quizzes": quizzes,
        }

    def create_lesson(
        self,
        title: str,
        description: Optional[str] = None,
        level: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        created_by: Optional[UUID] = None,
    ) -> Lesson:
        """
        Create a lesson

        Raises:
            ValueError: If the title is blank
        """
        title = (title or "").strip()
        if not title:
            raise ValueError("Lesson title is required")

        lesson = Lesson(
            title=title,
            description=description,
            level=level,
            thumbnail_url=thumbnail_url,
            created_by=created_by,
        )
        try:
            self.db.add(lesson)
            self.db.commit()
            self.db.refresh(lesson)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating lesson: {e}", exc_info=True)
            raise

        logger.info(f"Created lesson {lesson.id}: {lesson.title}")
        return lesson

    def update_lesson(self, lesson_id: int, **fields) -> Optional[Lesson]:
        """
        Update lesson fields; unknown keys are ignored

        Raises:
            ValueError: If the title is set to a blank value
        """
        lesson = self.get_lesson(lesson_id)
        if not lesson:
            return None

        for key, value in fields.items():
            if key not in _UPDATABLE_FIELDS:
                continue
            if key == "title":
                value = (value or "").strip()
                if not value:
                    raise ValueError("Lesson title is required")
            setattr(lesson, key, value)
        lesson.updated_at = datetime.utcnow()

        try:
            self.db.commit()
            self.db.refresh(lesson)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating lesson {lesson_id}: {e}", exc_info=True)
            raise
        return lesson

    def delete_lesson(self, lesson_id: int) -> bool:
        """Delete a lesson with its sections, quizzes, content links and progress"""
        lesson = self.get_lesson(lesson_id)
        if not lesson:
            return False
        try:
            self.db.delete(lesson)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting lesson {lesson_id}: {e}", exc_info=True)
            raise
        logger.info(f"Deleted lesson {lesson_id}")
        return True
