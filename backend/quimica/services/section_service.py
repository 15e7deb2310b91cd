"""
Service for ordered lesson sections
"""
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from quimica.core.logging_config import LoggingConfig
from quimica.models.lesson import Lesson, LessonSection, SectionType
from quimica.models.progress import SectionProgress

logger = LoggingConfig.get_logger(__name__)

ORDER_STEP = 10

_UPDATABLE_FIELDS = (
    "order", "section_type", "content_id", "quiz_id", "model_id", "title",
    "is_required", "requirements",
)
_TARGET_FIELD = {
    SectionType.CONTENT.value: "content_id",
    SectionType.QUIZ.value: "quiz_id",
    SectionType.MODEL.value: "model_id",
}


class SectionService:
    """Service for lesson section CRUD, ordering and prerequisite locks"""

    def __init__(self, db: Session):
        self.db = db

    def list_sections(self, lesson_id: int) -> List[LessonSection]:
        return (
            self.db.query(LessonSection)
            .filter(LessonSection.lesson_id == lesson_id)
            .order_by(LessonSection.order.asc(), LessonSection.id.asc())
            .all()
        )

    def list_full_sections(self, lesson_id: int, user_id: Optional[UUID] = None) -> List[Dict[str, Any]]:
        """
        Sections with their content, quiz or model and the user's progress

        A section is locked while any section listed in its requirements is
        not completed by the user. Without a user, every section with
        requirements is locked.

        Returns:
            List of dicts with keys section, progress and locked
        """
        sections = (
            self.db.query(LessonSection)
            .options(
                joinedload(LessonSection.content),
                joinedload(LessonSection.quiz),
                joinedload(LessonSection.model),
            )
            .filter(LessonSection.lesson_id == lesson_id)
            .order_by(LessonSection.order.asc(), LessonSection.id.asc())
            .all()
        )

        progress_by_section = {}
        if user_id is not None and sections:
            rows = (
                self.db.query(SectionProgress)
                .filter(
                    SectionProgress.user_id == user_id,
                    SectionProgress.section_id.in_([section.id for section in sections]),
                )
                .all()
            )
            progress_by_section = {row.section_id: row for row in rows}

        completed = {section_id for section_id, row in progress_by_section.items() if row.completed}
        return [
            {
                "section": section,
                "progress": progress_by_section.get(section.id),
                "locked": any(req not in completed for req in (section.requirements or [])),
            }
            for section in sections
        ]

    def get_section(self, section_id: int) -> Optional[LessonSection]:
        return self.db.query(LessonSection).filter(LessonSection.id == section_id).first()

    def next_order(self, lesson_id: int) -> int:
        current = (
            self.db.query(func.max(LessonSection.order))
            .filter(LessonSection.lesson_id == lesson_id)
            .scalar()
        )
        return (current or 0) + ORDER_STEP

    def _validate(self, section: LessonSection):
        if section.section_type not in _TARGET_FIELD:
            raise ValueError(f"Invalid section type: {section.section_type}")
        target = _TARGET_FIELD[section.section_type]
        if getattr(section, target) is None:
            raise ValueError(f"A {section.section_type} section needs {target}")

        requirements = []
        for requirement in section.requirements or []:
            if requirement not in requirements:
                requirements.append(requirement)
        if section.id is not None and section.id in requirements:
            raise ValueError("A section cannot require itself")
        if requirements:
            found = {
                row[0]
                for row in self.db.query(LessonSection.id).filter(
                    LessonSection.id.in_(requirements),
                    LessonSection.lesson_id == section.lesson_id,
                ).all()
            }
            missing = [requirement for requirement in requirements if requirement not in found]
            if missing:
                raise ValueError(f"Required sections not found in this lesson: {missing}")
        section.requirements = requirements

    def create_section(self, lesson_id: int, section_type: str, **fields) -> LessonSection:
        """
        Append a section to a lesson

        Args:
            lesson_id: Owning lesson
            section_type: content, quiz or model
            **fields: order (defaults to the next step), content_id, quiz_id,
                model_id, title, is_required, requirements

        Raises:
            ValueError: If the lesson is missing, the type is unknown, the
                matching target id is absent or a requirement is not a section
                of the lesson
        """
        if not self.db.query(Lesson.id).filter(Lesson.id == lesson_id).first():
            raise ValueError(f"Lesson {lesson_id} not found")

        values = {key: value for key, value in fields.items() if key in _UPDATABLE_FIELDS}
        if values.get("order") is None:
            values["order"] = self.next_order(lesson_id)
        if values.get("is_required") is None:
            values["is_required"] = True
        values["requirements"] = list(values.get("requirements") or [])
        values["section_type"] = section_type

        section = LessonSection(lesson_id=lesson_id, **values)
        self._validate(section)
        try:
            self.db.add(section)
            self.db.commit()
            self.db.refresh(section)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating section in lesson {lesson_id}: {e}", exc_info=True)
            raise

        logger.info(f"Created {section.section_type} section {section.id} in lesson {lesson_id}")
        return section

    def update_section(self, section_id: int, **fields) -> Optional[LessonSection]:
        section = self.get_section(section_id)
        if not section:
            return None
        for key, value in fields.items():
            if key not in _UPDATABLE_FIELDS:
                continue
            if key == "requirements":
                value = list(value or [])
            setattr(section, key, value)

        try:
            self._validate(section)
            self.db.commit()
            self.db.refresh(section)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating section {section_id}: {e}", exc_info=True)
            raise
        return section

    def delete_section(self, section_id: int) -> bool:
        section = self.get_section(section_id)
        if not section:
            return False
        try:
            dependents = (
                self.db.query(LessonSection)
                .filter(LessonSection.lesson_id == section.lesson_id, LessonSection.id != section_id)
                .all()
            )
            for other in dependents:
                if section_id in (other.requirements or []):
                    # new list so the JSON column is flagged dirty
                    other.requirements = [req for req in other.requirements if req != section_id]
            self.db.delete(section)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting section {section_id}: {e}", exc_info=True)
            raise
        return True

    def reorder_sections(self, lesson_id: int, orders: List[Dict[str, int]]) -> List[LessonSection]:
        """
        Apply new positions to sections of a lesson

        Args:
            lesson_id: Lesson whose sections move
            orders: Items of the form {"id": section_id, "order": position}

        Raises:
            ValueError: If an id does not belong to the lesson
        """
        sections = {section.id: section for section in self.list_sections(lesson_id)}
        unknown = [item["id"] for item in orders if item["id"] not in sections]
        if unknown:
            raise ValueError(f"Sections not found in lesson {lesson_id}: {unknown}")

        for item in orders:
            sections[item["id"]].order = item["order"]
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error reordering sections of lesson {lesson_id}: {e}", exc_info=True)
            raise
        return self.list_sections(lesson_id)
