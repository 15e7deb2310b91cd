"""
Service for lesson and section progress of students
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from quimica.core.logging_config import LoggingConfig
from quimica.core.utils import round_half_up
from quimica.models.lesson import LessonSection
from quimica.models.progress import Progress, SectionProgress

logger = LoggingConfig.get_logger(__name__)

_SECTION_FIELDS = ("completed", "score", "time_spent", "attempts")


class ProgressService:
    """Tracks per-lesson completion and per-section progress"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lesson progress
    # ------------------------------------------------------------------

    def get_progress_by_user(self, user_id: UUID) -> List[Progress]:
        """Progress rows of a student with their lessons, most recent access first"""
        return (
            self.db.query(Progress)
            .options(joinedload(Progress.lesson))
            .filter(Progress.user_id == user_id)
            .order_by(Progress.last_access.desc(), Progress.id.desc())
            .all()
        )

    def get_progress(self, user_id: UUID, lesson_id: int) -> Optional[Progress]:
        return (
            self.db.query(Progress)
            .filter(Progress.user_id == user_id, Progress.lesson_id == lesson_id)
            .first()
        )

    def touch_lesson(self, user_id: UUID, lesson_id: int, **fields) -> Progress:
        """
        Record an access to a lesson, creating the progress row when missing

        Args:
            user_id: Student
            lesson_id: Lesson being accessed
            **fields: Optional completed / score values to store as well

        Returns:
            The stored Progress
        """
        progress = self.get_progress(user_id, lesson_id)
        if progress is None:
            progress = Progress(user_id=user_id, lesson_id=lesson_id, completed=False, score=0)
            self.db.add(progress)

        for key in ("completed", "score"):
            if fields.get(key) is not None:
                setattr(progress, key, fields[key])
        progress.last_access = datetime.utcnow()

        try:
            self.db.commit()
            self.db.refresh(progress)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating progress of lesson {lesson_id}: {e}", exc_info=True)
            raise
        return progress

    def apply_quiz_result(
        self,
        user_id: UUID,
        lesson_id: int,
        score: int,
        passed: bool,
        passing_score: int,
        commit: bool = True,
    ) -> Progress:
        """
        Fold a submitted quiz into the lesson progress

        The best score is kept. An existing row stays completed when its
        previous score already reached the passing score.
        """
        progress = self.get_progress(user_id, lesson_id)
        now = datetime.utcnow()
        if progress is None:
            progress = Progress(
                user_id=user_id,
                lesson_id=lesson_id,
                score=score,
                completed=bool(passed),
                last_access=now,
            )
            self.db.add(progress)
        else:
            previous = progress.score or 0
            progress.score = max(previous, score)
            progress.completed = bool(passed) or previous >= passing_score
            progress.last_access = now

        if commit:
            self.db.commit()
            self.db.refresh(progress)
        return progress

    def student_summary(self, user_id: UUID) -> Dict[str, Any]:
        progress = self.get_progress_by_user(user_id)
        return {
            "progress": progress,
            "total_lessons": len(progress),
            "completed_lessons": sum(1 for row in progress if row.completed),
        }

    # ------------------------------------------------------------------
    # Section progress
    # ------------------------------------------------------------------

    def _sections(self, lesson_ids: Iterable[int]) -> Dict[int, List[LessonSection]]:
        lesson_ids = list(lesson_ids)
        grouped = {lesson_id: [] for lesson_id in lesson_ids}
        if not lesson_ids:
            return grouped
        sections = (
            self.db.query(LessonSection)
            .filter(LessonSection.lesson_id.in_(lesson_ids))
            .order_by(LessonSection.order.asc())
            .all()
        )
        for section in sections:
            grouped[section.lesson_id].append(section)
        return grouped

    def _completed_section_ids(self, user_id: UUID, section_ids: Iterable[int]) -> set:
        section_ids = list(section_ids)
        if not section_ids:
            return set()
        rows = (
            self.db.query(SectionProgress.section_id)
            .filter(
                SectionProgress.user_id == user_id,
                SectionProgress.section_id.in_(section_ids),
                SectionProgress.completed.is_(True),
            )
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def _required(sections: List[LessonSection]) -> List[LessonSection]:
        required = [section for section in sections if section.is_required]
        return required or sections

    def completion_percents(self, user_id: UUID, lesson_ids: Iterable[int]) -> Dict[int, int]:
        """
        Percentage of required sections a student completed, per lesson

        All sections count when none is marked required. A lesson without
        sections reports 100.
        """
        grouped = self._sections(lesson_ids)
        all_ids = [section.id for sections in grouped.values() for section in sections]
        completed = self._completed_section_ids(user_id, all_ids)

        percents = {}
        for lesson_id, sections in grouped.items():
            required = self._required(sections)
            if not required:
                percents[lesson_id] = 100
                continue
            done = sum(1 for section in required if section.id in completed)
            value = int(round_half_up(done / len(required) * 100))
            percents[lesson_id] = min(100, max(0, value))
        return percents

    def get_section_progress(self, user_id: UUID, section_id: int) -> Optional[SectionProgress]:
        return (
            self.db.query(SectionProgress)
            .filter(SectionProgress.user_id == user_id, SectionProgress.section_id == section_id)
            .first()
        )

    def list_section_progress(self, user_id: UUID, lesson_id: int) -> List[SectionProgress]:
        return (
            self.db.query(SectionProgress)
            .join(LessonSection, LessonSection.id == SectionProgress.section_id)
            .filter(SectionProgress.user_id == user_id, LessonSection.lesson_id == lesson_id)
            .order_by(LessonSection.order.asc())
            .all()
        )

    def upsert_section_progress(self, user_id: UUID, section_id: int, **fields) -> SectionProgress:
        """
        Create or update a student's progress on a section

        Stamps updated_at, and completed_at the first time the section is
        marked completed.

        Raises:
            ValueError: If the section does not exist
        """
        if not self.db.query(LessonSection.id).filter(LessonSection.id == section_id).first():
            raise ValueError(f"Section {section_id} not found")

        progress = self.get_section_progress(user_id, section_id)
        if progress is None:
            progress = SectionProgress(
                user_id=user_id,
                section_id=section_id,
                completed=False,
                time_spent=0,
                attempts=0,
            )
            self.db.add(progress)

        for key, value in fields.items():
            if key in _SECTION_FIELDS and value is not None:
                setattr(progress, key, value)

        now = datetime.utcnow()
        if progress.completed and progress.completed_at is None:
            progress.completed_at = now
        progress.updated_at = now

        try:
            self.db.commit()
            self.db.refresh(progress)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error saving progress of section {section_id}: {e}", exc_info=True)
            raise
        return progress

    def mark_section_completed(
        self, user_id: UUID, section_id: int, score: Optional[int] = None
    ) -> SectionProgress:
        return self.upsert_section_progress(user_id, section_id, completed=True, score=score)

    def add_section_time(self, user_id: UUID, section_id: int, seconds: int) -> SectionProgress:
        current = self.get_section_progress(user_id, section_id)
        spent = (current.time_spent or 0) if current else 0
        return self.upsert_section_progress(
            user_id, section_id, time_spent=spent + max(0, int(seconds))
        )

    def increment_section_attempts(self, user_id: UUID, section_id: int) -> SectionProgress:
        current = self.get_section_progress(user_id, section_id)
        attempts = (current.attempts or 0) if current else 0
        return self.upsert_section_progress(user_id, section_id, attempts=attempts + 1)

    def is_lesson_completed(self, user_id: UUID, lesson_id: int) -> bool:
        """True when every required section is completed, or the lesson requires none"""
        sections = self._sections([lesson_id])[lesson_id]
        required = [section for section in sections if section.is_required]
        if not required:
            return True
        completed = self._completed_section_ids(user_id, [section.id for section in required])
        return all(section.id in completed for section in required)

    def lesson_stats(self, user_id: UUID, lesson_id: int) -> Dict[str, int]:
        sections = self._sections([lesson_id])[lesson_id]
        rows = self.list_section_progress(user_id, lesson_id)
        completed = sum(1 for row in rows if row.completed)
        total = len(sections)
        return {
            "total_sections": total,
            "completed_sections": completed,
            "percent_completed": int(round_half_up(completed / total * 100)) if total else 100,
            "total_time_spent": sum(row.time_spent or 0 for row in rows),
        }
