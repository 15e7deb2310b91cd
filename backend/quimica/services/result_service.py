"""
Service for recorded quiz results
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from quimica.core.logging_config import LoggingConfig
from quimica.models.quiz import Quiz, QuizResult

logger = LoggingConfig.get_logger(__name__)

_UPDATABLE_FIELDS = ("score", "total", "passed", "time_spent", "answers", "completed_at")


class ResultService:
    """Read and write access to quiz results"""

    def __init__(self, db: Session):
        self.db = db

    def get_result(self, result_id: int) -> Optional[QuizResult]:
        return self.db.query(QuizResult).filter(QuizResult.id == result_id).first()

    def create_result(self, quiz_id: int, user_id: UUID, **fields) -> QuizResult:
        """
        Store a result row

        Raises:
            ValueError: If the quiz does not exist
        """
        if not self.db.query(Quiz.id).filter(Quiz.id == quiz_id).first():
            raise ValueError(f"Quiz {quiz_id} not found")

        values = {key: value for key, value in fields.items() if key in _UPDATABLE_FIELDS}
        if "started_at" in fields and fields["started_at"] is not None:
            values["started_at"] = fields["started_at"]
        result = QuizResult(quiz_id=quiz_id, user_id=user_id, **values)
        try:
            self.db.add(result)
            self.db.commit()
            self.db.refresh(result)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating result for quiz {quiz_id}: {e}", exc_info=True)
            raise
        return result

    def list_results_by_user_and_quiz(self, user_id: UUID, quiz_id: int) -> List[QuizResult]:
        """Attempts of one student on one quiz, newest start first"""
        return (
            self.db.query(QuizResult)
            .filter(QuizResult.user_id == user_id, QuizResult.quiz_id == quiz_id)
            .order_by(QuizResult.started_at.desc(), QuizResult.id.desc())
            .all()
        )

    def list_results_by_user(self, user_id: UUID) -> List[QuizResult]:
        return (
            self.db.query(QuizResult)
            .options(joinedload(QuizResult.quiz))
            .filter(QuizResult.user_id == user_id)
            .order_by(QuizResult.started_at.desc(), QuizResult.id.desc())
            .all()
        )

    def get_best_result(self, user_id: UUID, quiz_id: int) -> Optional[QuizResult]:
        """Highest scoring submitted attempt, or None"""
        return (
            self.db.query(QuizResult)
            .filter(
                QuizResult.user_id == user_id,
                QuizResult.quiz_id == quiz_id,
                QuizResult.completed_at.isnot(None),
            )
            .order_by(QuizResult.score.desc(), QuizResult.completed_at.asc())
            .first()
        )

    def list_results_by_quiz(self, quiz_id: int) -> List[QuizResult]:
        """Submitted attempts of a quiz with their students, most recent completion first"""
        return (
            self.db.query(QuizResult)
            .options(joinedload(QuizResult.user))
            .filter(QuizResult.quiz_id == quiz_id, QuizResult.completed_at.isnot(None))
            .order_by(QuizResult.completed_at.desc(), QuizResult.id.desc())
            .all()
        )

    def update_result(self, result_id: int, **fields) -> Optional[QuizResult]:
        result = self.get_result(result_id)
        if not result:
            return None
        for key, value in fields.items():
            if key in _UPDATABLE_FIELDS:
                setattr(result, key, value)
        try:
            self.db.commit()
            self.db.refresh(result)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating result {result_id}: {e}", exc_info=True)
            raise
        return result
