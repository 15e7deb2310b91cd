"""
Quiz attempts: starting, countdown and scoring of submissions
"""
import math
from datetime import datetime
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from quimica.core.config import get_settings
from quimica.core.errors import AttemptAlreadySubmittedError
from quimica.core.logging_config import LoggingConfig
from quimica.core.metrics import (quiz_attempts_started_total,
                                  quiz_score_percent, quiz_submissions_total)
from quimica.core.utils import format_time, parse_id, percentage
from quimica.models.quiz import Quiz, QuizResult
from quimica.services.progress_service import ProgressService
from quimica.services.quiz_service import QuizService, student_view

logger = LoggingConfig.get_logger(__name__)


def normalize_answers(answers: Optional[Mapping[Any, Any]]) -> Dict[int, int]:
    """Map of question id -> selected answer id, dropping entries that are not ids"""
    normalized = {}
    for question_id, answer_id in (answers or {}).items():
        question_id = parse_id(question_id)
        answer_id = parse_id(answer_id)
        if question_id is not None and answer_id is not None:
            normalized[question_id] = answer_id
    return normalized


def score_answers(quiz: Quiz, answers: Mapping[Any, Any]) -> Dict[str, int]:
    """
    Grade selected answers against a quiz

    A question counts as correct when the selected answer belongs to that
    question and is marked correct.

    Args:
        quiz: Quiz with its questions and answers loaded
        answers: question id -> answer id

    Returns:
        Dict with correct, total and percentage (0 for a quiz without questions)
    """
    selected = normalize_answers(answers)
    correct = 0
    for question in quiz.questions:
        answer_id = selected.get(question.id)
        if answer_id is None:
            continue
        if any(answer.id == answer_id and answer.is_correct for answer in question.answers):
            correct += 1
    total = len(quiz.questions)
    return {"correct": correct, "total": total, "percentage": percentage(correct, total)}


def elapsed_seconds(started_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    if started_at is None:
        return 0
    now = now or datetime.utcnow()
    return max(0, int(math.floor((now - started_at).total_seconds())))


def time_remaining(quiz: Quiz, started_at: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Seconds left on the countdown, clamped at 0; None for an untimed quiz"""
    if not quiz.time_limit:
        return None
    return max(0, quiz.time_limit * 60 - elapsed_seconds(started_at, now))


class AttemptService:
    """Runs quiz attempts for students"""

    def __init__(self, db: Session):
        self.db = db
        self.quizzes = QuizService(db)
        self.progress = ProgressService(db)

    def get_attempt(self, attempt_id: int) -> Optional[QuizResult]:
        return self.db.query(QuizResult).filter(QuizResult.id == attempt_id).first()

    def start_attempt(self, quiz_id: int, user_id: UUID) -> Optional[Dict[str, Any]]:
        """
        Open a new attempt on a quiz

        Args:
            quiz_id: Quiz to take
            user_id: Student

        Returns:
            Dict with attempt_id, started_at, quiz (without correct flags) and
            time_remaining; None if the quiz does not exist

        Raises:
            ValueError: If the quiz is inactive or has no questions
        """
        quiz = self.quizzes.get_full_quiz(quiz_id)
        if not quiz:
            return None
        if not quiz.active:
            raise ValueError("This quiz is not active")
        if not quiz.questions:
            raise ValueError("This quiz has no questions")

        attempt = QuizResult(quiz_id=quiz.id, user_id=user_id, started_at=datetime.utcnow())
        try:
            self.db.add(attempt)
            self.db.commit()
            self.db.refresh(attempt)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error starting attempt on quiz {quiz_id}: {e}", exc_info=True)
            raise

        quiz_attempts_started_total.inc()
        logger.info(
            f"Started attempt {attempt.id} on quiz {quiz.id}",
            extra={"quiz_id": quiz.id, "attempt_id": attempt.id}
        )
        return {
            "attempt_id": attempt.id,
            "started_at": attempt.started_at,
            "quiz": student_view(quiz),
            "time_remaining": time_remaining(quiz, attempt.started_at),
        }

    def status(self, attempt: QuizResult, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Countdown state of an attempt"""
        remaining = time_remaining(attempt.quiz, attempt.started_at, now)
        return {
            "attempt_id": attempt.id,
            "submitted": attempt.is_submitted,
            "time_remaining": remaining,
            "time_remaining_display": format_time(remaining) if remaining is not None else None,
            "expired": remaining == 0,
        }

    def submit_attempt(
        self,
        attempt: QuizResult,
        answers: Optional[Mapping[Any, Any]],
        auto_submit: bool = False,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Grade and close an attempt, then update the lesson progress

        Args:
            attempt: In-progress attempt
            answers: question id -> selected answer id
            auto_submit: Submission triggered by the countdown; unanswered
                questions count as wrong
            now: Submission time (defaults to the current UTC time)

        Returns:
            Dict with attempt_id, score, correct, total, passed, time_spent
            and time_spent_display

        Raises:
            AttemptAlreadySubmittedError: If the attempt was already submitted
            ValueError: If a manual submission leaves questions unanswered
        """
        if attempt.is_submitted:
            raise AttemptAlreadySubmittedError(f"Attempt {attempt.id} was already submitted")

        now = now or datetime.utcnow()
        quiz = self.quizzes.get_full_quiz(attempt.quiz_id)
        selected = normalize_answers(answers)

        if time_remaining(quiz, attempt.started_at, now) == 0:
            auto_submit = True
        if not auto_submit:
            unanswered = [question for question in quiz.questions if question.id not in selected]
            if unanswered:
                raise ValueError(
                    f"Answer every question before submitting ({len(unanswered)} unanswered)"
                )

        graded = score_answers(quiz, selected)
        passing_score = quiz.passing_score
        if passing_score is None:
            passing_score = get_settings().default_passing_score
        passed = graded["percentage"] >= passing_score
        spent = elapsed_seconds(attempt.started_at, now)

        attempt.score = graded["percentage"]
        attempt.total = graded["total"]
        attempt.passed = passed
        attempt.time_spent = spent
        attempt.answers = {str(question_id): answer_id for question_id, answer_id in selected.items()}
        attempt.completed_at = now

        try:
            self.progress.apply_quiz_result(
                attempt.user_id,
                quiz.lesson_id,
                graded["percentage"],
                passed,
                passing_score,
                commit=False,
            )
            self.db.commit()
            self.db.refresh(attempt)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error submitting attempt {attempt.id}: {e}", exc_info=True)
            raise

        quiz_submissions_total.labels(
            outcome="passed" if passed else "failed",
            trigger="timeout" if auto_submit else "manual",
        ).inc()
        quiz_score_percent.observe(graded["percentage"])
        logger.info(
            f"Attempt {attempt.id} submitted: {graded['correct']}/{graded['total']} "
            f"({graded['percentage']}%), passed={passed}",
            extra={"quiz_id": quiz.id, "attempt_id": attempt.id, "auto_submit": auto_submit}
        )

        return {
            "attempt_id": attempt.id,
            "score": graded["percentage"],
            "correct": graded["correct"],
            "total": graded["total"],
            "passed": passed,
            "time_spent": spent,
            "time_spent_display": format_time(spent),
        }
