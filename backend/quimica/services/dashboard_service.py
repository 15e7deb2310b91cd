"""
System-wide statistics for the admin dashboard
"""
import calendar
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from quimica.core.logging_config import LoggingConfig
from quimica.core.utils import average, round_half_up
from quimica.models.content import Content
from quimica.models.lesson import Lesson
from quimica.models.progress import Progress
from quimica.models.quiz import Quiz, QuizResult
from quimica.models.user import User, UserRole

logger = LoggingConfig.get_logger(__name__)

RECENT_LIMIT = 5
TOP_N = 5
TREND_MONTHS = 6


def months_ago(now: datetime, months: int) -> datetime:
    """Same day and time `months` months earlier, clamped to the month length"""
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def month_key(value: datetime) -> str:
    return f"{value.year}-{value.month:02d}"


class DashboardService:
    """Counts, recent activity and trends across the whole platform"""

    def __init__(self, db: Session):
        self.db = db

    def _count(self, column) -> int:
        return self.db.query(func.count(column)).scalar() or 0

    def _submitted_results(self):
        return self.db.query(QuizResult).filter(QuizResult.completed_at.isnot(None))

    def get_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Platform totals

        Returns:
            Users per role, totals of lessons, contents, quizzes, submitted
            results and progress rows, approval rate (2 decimals) and results
            completed since the start of the current month
        """
        now = now or datetime.utcnow()
        roles = Counter(role for (role,) in self.db.query(User.role).all())

        results = self._submitted_results().all()
        passed = sum(1 for result in results if result.passed)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        return {
            "total_users": sum(roles.values()),
            "total_admins": roles.get(UserRole.ADMIN.value, 0),
            "total_teachers": roles.get(UserRole.TEACHER.value, 0),
            "total_students": roles.get(UserRole.STUDENT.value, 0),
            "total_lessons": self._count(Lesson.id),
            "total_contents": self._count(Content.id),
            "total_quizzes": self._count(Quiz.id),
            "total_results": len(results),
            "total_progress": self._count(Progress.id),
            "approval_rate": round_half_up(passed / len(results) * 100, 2) if results else 0,
            "monthly_activity": sum(1 for result in results if result.completed_at >= month_start),
        }

    def get_recent_activity(self) -> Dict[str, List[Dict[str, Any]]]:
        users = self.db.query(User).order_by(User.created_at.desc()).limit(RECENT_LIMIT).all()
        lessons = self.db.query(Lesson).order_by(Lesson.created_at.desc()).limit(RECENT_LIMIT).all()
        contents = (
            self.db.query(Content)
            .order_by(Content.updated_at.is_(None), Content.updated_at.desc())
            .limit(RECENT_LIMIT)
            .all()
        )
        quizzes = self.db.query(Quiz).order_by(Quiz.created_at.desc()).limit(RECENT_LIMIT).all()

        return {
            "recent_users": [
                {
                    "id": user.id,
                    "email": user.email,
                    "display_name": user.display_name,
                    "role": user.role,
                    "created_at": user.created_at,
                }
                for user in users
            ],
            "recent_lessons": [
                {
                    "id": lesson.id,
                    "title": lesson.title,
                    "created_at": lesson.created_at,
                    "created_by": lesson.created_by,
                }
                for lesson in lessons
            ],
            "recent_contents": [
                {
                    "id": content.id,
                    "title": content.title,
                    "created_at": content.created_at,
                    "updated_at": content.updated_at,
                }
                for content in contents
            ],
            "recent_quizzes": [
                {
                    "id": quiz.id,
                    "title": quiz.title,
                    "lesson_id": quiz.lesson_id,
                    "created_at": quiz.created_at,
                }
                for quiz in quizzes
            ],
        }

    def _lesson_completions(self) -> List[Dict[str, Any]]:
        counts = Counter(
            lesson_id
            for (lesson_id,) in self.db.query(Progress.lesson_id).filter(Progress.completed.is_(True)).all()
        )
        if not counts:
            return []
        lessons = self.db.query(Lesson).filter(Lesson.id.in_(list(counts))).all()
        ranked = sorted(
            ({"lesson_id": lesson.id, "title": lesson.title, "completed": counts[lesson.id]} for lesson in lessons),
            key=lambda item: item["completed"],
            reverse=True,
        )
        return ranked[:TOP_N]

    def _quiz_averages(self) -> List[Dict[str, Any]]:
        """Quizzes with at least one submitted attempt, best average first"""
        scores: Dict[int, List[int]] = {}
        for result in self._submitted_results().all():
            scores.setdefault(result.quiz_id, []).append(result.score or 0)
        if not scores:
            return []
        quizzes = self.db.query(Quiz).filter(Quiz.id.in_(list(scores))).all()
        return sorted(
            (
                {
                    "quiz_id": quiz.id,
                    "title": quiz.title,
                    "average": round_half_up(average(scores[quiz.id]), 2),
                    "attempts": len(scores[quiz.id]),
                }
                for quiz in quizzes
            ),
            key=lambda item: item["average"],
            reverse=True,
        )

    def get_trends(self, now: Optional[datetime] = None) -> Dict[str, List[Dict[str, Any]]]:
        """Monthly series over the last six months plus rankings"""
        now = now or datetime.utcnow()
        since = months_ago(now, TREND_MONTHS)

        user_growth = Counter(
            month_key(created_at)
            for (created_at,) in self.db.query(User.created_at).filter(User.created_at >= since).all()
        )

        quiz_activity: Dict[str, Dict[str, int]] = {}
        for result in self._submitted_results().filter(QuizResult.completed_at >= since).all():
            bucket = quiz_activity.setdefault(month_key(result.completed_at), {"count": 0, "passed": 0})
            bucket["count"] += 1
            if result.passed:
                bucket["passed"] += 1

        lesson_completion: Dict[str, Dict[str, int]] = {}
        rows = self.db.query(Progress).filter(Progress.last_access >= since).all()
        for row in rows:
            bucket = lesson_completion.setdefault(month_key(row.last_access), {"completed": 0, "in_progress": 0})
            bucket["completed" if row.completed else "in_progress"] += 1

        roles = Counter(role for (role,) in self.db.query(User.role).all())

        return {
            "user_growth": [{"month": month, "count": user_growth[month]} for month in sorted(user_growth)],
            "quiz_activity": [{"month": month, **quiz_activity[month]} for month in sorted(quiz_activity)],
            "lesson_completion": [
                {"month": month, **lesson_completion[month]} for month in sorted(lesson_completion)
            ],
            "role_distribution": [{"role": role, "count": count} for role, count in roles.items()],
            "top_lessons": self._lesson_completions(),
            "top_quizzes": self._quiz_averages()[:TOP_N],
        }

    def get_performance_overview(self) -> Dict[str, Any]:
        results = self._submitted_results().all()
        passed = sum(1 for result in results if result.passed)
        ranked = self._quiz_averages()
        return {
            "average_score": round_half_up(average(result.score or 0 for result in results), 2),
            "approval_rate": round_half_up(passed / len(results) * 100, 2) if results else 0,
            "total_attempts": len(results),
            "most_completed_lessons": self._lesson_completions(),
            "best_quizzes": ranked[:TOP_N],
            "worst_quizzes": list(reversed(ranked[-TOP_N:])),
        }
