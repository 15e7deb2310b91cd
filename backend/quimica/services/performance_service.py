"""
Student performance analytics for teachers and admins
"""
import csv
import io
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from quimica.core.logging_config import LoggingConfig
from quimica.core.utils import average, round_half_up
from quimica.models.lesson import Lesson
from quimica.models.progress import Progress
from quimica.models.quiz import Quiz, QuizResult
from quimica.models.user import User

logger = LoggingConfig.get_logger(__name__)

TOP_N = 5

CSV_COLUMNS = [
    "Student", "Email", "Total Quizzes", "Average Score", "Passed", "Failed",
    "Lessons Completed", "Last Activity",
]


def export_filename(today: Optional[date] = None) -> str:
    today = today or datetime.utcnow().date()
    return f"student_performance_{today.isoformat()}.csv"


def _as_start(value: Union[date, datetime, None]) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _as_end(value: Union[date, datetime, None]) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.combine(value, time.max)


class PerformanceService:
    """
    Aggregates quiz results and lesson progress per student

    A teacher sees the quizzes and lessons they created; an admin sees all.
    Only submitted attempts count as results.
    """

    def __init__(self, db: Session):
        self.db = db

    def _quizzes(self, teacher_id: UUID, is_admin: bool) -> List[Quiz]:
        query = self.db.query(Quiz)
        if not is_admin:
            query = query.filter(Quiz.created_by == teacher_id)
        return query.order_by(Quiz.id.asc()).all()

    def _lessons(self, teacher_id: UUID, is_admin: bool) -> List[Lesson]:
        query = self.db.query(Lesson)
        if not is_admin:
            query = query.filter(Lesson.created_by == teacher_id)
        return query.order_by(Lesson.id.asc()).all()

    def _results(
        self,
        quiz_ids: List[int],
        user_id: Optional[UUID] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[QuizResult]:
        if not quiz_ids:
            return []
        query = self.db.query(QuizResult).filter(
            QuizResult.quiz_id.in_(quiz_ids),
            QuizResult.completed_at.isnot(None),
        )
        if user_id is not None:
            query = query.filter(QuizResult.user_id == user_id)
        if start is not None:
            query = query.filter(QuizResult.completed_at >= start)
        if end is not None:
            query = query.filter(QuizResult.completed_at <= end)
        return query.order_by(QuizResult.completed_at.desc(), QuizResult.id.desc()).all()

    def _progress(self, lesson_ids: List[int], user_id: Optional[UUID] = None) -> List[Progress]:
        if not lesson_ids:
            return []
        query = self.db.query(Progress).filter(Progress.lesson_id.in_(lesson_ids))
        if user_id is not None:
            query = query.filter(Progress.user_id == user_id)
        return query.all()

    def get_students_by_teacher(self, teacher_id: UUID, is_admin: bool = False) -> List[Dict[str, Any]]:
        """
        Students with results on the teacher's quizzes or progress on their lessons

        Returns:
            One dict per student with user_id, display_name, email,
            total_quizzes, average_score, passed, failed, lessons_completed
            and last_activity
        """
        quiz_ids = [quiz.id for quiz in self._quizzes(teacher_id, is_admin)]
        lesson_ids = [lesson.id for lesson in self._lessons(teacher_id, is_admin)]

        results_by_user: Dict[UUID, List[QuizResult]] = {}
        for result in self._results(quiz_ids):
            results_by_user.setdefault(result.user_id, []).append(result)
        progress_by_user: Dict[UUID, List[Progress]] = {}
        for row in self._progress(lesson_ids):
            progress_by_user.setdefault(row.user_id, []).append(row)

        user_ids = set(results_by_user) | set(progress_by_user)
        if not user_ids:
            return []

        users = (
            self.db.query(User)
            .filter(User.id.in_(user_ids))
            .order_by(User.display_name.asc(), User.email.asc())
            .all()
        )

        students = []
        for user in users:
            results = results_by_user.get(user.id, [])
            progress = progress_by_user.get(user.id, [])
            passed = sum(1 for result in results if result.passed)
            activity = [result.completed_at for result in results if result.completed_at]
            activity += [row.last_access for row in progress if row.last_access]
            students.append({
                "user_id": user.id,
                "display_name": user.display_name,
                "email": user.email,
                "total_quizzes": len(results),
                "average_score": round_half_up(average(result.score or 0 for result in results), 2),
                "passed": passed,
                "failed": len(results) - passed,
                "lessons_completed": sum(1 for row in progress if row.completed),
                "last_activity": max(activity) if activity else None,
            })
        return students

    def get_filtered_students(
        self,
        teacher_id: UUID,
        student_id: Optional[UUID] = None,
        is_admin: bool = False,
    ) -> List[Dict[str, Any]]:
        students = self.get_students_by_teacher(teacher_id, is_admin)
        if student_id is not None:
            students = [student for student in students if student["user_id"] == student_id]
        return students

    def get_student_detail(
        self,
        student_id: UUID,
        teacher_id: UUID,
        is_admin: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """
        Per-quiz and per-lesson performance of one student

        Args:
            student_id: Student to inspect
            teacher_id: Teacher whose quizzes and lessons are considered
            is_admin: Consider every quiz and lesson

        Returns:
            Dict with quizzes (attempts, best, average, passed, last attempt),
            lessons (completed, score, last access) and score_evolution sorted
            by date; None when the student does not exist
        """
        student = self.db.query(User).filter(User.id == student_id).first()
        if not student:
            return None

        quizzes = self._quizzes(teacher_id, is_admin)
        titles = {quiz.id: quiz.title for quiz in quizzes}
        results = self._results(list(titles), user_id=student_id)

        quiz_rows = []
        for quiz in quizzes:
            attempts = [result for result in results if result.quiz_id == quiz.id]
            if not attempts:
                continue
            scores = [result.score or 0 for result in attempts]
            quiz_rows.append({
                "quiz_id": quiz.id,
                "title": quiz.title,
                "attempts": len(attempts),
                "best_score": max(scores),
                "average": round_half_up(average(scores), 2),
                "passed": any(result.passed for result in attempts),
                "last_attempt": attempts[0].completed_at,
            })

        lessons = self._lessons(teacher_id, is_admin)
        progress = {row.lesson_id: row for row in self._progress([lesson.id for lesson in lessons], student_id)}
        lesson_rows = []
        for lesson in lessons:
            row = progress.get(lesson.id)
            if row is None:
                continue
            lesson_rows.append({
                "lesson_id": lesson.id,
                "title": lesson.title,
                "completed": bool(row.completed),
                "score": row.score,
                "last_access": row.last_access,
            })

        evolution = sorted(
            (
                {
                    "date": result.completed_at or result.started_at,
                    "score": result.score or 0,
                    "quiz_title": titles.get(result.quiz_id, ""),
                }
                for result in results
                if result.completed_at or result.started_at
            ),
            key=lambda point: point["date"],
        )

        return {
            "user_id": student.id,
            "display_name": student.display_name,
            "email": student.email,
            "quizzes": quiz_rows,
            "lessons": lesson_rows,
            "score_evolution": evolution,
        }

    def get_analytics(
        self,
        teacher_id: UUID,
        is_admin: bool = False,
        start: Union[date, datetime, None] = None,
        end: Union[date, datetime, None] = None,
    ) -> Dict[str, Any]:
        """
        Aggregated performance over the teacher's quizzes and lessons

        The date range bounds result completion times; plain dates cover
        whole days.
        """
        total_students = len(self.get_students_by_teacher(teacher_id, is_admin))

        quizzes = self._quizzes(teacher_id, is_admin)
        results = self._results([quiz.id for quiz in quizzes], start=_as_start(start), end=_as_end(end))

        quiz_metrics = []
        for quiz in quizzes:
            attempts = [result for result in results if result.quiz_id == quiz.id]
            if not attempts:
                continue
            quiz_metrics.append({
                "quiz_id": quiz.id,
                "title": quiz.title,
                "average": round_half_up(average(result.score or 0 for result in attempts), 2),
                "attempts": len(attempts),
                "passed": sum(1 for result in attempts if result.passed),
            })

        best = sorted(quiz_metrics, key=lambda item: item["average"], reverse=True)[:TOP_N]
        worst = sorted(quiz_metrics, key=lambda item: item["average"])[:TOP_N]

        total = len(results)
        passed = sum(1 for result in results if result.passed)
        pass_rate = passed / total * 100 if total else 0.0
        fail_rate = 100 - pass_rate if total else 0.0

        lessons = self._lessons(teacher_id, is_admin)
        completions: Dict[int, int] = {}
        for row in self._progress([lesson.id for lesson in lessons]):
            if row.completed:
                completions[row.lesson_id] = completions.get(row.lesson_id, 0) + 1
        most_completed = sorted(
            (
                {"lesson_id": lesson.id, "title": lesson.title, "completed": completions.get(lesson.id, 0)}
                for lesson in lessons
            ),
            key=lambda item: item["completed"],
            reverse=True,
        )[:TOP_N]

        return {
            "total_students": total_students,
            "average_score": round_half_up(average(result.score or 0 for result in results), 2),
            "pass_rate": round_half_up(pass_rate, 2),
            "fail_rate": round_half_up(fail_rate, 2),
            "best_quizzes": best,
            "worst_quizzes": worst,
            "most_completed_lessons": most_completed,
        }

    def export_csv(self, students: List[Dict[str, Any]]) -> str:
        """Render student rows as CSV text"""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_COLUMNS)
        for student in students:
            last_activity = student.get("last_activity")
            writer.writerow([
                student.get("display_name") or student.get("email") or str(student["user_id"]),
                student.get("email") or "",
                student["total_quizzes"],
                f"{student['average_score']:.1f}%",
                student["passed"],
                student["failed"],
                student["lessons_completed"],
                last_activity.date().isoformat() if last_activity else "",
            ])
        logger.info(f"Exported performance of {len(students)} students")
        return buffer.getvalue()
