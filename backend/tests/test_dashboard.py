"""
Tests for the admin dashboard
"""
from datetime import datetime, timedelta

from quimica.services.content_service import ContentService
from quimica.services.dashboard_service import (DashboardService, month_key,
                                                months_ago)
from quimica.services.progress_service import ProgressService
from quimica.services.result_service import ResultService


def test_months_ago():
    assert months_ago(datetime(2024, 3, 31), 1) == datetime(2024, 2, 29)
    assert months_ago(datetime(2024, 1, 15, 8, 30), 6) == datetime(2023, 7, 15, 8, 30)
    assert months_ago(datetime(2023, 8, 31), 6) == datetime(2023, 2, 28)


def test_month_key():
    assert month_key(datetime(2024, 3, 5)) == "2024-03"


def _results(db, quiz, student, rows):
    service = ResultService(db)
    for score, passed, completed_at in rows:
        service.create_result(quiz.id, student.id, score=score, passed=passed, total=2, completed_at=completed_at)


def test_stats(db, admin, teacher, student, lesson, quiz):
    ContentService(db).create_content("The pH scale", [lesson.id], user_id=teacher.id)
    _results(db, quiz, student, [
        (100, True, datetime(2024, 3, 10)),
        (50, False, datetime(2024, 3, 2)),
        (80, True, datetime(2024, 2, 20)),
    ])
    # still running
    ResultService(db).create_result(quiz.id, student.id)

    stats = DashboardService(db).get_stats(now=datetime(2024, 3, 20))

    assert stats["total_users"] == 3
    assert (stats["total_admins"], stats["total_teachers"], stats["total_students"]) == (1, 1, 1)
    assert stats["total_lessons"] == 1
    assert stats["total_contents"] == 1
    assert stats["total_quizzes"] == 1
    assert stats["total_results"] == 3
    assert stats["approval_rate"] == 66.67
    assert stats["monthly_activity"] == 2


def test_stats_on_empty_platform(db):
    stats = DashboardService(db).get_stats()

    assert stats["total_users"] == 0
    assert stats["approval_rate"] == 0


def test_trends(db, student, lesson, quiz):
    now = datetime.utcnow()
    _results(db, quiz, student, [
        (100, True, now - timedelta(minutes=5)),
        (0, False, now - timedelta(minutes=1)),
        (90, True, now - timedelta(days=400)),
    ])
    ProgressService(db).touch_lesson(student.id, lesson.id, completed=True)

    trends = DashboardService(db).get_trends(now=now)
    month = month_key(now)

    assert trends["quiz_activity"] == [{"month": month, "count": 2, "passed": 1}]
    assert trends["lesson_completion"] == [{"month": month, "completed": 1, "in_progress": 0}]
    assert {"month": month, "count": 2} in trends["user_growth"]
    assert {"role": "student", "count": 1} in trends["role_distribution"]
    assert trends["top_lessons"] == [{"lesson_id": lesson.id, "title": lesson.title, "completed": 1}]
    assert trends["top_quizzes"][0]["attempts"] == 3


def test_performance_overview(db, student, quiz):
    _results(db, quiz, student, [(100, True, datetime(2024, 1, 1)), (50, False, datetime(2024, 1, 2))])

    overview = DashboardService(db).get_performance_overview()

    assert overview["average_score"] == 75.0
    assert overview["approval_rate"] == 50.0
    assert overview["total_attempts"] == 2
    assert overview["best_quizzes"] == overview["worst_quizzes"]


def test_recent_activity(db, teacher, lesson, quiz):
    recent = DashboardService(db).get_recent_activity()

    assert recent["recent_users"][0]["email"] == teacher.email
    assert recent["recent_lessons"][0]["id"] == lesson.id
    assert recent["recent_quizzes"][0]["id"] == quiz.id
    assert recent["recent_contents"] == []


def test_dashboard_requires_admin(client, admin, teacher, auth_headers):
    assert client.get("/api/dashboard/stats", headers=auth_headers(teacher)).status_code == 403

    headers = auth_headers(admin)
    for path in ("stats", "recent", "trends", "performance"):
        response = client.get(f"/api/dashboard/{path}", headers=headers)
        assert response.status_code == 200, path
    assert client.get("/api/dashboard/stats", headers=headers).json()["total_admins"] == 1
