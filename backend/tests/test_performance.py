"""
Tests for student performance analytics and CSV export
"""
import csv
import io
import uuid
from datetime import date, datetime

import pytest

from quimica.services.performance_service import (CSV_COLUMNS,
                                                  PerformanceService,
                                                  export_filename)
from quimica.services.progress_service import ProgressService
from quimica.services.result_service import ResultService


@pytest.fixture
def ana(make_user):
    return make_user("student", first_name="Ana", last_name="Lopez")


@pytest.fixture
def bruno(make_user):
    return make_user("student", first_name="Bruno", last_name="Diaz")


@pytest.fixture
def results(db, quiz, ana, bruno):
    """Ana: 100 (passed) then 50; Bruno: 40; plus an unfinished attempt"""
    service = ResultService(db)
    rows = [
        (ana, 100, True, datetime(2024, 3, 1, 10, 0)),
        (ana, 50, False, datetime(2024, 3, 10, 10, 0)),
        (bruno, 40, False, datetime(2024, 3, 6, 10, 0)),
    ]
    for user, score, passed, completed_at in rows:
        service.create_result(
            quiz.id, user.id, score=score, passed=passed, total=2,
            started_at=completed_at, completed_at=completed_at,
        )
    service.create_result(quiz.id, bruno.id, started_at=datetime(2024, 3, 12, 9, 0))


def test_export_filename():
    assert export_filename(date(2024, 3, 5)) == "student_performance_2024-03-05.csv"


def test_students_by_teacher(db, teacher, ana, bruno, results):
    students = PerformanceService(db).get_students_by_teacher(teacher.id)

    assert [student["display_name"] for student in students] == ["Ana Lopez", "Bruno Diaz"]
    first, second = students
    assert (first["total_quizzes"], first["average_score"], first["passed"], first["failed"]) == (2, 75.0, 1, 1)
    assert first["last_activity"] == datetime(2024, 3, 10, 10, 0)
    # the unfinished attempt is not a result
    assert (second["total_quizzes"], second["average_score"], second["failed"]) == (1, 40.0, 1)


def test_other_teacher_sees_nothing(db, other_teacher, admin, results):
    service = PerformanceService(db)

    assert service.get_students_by_teacher(other_teacher.id) == []
    assert len(service.get_students_by_teacher(admin.id, is_admin=True)) == 2


def test_filtered_students(db, teacher, ana, results):
    students = PerformanceService(db).get_filtered_students(teacher.id, student_id=ana.id)
    assert [student["email"] for student in students] == [ana.email]


def test_student_progress_counts(db, teacher, lesson, make_user):
    carla = make_user("student", first_name="Carla", last_name="Ruiz")
    ProgressService(db).touch_lesson(carla.id, lesson.id, completed=True, score=90)

    students = PerformanceService(db).get_students_by_teacher(teacher.id)

    assert len(students) == 1
    assert students[0]["lessons_completed"] == 1
    assert students[0]["total_quizzes"] == 0
    assert students[0]["last_activity"] is not None


def test_student_detail(db, teacher, quiz, ana, results):
    detail = PerformanceService(db).get_student_detail(ana.id, teacher.id)

    assert detail["display_name"] == "Ana Lopez"
    assert detail["quizzes"] == [{
        "quiz_id": quiz.id,
        "title": "pH basics",
        "attempts": 2,
        "best_score": 100,
        "average": 75.0,
        "passed": True,
        "last_attempt": datetime(2024, 3, 10, 10, 0),
    }]
    assert [point["score"] for point in detail["score_evolution"]] == [100, 50]
    assert detail["lessons"] == []
    assert PerformanceService(db).get_student_detail(uuid.uuid4(), teacher.id) is None


def test_analytics(db, teacher, quiz, lesson, results):
    analytics = PerformanceService(db).get_analytics(teacher.id)

    assert analytics["total_students"] == 2
    assert analytics["average_score"] == 63.33
    assert analytics["pass_rate"] == 33.33
    assert analytics["fail_rate"] == 66.67
    assert analytics["best_quizzes"][0]["quiz_id"] == quiz.id
    assert analytics["best_quizzes"][0]["attempts"] == 3
    assert analytics["most_completed_lessons"] == [{"lesson_id": lesson.id, "title": lesson.title, "completed": 0}]


def test_analytics_date_range(db, teacher, results):
    service = PerformanceService(db)

    since = service.get_analytics(teacher.id, start=date(2024, 3, 5))
    assert since["best_quizzes"][0]["attempts"] == 2
    assert since["pass_rate"] == 0.0
    assert since["fail_rate"] == 100.0

    one_day = service.get_analytics(teacher.id, start=date(2024, 3, 6), end=date(2024, 3, 6))
    assert one_day["average_score"] == 40.0


def test_analytics_without_results(db, other_teacher):
    analytics = PerformanceService(db).get_analytics(other_teacher.id)

    assert analytics["pass_rate"] == 0
    assert analytics["fail_rate"] == 0
    assert analytics["average_score"] == 0
    assert analytics["best_quizzes"] == []


def test_export_csv(db, teacher, results):
    service = PerformanceService(db)

    text = service.export_csv(service.get_students_by_teacher(teacher.id))
    rows = list(csv.reader(io.StringIO(text)))

    assert rows[0] == CSV_COLUMNS
    assert rows[1] == ["Ana Lopez", rows[1][1], "2", "75.0%", "1", "1", "0", "2024-03-10"]
    assert rows[2][3] == "40.0%"


def test_performance_api(client, teacher, student, ana, results, auth_headers):
    headers = auth_headers(teacher)

    assert client.get("/api/performance/students", headers=auth_headers(student)).status_code == 403

    response = client.get("/api/performance/students", headers=headers)
    assert [item["display_name"] for item in response.json()] == ["Ana Lopez", "Bruno Diaz"]

    response = client.get(f"/api/performance/students/{ana.id}", headers=headers)
    assert response.json()["quizzes"][0]["attempts"] == 2
    response = client.get(f"/api/performance/students/{uuid.uuid4()}", headers=headers)
    assert response.status_code == 404

    response = client.get("/api/performance/analytics", headers=headers, params={"start": "2024-03-10", "end": "2024-03-01"})
    assert response.status_code == 400


def test_export_endpoint(client, teacher, results, auth_headers):
    response = client.get("/api/performance/export", headers=auth_headers(teacher))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "student_performance_" in response.headers["content-disposition"]
    assert response.text.splitlines()[0] == ",".join(CSV_COLUMNS)
