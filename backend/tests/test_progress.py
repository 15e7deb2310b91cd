"""
Tests for lesson and section progress
"""
import pytest

from quimica.services.content_service import ContentService
from quimica.services.lesson_service import LessonService
from quimica.services.progress_service import ProgressService
from quimica.services.section_service import SectionService


@pytest.fixture
def sections(db, teacher, lesson):
    """Two required sections and an optional one"""
    content = ContentService(db).create_content("The pH scale", [lesson.id], user_id=teacher.id)
    service = SectionService(db)
    return [
        service.create_section(lesson.id, "content", content_id=content.id),
        service.create_section(lesson.id, "content", content_id=content.id),
        service.create_section(lesson.id, "content", content_id=content.id, is_required=False),
    ]


def test_touch_lesson(db, student, lesson):
    service = ProgressService(db)

    progress = service.touch_lesson(student.id, lesson.id)
    assert progress.completed is False
    assert progress.score == 0
    first_access = progress.last_access

    progress = service.touch_lesson(student.id, lesson.id, score=40)
    assert progress.score == 40
    assert progress.last_access >= first_access
    assert len(service.get_progress_by_user(student.id)) == 1


def test_apply_quiz_result_keeps_best(db, student, lesson):
    service = ProgressService(db)

    progress = service.apply_quiz_result(student.id, lesson.id, 80, True, 60)
    assert (progress.score, progress.completed) == (80, True)

    progress = service.apply_quiz_result(student.id, lesson.id, 30, False, 60)
    assert (progress.score, progress.completed) == (80, True)


def test_apply_quiz_result_failed_first(db, student, lesson):
    service = ProgressService(db)

    progress = service.apply_quiz_result(student.id, lesson.id, 40, False, 60)
    assert progress.completed is False
    progress = service.apply_quiz_result(student.id, lesson.id, 70, True, 60)
    assert (progress.score, progress.completed) == (70, True)


def test_completion_percents(db, student, teacher, lesson, sections):
    empty = LessonService(db).create_lesson("Gases", created_by=teacher.id)
    service = ProgressService(db)

    assert service.completion_percents(student.id, [lesson.id, empty.id]) == {lesson.id: 0, empty.id: 100}

    service.mark_section_completed(student.id, sections[0].id)
    # the optional section does not count
    service.mark_section_completed(student.id, sections[2].id)
    assert service.completion_percents(student.id, [lesson.id])[lesson.id] == 50

    service.mark_section_completed(student.id, sections[1].id)
    assert service.completion_percents(student.id, [lesson.id])[lesson.id] == 100


def test_is_lesson_completed(db, student, teacher, lesson, sections):
    service = ProgressService(db)
    empty = LessonService(db).create_lesson("Gases", created_by=teacher.id)

    assert service.is_lesson_completed(student.id, empty.id) is True
    assert service.is_lesson_completed(student.id, lesson.id) is False
    for section in sections[:2]:
        service.mark_section_completed(student.id, section.id)
    assert service.is_lesson_completed(student.id, lesson.id) is True


def test_section_time_and_attempts(db, student, sections):
    service = ProgressService(db)
    section_id = sections[0].id

    service.add_section_time(student.id, section_id, 30)
    progress = service.add_section_time(student.id, section_id, 45)
    assert progress.time_spent == 75
    assert progress.completed_at is None

    service.increment_section_attempts(student.id, section_id)
    assert service.increment_section_attempts(student.id, section_id).attempts == 2

    with pytest.raises(ValueError, match="not found"):
        service.add_section_time(student.id, 999, 10)


def test_completed_at_is_set_once(db, student, sections):
    service = ProgressService(db)
    section_id = sections[0].id

    first = service.mark_section_completed(student.id, section_id, score=90).completed_at
    again = service.mark_section_completed(student.id, section_id).completed_at

    assert first is not None
    assert again == first
    assert service.get_section_progress(student.id, section_id).score == 90


def test_lesson_stats(db, student, lesson, sections):
    service = ProgressService(db)
    service.mark_section_completed(student.id, sections[0].id)
    service.add_section_time(student.id, sections[1].id, 120)

    assert service.lesson_stats(student.id, lesson.id) == {
        "total_sections": 3,
        "completed_sections": 1,
        "percent_completed": 33,
        "total_time_spent": 120,
    }


def test_progress_api(client, student, lesson, sections, auth_headers):
    headers = auth_headers(student)

    response = client.post(f"/api/progress/lessons/{lesson.id}/touch", headers=headers, json={})
    assert response.status_code == 200
    assert response.json()["lesson"]["title"] == "Acids and Bases"
    assert client.post("/api/progress/lessons/999/touch", headers=headers, json={}).status_code == 404

    response = client.post(f"/api/progress/sections/{sections[0].id}/complete", headers=headers, json={"score": 100})
    assert response.status_code == 200
    assert response.json()["completed"] is True

    response = client.post(f"/api/progress/sections/{sections[1].id}/time", headers=headers, json={"seconds": 60})
    assert response.json()["time_spent"] == 60

    response = client.post("/api/progress/completion", headers=headers, json={"lesson_ids": [lesson.id]})
    assert response.json() == {str(lesson.id): 50}

    summary = client.get("/api/progress/mine/summary", headers=headers).json()
    assert summary["total_lessons"] == 1
    assert summary["completed_lessons"] == 0

    response = client.get(f"/api/progress/lessons/{lesson.id}/sections", headers=headers)
    assert len(response.json()) == 2


def test_unknown_section_is_404(client, student, auth_headers):
    headers = auth_headers(student)

    assert client.post("/api/progress/sections/999/complete", headers=headers, json={}).status_code == 404
    assert client.post("/api/progress/sections/999/attempts", headers=headers).status_code == 404
