"""
Tests for lesson sections: ordering, requirements and locks
"""
import pytest

from quimica.services.content_service import ContentService
from quimica.services.lesson_service import LessonService
from quimica.services.progress_service import ProgressService
from quimica.services.section_service import ORDER_STEP, SectionService


@pytest.fixture
def content(db, teacher, lesson):
    return ContentService(db).create_content("The pH scale", [lesson.id], user_id=teacher.id)


def test_create_section_defaults(db, lesson, content, quiz):
    service = SectionService(db)

    first = service.create_section(lesson.id, "content", content_id=content.id)
    second = service.create_section(lesson.id, "quiz", quiz_id=quiz.id, requirements=[first.id, first.id])

    assert first.order == ORDER_STEP
    assert second.order == 2 * ORDER_STEP
    assert first.is_required is True
    assert second.requirements == [first.id]
    assert service.next_order(lesson.id) == 30


def test_create_section_validation(db, lesson, content):
    service = SectionService(db)

    with pytest.raises(ValueError, match="A quiz section needs quiz_id"):
        service.create_section(lesson.id, "quiz")
    with pytest.raises(ValueError, match="Invalid section type"):
        service.create_section(lesson.id, "video", content_id=content.id)
    with pytest.raises(ValueError, match="not found"):
        service.create_section(999, "content", content_id=content.id)
    with pytest.raises(ValueError, match="Required sections not found"):
        service.create_section(lesson.id, "content", content_id=content.id, requirements=[999])


def test_requirements_stay_within_lesson(db, teacher, lesson, content):
    other_lesson = LessonService(db).create_lesson("Gases", created_by=teacher.id)
    service = SectionService(db)
    foreign = service.create_section(other_lesson.id, "content", content_id=content.id)

    with pytest.raises(ValueError, match="Required sections not found"):
        service.create_section(lesson.id, "content", content_id=content.id, requirements=[foreign.id])


def test_section_cannot_require_itself(db, lesson, content):
    service = SectionService(db)
    section = service.create_section(lesson.id, "content", content_id=content.id)
    section_id = section.id

    with pytest.raises(ValueError, match="cannot require itself"):
        service.update_section(section_id, requirements=[section_id])
    assert service.get_section(section_id).requirements == []


def test_update_and_reorder(db, lesson, content, quiz):
    service = SectionService(db)
    first = service.create_section(lesson.id, "content", content_id=content.id)
    second = service.create_section(lesson.id, "quiz", quiz_id=quiz.id, title="Check yourself")

    updated = service.update_section(second.id, is_required=False, title="Self check")
    assert updated.is_required is False
    assert updated.title == "Self check"
    assert service.update_section(999, title="x") is None

    reordered = service.reorder_sections(lesson.id, [{"id": first.id, "order": 50}, {"id": second.id, "order": 5}])
    assert [section.id for section in reordered] == [second.id, first.id]
    with pytest.raises(ValueError, match="Sections not found"):
        service.reorder_sections(lesson.id, [{"id": 999, "order": 1}])


def test_full_sections_lock_state(db, lesson, content, quiz, student):
    service = SectionService(db)
    reading = service.create_section(lesson.id, "content", content_id=content.id)
    service.create_section(lesson.id, "quiz", quiz_id=quiz.id, requirements=[reading.id])

    rows = service.list_full_sections(lesson.id, user_id=student.id)
    assert [row["locked"] for row in rows] == [False, True]
    assert rows[0]["section"].content.title == "The pH scale"
    assert rows[1]["section"].quiz.title == "pH basics"
    assert rows[0]["progress"] is None

    ProgressService(db).mark_section_completed(student.id, reading.id)

    rows = service.list_full_sections(lesson.id, user_id=student.id)
    assert [row["locked"] for row in rows] == [False, False]
    assert rows[0]["progress"].completed is True
    # anonymous view keeps sections with requirements locked
    assert [row["locked"] for row in service.list_full_sections(lesson.id)] == [False, True]


def test_deleting_target_clears_section_reference(db, lesson, content):
    section = SectionService(db).create_section(lesson.id, "content", content_id=content.id)

    ContentService(db).delete_content(content.id)
    db.refresh(section)

    assert section.content_id is None


def test_delete_section(db, lesson, content):
    service = SectionService(db)
    section_id = service.create_section(lesson.id, "content", content_id=content.id).id

    assert service.delete_section(section_id) is True
    assert service.delete_section(section_id) is False


def test_deleting_required_section_unlocks_dependents(db, lesson, content, quiz, student):
    service = SectionService(db)
    reading = service.create_section(lesson.id, "content", content_id=content.id)
    reading_id = reading.id
    practice = service.create_section(lesson.id, "content", content_id=content.id)
    test = service.create_section(lesson.id, "quiz", quiz_id=quiz.id, requirements=[reading_id, practice.id])

    service.delete_section(reading_id)
    db.refresh(test)

    assert test.requirements == [practice.id]
    ProgressService(db).mark_section_completed(student.id, practice.id)
    rows = service.list_full_sections(lesson.id, user_id=student.id)
    assert [row["locked"] for row in rows] == [False, False]


def test_section_api_ownership(client, teacher, other_teacher, lesson, content, auth_headers):
    payload = {"lesson_id": lesson.id, "section_type": "content", "content_id": content.id}

    assert client.post("/api/sections", headers=auth_headers(other_teacher), json=payload).status_code == 403

    response = client.post("/api/sections", headers=auth_headers(teacher), json=payload)
    assert response.status_code == 201
    section_id = response.json()["id"]
    assert response.json()["order"] == ORDER_STEP

    response = client.put(f"/api/sections/{section_id}", headers=auth_headers(other_teacher), json={"title": "x"})
    assert response.status_code == 403

    response = client.post(
        "/api/sections",
        headers=auth_headers(teacher),
        json={"lesson_id": lesson.id, "section_type": "quiz"},
    )
    assert response.status_code == 400

    response = client.get(f"/api/sections/by-lesson/{lesson.id}/next-order", headers=auth_headers(teacher))
    assert response.json() == {"order": 20}


def test_full_sections_api(client, db, student, lesson, content, quiz, auth_headers):
    service = SectionService(db)
    reading = service.create_section(lesson.id, "content", content_id=content.id)
    service.create_section(lesson.id, "quiz", quiz_id=quiz.id, requirements=[reading.id])

    response = client.get(f"/api/sections/by-lesson/{lesson.id}/full", headers=auth_headers(student))

    assert response.status_code == 200
    data = response.json()
    assert [row["locked"] for row in data] == [False, True]
    assert data[0]["section"]["content"]["title"] == "The pH scale"
    assert data[1]["section"]["quiz"]["id"] == quiz.id
    assert data[0]["progress"] is None


def test_reorder_api(client, db, teacher, lesson, content, auth_headers):
    service = SectionService(db)
    first = service.create_section(lesson.id, "content", content_id=content.id)
    second = service.create_section(lesson.id, "content", content_id=content.id)
    url = f"/api/sections/by-lesson/{lesson.id}/reorder"

    response = client.put(url, headers=auth_headers(teacher), json=[{"id": second.id, "order": 1}])
    assert [item["id"] for item in response.json()] == [second.id, first.id]

    response = client.put(url, headers=auth_headers(teacher), json=[{"id": 999, "order": 1}])
    assert response.status_code == 400
