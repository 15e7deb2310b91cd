"""
Tests for ContentService
"""
import pytest

from quimica.models.content import ContentLesson
from quimica.models.history import HistoryEntry
from quimica.services.content_service import (ContentService, clean_resources,
                                              clean_tags)
from quimica.services.lesson_service import LessonService


@pytest.fixture
def second_lesson(db, teacher):
    return LessonService(db).create_lesson("Redox reactions", created_by=teacher.id)


def test_clean_tags_and_resources():
    assert clean_tags([" acids ", "", "ph", "acids"]) == ["acids", "ph"]
    assert clean_tags(None) == []
    assert clean_resources(["  ", "https://example.com/a.pdf ", None, {"url": "x"}]) == [
        "https://example.com/a.pdf",
        {"url": "x"},
    ]


def test_create_content(db, teacher, lesson, second_lesson):
    content = ContentService(db).create_content(
        "  Titration  ",
        [second_lesson.id, lesson.id, second_lesson.id],
        user_id=teacher.id,
        content_type="practice",
        tags=["lab", " lab ", ""],
        author="Dr. Ruiz",
    )

    assert content.title == "Titration"
    assert content.version == 1
    assert content.tags == ["lab"]
    assert content.order == 1
    assert content.created_by == teacher.id
    assert [lesson_.id for lesson_ in content.lessons] == [second_lesson.id, lesson.id]


def test_create_content_validation(db, teacher, lesson):
    service = ContentService(db)

    with pytest.raises(ValueError, match="at least 3 characters"):
        service.create_content("pH", [lesson.id], user_id=teacher.id)
    with pytest.raises(ValueError, match="Select at least one lesson"):
        service.create_content("Titration", [], user_id=teacher.id)
    with pytest.raises(ValueError, match="Lessons not found"):
        service.create_content("Titration", [lesson.id, 999], user_id=teacher.id)


def test_next_order_follows_highest(db, teacher, lesson):
    service = ContentService(db)
    service.create_content("First block", [lesson.id], order=5)

    assert service.create_content("Second block", [lesson.id]).order == 6


def test_update_bumps_version_and_relinks(db, teacher, other_teacher, lesson, second_lesson):
    service = ContentService(db)
    content = service.create_content("Titration", [lesson.id], user_id=teacher.id)

    updated = service.update_content(
        content.id,
        user_id=other_teacher.id,
        lesson_ids=[second_lesson.id],
        title="Acid-base titration",
        created_by=other_teacher.id,
    )

    assert updated.version == 2
    assert updated.title == "Acid-base titration"
    assert updated.updated_by == other_teacher.id
    assert updated.created_by == teacher.id
    assert [lesson_.id for lesson_ in updated.lessons] == [second_lesson.id]
    assert service.update_content(999, title="Nothing") is None

    with pytest.raises(ValueError):
        service.update_content(content.id, title="ab")


def test_rejected_update_leaves_content_untouched(db, teacher, lesson):
    service = ContentService(db)
    content = service.create_content("Titration", [lesson.id], user_id=teacher.id, body_html="<p>v1</p>")

    with pytest.raises(ValueError, match="Lessons not found"):
        service.update_content(content.id, body_html="<p>v2</p>", tags=["acid"], lesson_ids=[999])
    with pytest.raises(ValueError):
        service.update_content(content.id, body_html="<p>v3</p>", title="ab")

    db.expire_all()
    assert content.body_html == "<p>v1</p>"
    assert content.tags == []
    assert content.version == 1


def test_history_is_recorded(db, teacher, lesson):
    service = ContentService(db)
    content = service.create_content("Titration", [lesson.id], user_id=teacher.id, content_type="lab")
    content_id = content.id
    service.update_content(content_id, user_id=teacher.id, description="Burette and indicator")
    service.delete_content(content_id, user_id=teacher.id)

    entries = db.query(HistoryEntry).order_by(HistoryEntry.id.asc()).all()
    assert [entry.action for entry in entries] == ["create", "update", "delete"]
    assert all(entry.entity_id == content_id for entry in entries)
    assert entries[1].snapshot["version"] == 2
    assert entries[1].snapshot["description"] == "Burette and indicator"
    assert entries[2].snapshot["type"] == "lab"


def test_delete_content_removes_links(db, teacher, lesson):
    service = ContentService(db)
    content_id = service.create_content("Titration", [lesson.id], user_id=teacher.id).id

    assert service.delete_content(content_id) is True
    assert db.query(ContentLesson).filter(ContentLesson.content_id == content_id).count() == 0
    assert service.delete_content(content_id) is False


def test_lesson_links(db, teacher, lesson, second_lesson):
    service = ContentService(db)
    content = service.create_content("Titration", [lesson.id], user_id=teacher.id)

    link = service.add_lesson(content.id, second_lesson.id)
    assert link.order == 1
    with pytest.raises(ValueError, match="already linked"):
        service.add_lesson(content.id, second_lesson.id)
    with pytest.raises(ValueError, match="not found"):
        service.add_lesson(content.id, 999)

    assert service.remove_lesson(content.id, lesson.id) is True
    assert service.remove_lesson(content.id, lesson.id) is False

    replaced = service.replace_lessons(content.id, [lesson.id, second_lesson.id])
    assert [lesson_.id for lesson_ in replaced.lessons] == [lesson.id, second_lesson.id]
    with pytest.raises(ValueError):
        service.replace_lessons(content.id, [])


def test_contents_by_lesson_and_teacher(db, teacher, other_teacher, lesson):
    service = ContentService(db)
    linked = service.create_content("Titration", [lesson.id], user_id=other_teacher.id)
    foreign_lesson = LessonService(db).create_lesson("Gases", created_by=other_teacher.id)
    service.create_content("Ideal gas law", [foreign_lesson.id], user_id=other_teacher.id)

    assert [content.id for content in service.list_contents_by_lesson(lesson.id)] == [linked.id]
    assert [content.id for content in service.list_contents_by_teacher(teacher.id)] == [linked.id]
    assert len(service.list_contents_by_teacher(teacher.id, is_admin=True)) == 2


def test_can_manage(db, admin, teacher, other_teacher, student, lesson):
    service = ContentService(db)
    content = service.create_content("Titration", [lesson.id], user_id=other_teacher.id)

    assert service.can_manage(admin, content)
    assert service.can_manage(other_teacher, content)
    # owner of a linked lesson
    assert service.can_manage(teacher, content)
    assert not service.can_manage(student, content)
