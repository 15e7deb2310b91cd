"""
Tests for the content change history
"""
from datetime import date, datetime, timedelta

import pytest

from quimica.models.history import HistoryAction, HistoryEntry
from quimica.services.history_service import HistoryService


@pytest.fixture
def entries(db, teacher, other_teacher):
    """Three changes by two teachers on different days"""
    service = HistoryService(db)
    rows = [
        (HistoryAction.CREATE, 1, {"title": "Titration", "type": "lab", "author": "Dr. Ruiz"}, teacher,
         datetime(2024, 3, 1, 9, 0)),
        (HistoryAction.UPDATE, 1, {"title": "Titration", "description": "Burette and pH meter", "type": "lab",
                                   "author": "Dr. Ruiz"}, teacher, datetime(2024, 3, 2, 18, 30)),
        (HistoryAction.CREATE, 2, {"title": "Ideal gases", "type": "theory", "author": "Prof. Kim"},
         other_teacher, datetime(2024, 3, 5, 12, 0)),
    ]
    created = []
    for action, entity_id, snapshot, user, at in rows:
        entry = service.record(action, entity_id, snapshot, user_id=user.id)
        entry.at = at
        created.append(entry)
    db.commit()
    return created


def _ids(entries):
    return [entry.entity_id for entry in entries]


def test_list_newest_first(db, entries):
    listed = HistoryService(db).list_entries()
    assert [entry.action for entry in listed] == ["create", "update", "create"]
    assert _ids(listed) == [2, 1, 1]


def test_filters(db, entries):
    service = HistoryService(db)

    assert [e.action for e in service.list_entries(action="update")] == ["update"]
    assert len(service.list_entries(action="all")) == 3
    assert _ids(service.list_entries(author="Prof. Kim")) == [2]
    assert _ids(service.list_entries(content_type="lab")) == [1, 1]
    assert len(service.list_entries(content_type="all", author="")) == 3


def test_text_search_matches_title_or_description(db, entries):
    service = HistoryService(db)

    assert _ids(service.list_entries(query="GAS")) == [2]
    assert [e.action for e in service.list_entries(query="ph meter")] == ["update"]
    assert service.list_entries(query="benzene") == []


def test_date_bounds_are_inclusive_days(db, entries):
    service = HistoryService(db)

    assert len(service.list_entries(start=date(2024, 3, 2), end=date(2024, 3, 2))) == 1
    assert _ids(service.list_entries(start=date(2024, 3, 3))) == [2]
    assert len(service.list_entries(end=datetime(2024, 3, 2, 18, 0))) == 1


def test_facets(db, entries):
    assert HistoryService(db).facets() == {
        "actions": ["create", "update"],
        "authors": ["Dr. Ruiz", "Prof. Kim"],
        "types": ["lab", "theory"],
    }


def test_clear_by_user(db, teacher, entries):
    service = HistoryService(db)

    assert service.clear(teacher.id) == 2
    assert db.query(HistoryEntry).count() == 1
    assert service.clear() == 1
    assert db.query(HistoryEntry).count() == 0


def test_record_without_commit_joins_transaction(db):
    service = HistoryService(db)
    service.record(HistoryAction.DELETE, 7, {"title": "Old"}, commit=False)
    db.rollback()

    assert db.query(HistoryEntry).count() == 0


def test_history_api(client, teacher, student, entries, auth_headers):
    headers = auth_headers(teacher)

    assert client.get("/api/history", headers=auth_headers(student)).status_code == 403

    response = client.get("/api/history", headers=headers, params={"action": "create", "type": "theory"})
    assert response.status_code == 200
    assert [item["entity_id"] for item in response.json()] == [2]

    response = client.get("/api/history", headers=headers, params={"start": "2024-03-02", "end": "2024-03-02"})
    assert [item["action"] for item in response.json()] == ["update"]

    response = client.get("/api/history/facets", headers=headers)
    assert response.json()["types"] == ["lab", "theory"]


def test_clear_api(client, db, teacher, admin, entries, auth_headers):
    response = client.delete("/api/history", headers=auth_headers(teacher))
    assert response.json() == {"deleted": 2}

    response = client.delete("/api/history", headers=auth_headers(admin))
    assert response.json() == {"deleted": 1}
    assert db.query(HistoryEntry).count() == 0


def test_entries_follow_recording_time(db):
    before = datetime.utcnow() - timedelta(seconds=1)
    entry = HistoryService(db).record(HistoryAction.CREATE, 1, {"title": "Fresh"})

    assert entry.at >= before
    assert entry.entity_type == "content"
