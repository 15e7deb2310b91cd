"""
Tests for the attempts API
"""
from quimica.services.quiz_service import QuizService


def _start(client, headers, quiz_id):
    return client.post("/api/attempts", headers=headers, json={"quiz_id": quiz_id})


def test_start_attempt(client, student, quiz, auth_headers):
    response = _start(client, auth_headers(student), quiz.id)

    assert response.status_code == 201
    data = response.json()
    assert data["attempt_id"]
    assert data["time_remaining"] is None
    answers = [a for q in data["quiz"]["questions"] for a in q["answers"]]
    assert all("is_correct" not in answer for answer in answers)


def test_start_unknown_quiz(client, student, auth_headers):
    assert _start(client, auth_headers(student), 999).status_code == 404


def test_submit_attempt(client, student, quiz, answer_key, auth_headers):
    headers = auth_headers(student)
    attempt_id = _start(client, headers, quiz.id).json()["attempt_id"]

    response = client.post(f"/api/attempts/{attempt_id}/submit", headers=headers, json={"answers": answer_key(quiz)})

    assert response.status_code == 200
    data = response.json()
    assert data["score"] == 100
    assert data["passed"] is True
    assert data["total"] == 2

    response = client.post(f"/api/attempts/{attempt_id}/submit", headers=headers, json={"answers": answer_key(quiz)})
    assert response.status_code == 409


def test_submit_requires_all_answers_unless_auto(client, student, quiz, auth_headers):
    headers = auth_headers(student)
    attempt_id = _start(client, headers, quiz.id).json()["attempt_id"]
    url = f"/api/attempts/{attempt_id}/submit"

    assert client.post(url, headers=headers, json={"answers": {}}).status_code == 400

    response = client.post(url, headers=headers, json={"answers": {}, "auto_submit": True})
    assert response.status_code == 200
    assert response.json()["score"] == 0
    assert response.json()["passed"] is False


def test_attempt_belongs_to_its_student(client, make_user, student, quiz, answer_key, auth_headers):
    attempt_id = _start(client, auth_headers(student), quiz.id).json()["attempt_id"]
    intruder = auth_headers(make_user("student"))

    response = client.post(f"/api/attempts/{attempt_id}/submit", headers=intruder, json={"answers": answer_key(quiz)})
    assert response.status_code == 403
    assert client.get(f"/api/attempts/{attempt_id}/status", headers=intruder).status_code == 403
    assert client.get("/api/attempts/999/status", headers=intruder).status_code == 404


def test_attempt_status(client, db, student, quiz, auth_headers):
    QuizService(db).update_quiz(quiz.id, time_limit=5)
    headers = auth_headers(student)
    attempt_id = _start(client, headers, quiz.id).json()["attempt_id"]

    response = client.get(f"/api/attempts/{attempt_id}/status", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["submitted"] is False
    assert data["expired"] is False
    assert 0 < data["time_remaining"] <= 300
