"""
Tests for the quizzes API
"""
from quimica.services.lesson_service import LessonService


def test_create_quiz_from_editor(client, teacher, lesson, quiz_payload, auth_headers):
    response = client.post("/api/quizzes/editor", headers=auth_headers(teacher), json=quiz_payload(lesson.id))

    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "pH basics"
    assert data["created_by"] == str(teacher.id)
    assert [q["text"] for q in data["questions"]] == ["What is the pH of pure water?", "HCl is a..."]
    assert data["questions"][0]["answers"][0]["is_correct"] is True


def test_create_quiz_from_editor_validation(client, teacher, lesson, quiz_payload, auth_headers):
    response = client.post(
        "/api/quizzes/editor",
        headers=auth_headers(teacher),
        json=quiz_payload(lesson.id, questions=[]),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Add at least one question"


def test_editor_checks_lesson_ownership(client, db, other_teacher, student, lesson, quiz_payload, auth_headers):
    response = client.post("/api/quizzes/editor", headers=auth_headers(other_teacher), json=quiz_payload(lesson.id))
    assert response.status_code == 403
    assert response.json()["detail"] == "You can only manage quizzes of your own lessons"

    response = client.post("/api/quizzes/editor", headers=auth_headers(other_teacher), json=quiz_payload(999))
    assert response.status_code == 400

    response = client.post("/api/quizzes/editor", headers=auth_headers(student), json=quiz_payload(lesson.id))
    assert response.status_code == 403


def test_update_quiz_from_editor(client, teacher, other_teacher, quiz, lesson, quiz_payload, auth_headers):
    payload = quiz_payload(lesson.id, title="pH basics (revised)")
    payload["questions"] = payload["questions"][:1]

    response = client.put(f"/api/quizzes/{quiz.id}/editor", headers=auth_headers(other_teacher), json=payload)
    assert response.status_code == 403

    response = client.put(f"/api/quizzes/{quiz.id}/editor", headers=auth_headers(teacher), json=payload)
    assert response.status_code == 200
    assert response.json()["title"] == "pH basics (revised)"
    assert len(response.json()["questions"]) == 1


def test_take_hides_correct_answers(client, student, quiz, auth_headers):
    headers = auth_headers(student)

    response = client.get(f"/api/quizzes/{quiz.id}/take", headers=headers)
    assert response.status_code == 200
    answers = [answer for question in response.json()["questions"] for answer in question["answers"]]
    assert answers
    assert all("is_correct" not in answer for answer in answers)

    assert client.get(f"/api/quizzes/{quiz.id}/full", headers=headers).status_code == 403
    assert client.get("/api/quizzes/999/take", headers=headers).status_code == 404


def test_full_quiz_for_owner(client, teacher, quiz, auth_headers):
    response = client.get(f"/api/quizzes/{quiz.id}/full", headers=auth_headers(teacher))

    assert response.status_code == 200
    assert len(response.json()["questions"]) == 2


def test_quiz_crud(client, db, teacher, admin, lesson, auth_headers):
    headers = auth_headers(teacher)

    response = client.post(
        "/api/quizzes",
        headers=headers,
        json={"lesson_id": lesson.id, "title": "Indicators", "time_limit": 15},
    )
    assert response.status_code == 201
    quiz_id = response.json()["id"]

    response = client.put(f"/api/quizzes/{quiz_id}", headers=headers, json={"passing_score": 70, "active": False})
    assert response.status_code == 200
    assert response.json()["passing_score"] == 70
    assert response.json()["active"] is False

    assert client.put(f"/api/quizzes/{quiz_id}", headers=headers, json={"title": ""}).status_code == 400

    response = client.get(f"/api/quizzes/by-lesson/{lesson.id}", headers=headers)
    assert [item["id"] for item in response.json()] == [quiz_id]

    assert client.delete(f"/api/quizzes/{quiz_id}", headers=auth_headers(admin)).status_code == 204
    assert client.get(f"/api/quizzes/{quiz_id}", headers=headers).status_code == 404


def test_my_quizzes(client, db, teacher, other_teacher, quiz, auth_headers):
    other_lesson = LessonService(db).create_lesson("Gases", created_by=other_teacher.id)
    client.post("/api/quizzes", headers=auth_headers(other_teacher), json={"lesson_id": other_lesson.id, "title": "Gas laws"})

    response = client.get("/api/quizzes/mine", headers=auth_headers(teacher))
    assert [item["id"] for item in response.json()] == [quiz.id]


def test_question_and_answer_endpoints(client, teacher, other_teacher, quiz, auth_headers):
    headers = auth_headers(teacher)

    response = client.post(f"/api/quizzes/{quiz.id}/questions", headers=headers, json={"text": "Is NaOH a base?"})
    assert response.status_code == 201
    question_id = response.json()["id"]
    assert response.json()["order"] == 2

    response = client.post(
        f"/api/quizzes/questions/{question_id}/answers",
        headers=headers,
        json={"text": "Yes", "is_correct": True},
    )
    assert response.status_code == 201
    answer_id = response.json()["id"]

    response = client.post(
        "/api/quizzes/answers/bulk",
        headers=headers,
        json=[
            {"question_id": question_id, "text": "No"},
            {"question_id": question_id, "text": "Only in water"},
        ],
    )
    assert response.status_code == 201
    assert [a["text"] for a in response.json()] == ["No", "Only in water"]

    response = client.get(f"/api/quizzes/questions/{question_id}/answers", headers=headers)
    assert len(response.json()) == 3

    response = client.put(f"/api/quizzes/answers/{answer_id}", headers=auth_headers(other_teacher), json={"text": "Nope"})
    assert response.status_code == 403

    response = client.put(f"/api/quizzes/questions/{question_id}", headers=headers, json={"text": "Is KOH a base?"})
    assert response.json()["text"] == "Is KOH a base?"

    assert client.delete(f"/api/quizzes/answers/{answer_id}", headers=headers).status_code == 204
    assert client.delete(f"/api/quizzes/questions/{question_id}", headers=headers).status_code == 204
    assert client.delete(f"/api/quizzes/questions/{question_id}", headers=headers).status_code == 404
    assert len(client.get(f"/api/quizzes/{quiz.id}/questions", headers=headers).json()) == 2


def test_bulk_answers_unknown_question(client, teacher, auth_headers):
    response = client.post(
        "/api/quizzes/answers/bulk",
        headers=auth_headers(teacher),
        json=[{"question_id": 999, "text": "Lost"}],
    )
    assert response.status_code == 404
