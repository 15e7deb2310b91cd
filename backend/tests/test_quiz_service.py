"""
Tests for QuizService and the editor payload rules
"""
import pytest

from quimica.models.quiz import Answer, Question
from quimica.services.lesson_service import LessonService
from quimica.services.quiz_service import (QuizService, student_view,
                                           validate_quiz_payload)


@pytest.mark.parametrize(
    "mutate,message",
    [
        (lambda p: p.update(title="  "), "Title is required"),
        (lambda p: p.update(lesson_id=None), "Select a lesson"),
        (lambda p: p.update(questions=[]), "Add at least one question"),
        (lambda p: p["questions"][1].update(answers=[{"text": "x", "is_correct": True}]),
         "Question 2 must have at least 2 answers"),
        (lambda p: [a.update(is_correct=False) for a in p["questions"][0]["answers"]],
         "Question 1 must have at least one correct answer"),
        (lambda p: p["questions"][0]["answers"][1].update(text=" "), "Answer 2 of question 1 must have text"),
        (lambda p: p["questions"][1].update(text=""), "Question 2 must have text"),
    ],
)
def test_validate_quiz_payload(quiz_payload, mutate, message):
    payload = quiz_payload(1)
    mutate(payload)

    with pytest.raises(ValueError) as exc:
        validate_quiz_payload(payload)
    assert str(exc.value) == message


def test_valid_payload_passes(quiz_payload):
    validate_quiz_payload(quiz_payload(1))


def test_save_from_editor_creates_quiz(quiz, teacher, lesson):
    assert quiz.title == "pH basics"
    assert quiz.lesson_id == lesson.id
    assert quiz.created_by == teacher.id
    assert quiz.active is True
    assert [q.order for q in quiz.questions] == [0, 1]
    assert [a.text for a in quiz.questions[0].answers] == ["7", "1", "14"]
    assert [a.is_correct for a in quiz.questions[0].answers] == [True, False, False]


def test_save_from_editor_syncs_by_id(db, quiz, lesson, teacher):
    first, second = quiz.questions
    quiz_id, first_id, second_id = quiz.id, first.id, second.id
    kept_answer_id = first.answers[0].id
    dropped_answer_id = first.answers[2].id

    payload = {
        "title": "pH basics (v2)",
        "lesson_id": lesson.id,
        "questions": [
            {"text": "Which acid is strong?", "answers": [
                {"text": "HCl", "is_correct": True},
                {"text": "CH3COOH"},
            ]},
            {"id": first_id, "text": "What is the pH of pure water at 25 C?", "answers": [
                {"id": kept_answer_id, "text": "7", "is_correct": True},
                {"text": "0"},
            ]},
        ],
    }
    saved = QuizService(db).save_from_editor(payload, user_id=teacher.id, quiz_id=quiz_id)

    assert saved.id == quiz_id
    assert saved.title == "pH basics (v2)"
    assert [q.text for q in saved.questions] == ["Which acid is strong?", "What is the pH of pure water at 25 C?"]
    assert saved.questions[1].id == first_id
    assert saved.questions[1].order == 1
    assert [a.id for a in saved.questions[1].answers][0] == kept_answer_id
    assert db.query(Question).filter(Question.id == second_id).first() is None
    assert db.query(Answer).filter(Answer.id == dropped_answer_id).first() is None


def test_save_from_editor_unknown_quiz(db, lesson, quiz_payload):
    with pytest.raises(ValueError, match="not found"):
        QuizService(db).save_from_editor(quiz_payload(lesson.id), quiz_id=999)


def test_student_view_hides_correct_flags(quiz):
    view = student_view(quiz)

    assert view["title"] == "pH basics"
    assert len(view["questions"]) == 2
    for question in view["questions"]:
        for answer in question["answers"]:
            assert set(answer) == {"id", "text", "order"}


def test_question_and_answer_crud(db, quiz):
    service = QuizService(db)

    question = service.create_question(quiz.id, "  Is NaOH a base?  ")
    assert question.text == "Is NaOH a base?"
    assert question.order == 2
    with pytest.raises(ValueError):
        service.create_question(quiz.id, " ")
    with pytest.raises(ValueError, match="not found"):
        service.create_question(999, "Orphan")

    yes = service.create_answer(question.id, "Yes", is_correct=True)
    no = service.create_answer(question.id, "No")
    assert (yes.order, no.order) == (0, 1)
    assert [a.id for a in service.list_answers(question.id)] == [yes.id, no.id]

    assert service.update_answer(no.id, text="Not at all").text == "Not at all"
    assert service.update_question(question.id, text="Is NaOH basic?").text == "Is NaOH basic?"
    assert service.delete_answer(no.id) is True
    assert service.delete_answer(no.id) is False
    assert service.delete_question(question.id) is True
    assert len(service.list_questions(quiz.id)) == 2


def test_create_answers_is_all_or_nothing(db, quiz):
    service = QuizService(db)
    question_id = quiz.questions[1].id
    before = db.query(Answer).count()

    with pytest.raises(ValueError, match="Questions not found"):
        service.create_answers([
            {"question_id": question_id, "text": "weak acid"},
            {"question_id": 999, "text": "lost"},
        ])
    assert db.query(Answer).count() == before

    created = service.create_answers([
        {"question_id": question_id, "text": "weak acid"},
        {"question_id": question_id, "text": "salt", "order": 5},
    ])
    assert [a.text for a in created] == ["weak acid", "salt"]
    assert created[1].order == 5
    assert db.query(Answer).count() == before + 2


def test_update_quiz(db, quiz):
    service = QuizService(db)

    updated = service.update_quiz(quiz.id, time_limit=10, passing_score=80, description="  ")
    assert updated.time_limit == 10
    assert updated.passing_score == 80
    assert updated.description is None
    with pytest.raises(ValueError, match="Title is required"):
        service.update_quiz(quiz.id, title="")
    with pytest.raises(ValueError, match="not found"):
        service.update_quiz(quiz.id, lesson_id=999)
    assert service.update_quiz(999, title="x") is None


def test_quizzes_by_teacher(db, quiz, teacher, other_teacher):
    service = QuizService(db)
    other_lesson = LessonService(db).create_lesson("Gases", created_by=other_teacher.id)
    other_quiz = service.create_quiz(other_lesson.id, "Gas laws", created_by=other_teacher.id)

    assert [q.id for q in service.list_quizzes_by_teacher(teacher.id)] == [quiz.id]
    assert [q.id for q in service.list_quizzes_by_teacher(other_teacher.id)] == [other_quiz.id]
    assert len(service.list_quizzes_by_teacher(teacher.id, is_admin=True)) == 2


def test_delete_quiz(db, quiz):
    quiz_id = quiz.id
    service = QuizService(db)

    assert service.delete_quiz(quiz_id) is True
    assert db.query(Question).filter(Question.quiz_id == quiz_id).count() == 0
    assert service.delete_quiz(quiz_id) is False
