"""
Service for quizzes, their questions and answers
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from quimica.core.logging_config import LoggingConfig
from quimica.models.lesson import Lesson
from quimica.models.quiz import Answer, Question, Quiz

logger = LoggingConfig.get_logger(__name__)

_QUIZ_FIELDS = ("title", "description", "lesson_id", "time_limit", "passing_score", "active", "order")
_QUESTION_FIELDS = ("text", "question_type", "order")
_ANSWER_FIELDS = ("text", "is_correct", "order")


def validate_quiz_payload(payload: Dict[str, Any]) -> None:
    """
    Validate a quiz as submitted by the editor, reporting the first problem

    Raises:
        ValueError: With a message naming the offending question or answer (1-based)
    """
    if not (payload.get("title") or "").strip():
        raise ValueError("Title is required")
    if not payload.get("lesson_id"):
        raise ValueError("Select a lesson")

    questions = payload.get("questions") or []
    if not questions:
        raise ValueError("Add at least one question")

    for i, question in enumerate(questions, start=1):
        if not (question.get("text") or "").strip():
            raise ValueError(f"Question {i} must have text")
        answers = question.get("answers") or []
        if len(answers) < 2:
            raise ValueError(f"Question {i} must have at least 2 answers")
        if not any(answer.get("is_correct") for answer in answers):
            raise ValueError(f"Question {i} must have at least one correct answer")
        for j, answer in enumerate(answers, start=1):
            if not (answer.get("text") or "").strip():
                raise ValueError(f"Answer {j} of question {i} must have text")


def student_view(quiz: Quiz) -> Dict[str, Any]:
    """Quiz as shown to a student taking it: no answer is marked correct"""
    return {
        "id": quiz.id,
        "lesson_id": quiz.lesson_id,
        "title": quiz.title,
        "description": quiz.description,
        "time_limit": quiz.time_limit,
        "passing_score": quiz.passing_score,
        "questions": [
            {
                "id": question.id,
                "text": question.text,
                "question_type": question.question_type,
                "order": question.order,
                "answers": [
                    {"id": answer.id, "text": answer.text, "order": answer.order}
                    for answer in question.answers
                ],
            }
            for question in quiz.questions
        ],
    }


class QuizService:
    """Service for quiz, question and answer management"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Quizzes
    # ------------------------------------------------------------------

    def _ordered(self, query):
        return query.order_by(Quiz.order.is_(None), Quiz.order.asc(), Quiz.id.asc())

    def list_quizzes_by_lesson(self, lesson_id: int) -> List[Quiz]:
        return self._ordered(self.db.query(Quiz).filter(Quiz.lesson_id == lesson_id)).all()

    def list_quizzes_by_teacher(self, user_id: UUID, is_admin: bool = False) -> List[Quiz]:
        """
        Quizzes of the lessons a teacher authored; admins get every quiz
        """
        query = self.db.query(Quiz)
        if not is_admin:
            query = query.join(Lesson, Lesson.id == Quiz.lesson_id).filter(Lesson.created_by == user_id)
        return self._ordered(query).all()

    def get_quiz(self, quiz_id: int) -> Optional[Quiz]:
        return self.db.query(Quiz).filter(Quiz.id == quiz_id).first()

    def get_full_quiz(self, quiz_id: int) -> Optional[Quiz]:
        """Quiz with ordered questions, each with ordered answers"""
        return (
            self.db.query(Quiz)
            .options(selectinload(Quiz.questions).selectinload(Question.answers))
            .filter(Quiz.id == quiz_id)
            .first()
        )

    def _check_lesson(self, lesson_id: int) -> Lesson:
        lesson = self.db.query(Lesson).filter(Lesson.id == lesson_id).first()
        if not lesson:
            raise ValueError(f"Lesson {lesson_id} not found")
        return lesson

    def create_quiz(
        self,
        lesson_id: int,
        title: str,
        description: Optional[str] = None,
        time_limit: Optional[int] = None,
        passing_score: Optional[int] = None,
        active: bool = True,
        order: Optional[int] = None,
        created_by: Optional[UUID] = None,
    ) -> Quiz:
        """
        Create a quiz without questions

        Raises:
            ValueError: If the title is blank or the lesson does not exist
        """
        title = (title or "").strip()
        if not title:
            raise ValueError("Title is required")
        self._check_lesson(lesson_id)

        quiz = Quiz(
            lesson_id=lesson_id,
            title=title,
            description=(description or "").strip() or None,
            time_limit=time_limit,
            passing_score=passing_score,
            active=active,
            order=order,
            created_by=created_by,
        )
        try:
            self.db.add(quiz)
            self.db.commit()
            self.db.refresh(quiz)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating quiz: {e}", exc_info=True)
            raise

        logger.info(f"Created quiz {quiz.id} for lesson {lesson_id}")
        return quiz

    def _apply_quiz_fields(self, quiz: Quiz, fields: Dict[str, Any]):
        for key, value in fields.items():
            if key not in _QUIZ_FIELDS:
                continue
            if key == "title":
                value = (value or "").strip()
                if not value:
                    raise ValueError("Title is required")
            elif key == "description":
                value = (value or "").strip() or None
            elif key == "lesson_id":
                self._check_lesson(value)
            setattr(quiz, key, value)
        quiz.updated_at = datetime.utcnow()

    def update_quiz(self, quiz_id: int, **fields) -> Optional[Quiz]:
        """
        Update quiz fields and stamp updated_at

        Raises:
            ValueError: On a blank title or an unknown lesson
        """
        quiz = self.get_quiz(quiz_id)
        if not quiz:
            return None
        self._apply_quiz_fields(quiz, fields)
        try:
            self.db.commit()
            self.db.refresh(quiz)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating quiz {quiz_id}: {e}", exc_info=True)
            raise
        return quiz

    def delete_quiz(self, quiz_id: int) -> bool:
        """Delete a quiz with its questions, answers and results"""
        quiz = self.get_quiz(quiz_id)
        if not quiz:
            return False
        try:
            self.db.delete(quiz)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting quiz {quiz_id}: {e}", exc_info=True)
            raise
        logger.info(f"Deleted quiz {quiz_id}")
        return True

    def save_from_editor(
        self,
        payload: Dict[str, Any],
        user_id: Optional[UUID] = None,
        quiz_id: Optional[int] = None,
    ) -> Quiz:
        """
        Create or update a quiz with its questions and answers in one transaction

        Questions and answers carrying an id are updated in place, new ones are
        inserted and the ones no longer present are deleted. Order follows the
        position in the payload.

        Args:
            payload: Quiz fields plus `questions`, each with `answers`
            user_id: Author of a new quiz
            quiz_id: Quiz to update; None creates a new one

        Returns:
            The saved quiz with questions and answers

        Raises:
            ValueError: If the payload fails validation or the quiz does not exist
        """
        validate_quiz_payload(payload)

        try:
            if quiz_id is None:
                quiz = Quiz(created_by=user_id, active=True)
                self._apply_quiz_fields(quiz, payload)
                self.db.add(quiz)
            else:
                quiz = self.get_full_quiz(quiz_id)
                if not quiz:
                    raise ValueError(f"Quiz {quiz_id} not found")
                self._apply_quiz_fields(quiz, payload)

            existing_questions = {q.id: q for q in quiz.questions}
            questions = []
            for i, question_data in enumerate(payload["questions"]):
                question = existing_questions.pop(question_data.get("id"), None) or Question()
                question.text = question_data["text"].strip()
                question.question_type = question_data.get("question_type") or "multiple_choice"
                question.order = i

                existing_answers = {a.id: a for a in question.answers}
                answers = []
                for j, answer_data in enumerate(question_data["answers"]):
                    answer = existing_answers.pop(answer_data.get("id"), None) or Answer()
                    answer.text = answer_data["text"].strip()
                    answer.is_correct = bool(answer_data.get("is_correct"))
                    answer.order = j
                    answers.append(answer)
                question.answers = answers
                questions.append(question)
            quiz.questions = questions

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error saving quiz from editor: {e}", exc_info=True)
            raise

        logger.info(f"Saved quiz {quiz.id} with {len(payload['questions'])} questions")
        return self.get_full_quiz(quiz.id)

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    def list_questions(self, quiz_id: int) -> List[Question]:
        """Questions of a quiz in order, answers loaded"""
        return (
            self.db.query(Question)
            .options(selectinload(Question.answers))
            .filter(Question.quiz_id == quiz_id)
            .order_by(Question.order.asc(), Question.id.asc())
            .all()
        )

    def get_question(self, question_id: int) -> Optional[Question]:
        return self.db.query(Question).filter(Question.id == question_id).first()

    def create_question(
        self,
        quiz_id: int,
        text: str,
        question_type: str = "multiple_choice",
        order: Optional[int] = None,
    ) -> Question:
        """
        Raises:
            ValueError: If the text is blank or the quiz does not exist
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("Question text is required")
        if not self.get_quiz(quiz_id):
            raise ValueError(f"Quiz {quiz_id} not found")
        if order is None:
            order = self.db.query(func.count(Question.id)).filter(Question.quiz_id == quiz_id).scalar() or 0

        question = Question(quiz_id=quiz_id, text=text, question_type=question_type, order=order)
        self.db.add(question)
        self.db.commit()
        self.db.refresh(question)
        return question

    def update_question(self, question_id: int, **fields) -> Optional[Question]:
        question = self.get_question(question_id)
        if not question:
            return None
        for key, value in fields.items():
            if key not in _QUESTION_FIELDS:
                continue
            if key == "text":
                value = (value or "").strip()
                if not value:
                    raise ValueError("Question text is required")
            setattr(question, key, value)
        self.db.commit()
        self.db.refresh(question)
        return question

    def delete_question(self, question_id: int) -> bool:
        question = self.get_question(question_id)
        if not question:
            return False
        self.db.delete(question)
        self.db.commit()
        return True

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    def list_answers(self, question_id: int) -> List[Answer]:
        return (
            self.db.query(Answer)
            .filter(Answer.question_id == question_id)
            .order_by(Answer.order.asc(), Answer.id.asc())
            .all()
        )

    def get_answer(self, answer_id: int) -> Optional[Answer]:
        return self.db.query(Answer).filter(Answer.id == answer_id).first()

    def _new_answer(self, question_id: int, text: str, is_correct: bool, order: Optional[int]) -> Answer:
        text = (text or "").strip()
        if not text:
            raise ValueError("Answer text is required")
        return Answer(question_id=question_id, text=text, is_correct=bool(is_correct), order=order or 0)

    def create_answer(
        self,
        question_id: int,
        text: str,
        is_correct: bool = False,
        order: Optional[int] = None,
    ) -> Answer:
        """
        Raises:
            ValueError: If the text is blank or the question does not exist
        """
        if not self.get_question(question_id):
            raise ValueError(f"Question {question_id} not found")
        if order is None:
            order = self.db.query(func.count(Answer.id)).filter(Answer.question_id == question_id).scalar() or 0
        answer = self._new_answer(question_id, text, is_correct, order)
        self.db.add(answer)
        self.db.commit()
        self.db.refresh(answer)
        return answer

    def create_answers(self, answers: List[Dict[str, Any]]) -> List[Answer]:
        """
        Insert several answers in one transaction

        Args:
            answers: Dicts with question_id, text, is_correct and optional order

        Raises:
            ValueError: If any answer is invalid; nothing is inserted then
        """
        question_ids = {data.get("question_id") for data in answers}
        found = {
            row[0]
            for row in self.db.query(Question.id).filter(Question.id.in_(question_ids)).all()
        }
        missing = sorted(qid for qid in question_ids if qid not in found)
        if missing:
            raise ValueError(f"Questions not found: {missing}")

        created = [
            self._new_answer(
                data["question_id"],
                data.get("text"),
                data.get("is_correct", False),
                data.get("order", index),
            )
            for index, data in enumerate(answers)
        ]
        try:
            self.db.add_all(created)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating answers: {e}", exc_info=True)
            raise
        for answer in created:
            self.db.refresh(answer)
        return created

    def update_answer(self, answer_id: int, **fields) -> Optional[Answer]:
        answer = self.get_answer(answer_id)
        if not answer:
            return None
        for key, value in fields.items():
            if key not in _ANSWER_FIELDS:
                continue
            if key == "text":
                value = (value or "").strip()
                if not value:
                    raise ValueError("Answer text is required")
            setattr(answer, key, value)
        self.db.commit()
        self.db.refresh(answer)
        return answer

    def delete_answer(self, answer_id: int) -> bool:
        answer = self.get_answer(answer_id)
        if not answer:
            return False
        self.db.delete(answer)
        self.db.commit()
        return True
