"""
API routes for quizzes, questions and answers
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from quimica.core.auth import get_current_user_required, require_permission
from quimica.core.database import get_db
from quimica.core.permissions import Permission, is_admin
from quimica.models.lesson import Lesson
from quimica.models.quiz import Quiz
from quimica.models.user import User
from quimica.services.quiz_service import QuizService, student_view

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])


# Response models
class AnswerResponse(BaseModel):
    id: int
    question_id: int
    text: str
    is_correct: bool
    order: int

    class Config:
        from_attributes = True


class QuestionResponse(BaseModel):
    id: int
    quiz_id: int
    text: str
    question_type: str
    order: int
    answers: List[AnswerResponse] = []

    class Config:
        from_attributes = True


class QuizResponse(BaseModel):
    id: int
    lesson_id: int
    title: str
    description: Optional[str] = None
    time_limit: Optional[int] = None
    passing_score: Optional[int] = None
    active: bool
    order: Optional[int] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuizFullResponse(QuizResponse):
    questions: List[QuestionResponse] = []


# Request models
class QuizCreate(BaseModel):
    lesson_id: int
    title: str
    description: Optional[str] = None
    time_limit: Optional[int] = None
    passing_score: Optional[int] = None
    active: bool = True
    order: Optional[int] = None


class QuizUpdate(BaseModel):
    lesson_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    time_limit: Optional[int] = None
    passing_score: Optional[int] = None
    active: Optional[bool] = None
    order: Optional[int] = None


class EditorAnswer(BaseModel):
    id: Optional[int] = None
    text: str = ""
    is_correct: bool = False


class EditorQuestion(BaseModel):
    id: Optional[int] = None
    text: str = ""
    question_type: str = "multiple_choice"
    answers: List[EditorAnswer] = []


class QuizEditorPayload(BaseModel):
    """Quiz with nested questions and answers, as saved by the quiz editor"""
    title: str = ""
    lesson_id: Optional[int] = None
    description: Optional[str] = None
    time_limit: Optional[int] = None
    passing_score: Optional[int] = None
    active: bool = True
    order: Optional[int] = None
    questions: List[EditorQuestion] = []


class QuestionCreate(BaseModel):
    text: str
    question_type: str = "multiple_choice"
    order: Optional[int] = None


class QuestionUpdate(BaseModel):
    text: Optional[str] = None
    question_type: Optional[str] = None
    order: Optional[int] = None


class AnswerCreate(BaseModel):
    text: str
    is_correct: bool = False
    order: Optional[int] = None


class AnswerBulkItem(AnswerCreate):
    question_id: int


class AnswerUpdate(BaseModel):
    text: Optional[str] = None
    is_correct: Optional[bool] = None
    order: Optional[int] = None


def _can_manage_lesson(db: Session, user: User, lesson_id: Optional[int]) -> bool:
    if is_admin(user):
        return True
    lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first() if lesson_id else None
    return lesson is not None and lesson.created_by == user.id


def _ensure_lesson_owner(db: Session, user: User, lesson_id: Optional[int]):
    if lesson_id is None or is_admin(user):
        return
    lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    if lesson is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Lesson {lesson_id} not found")
    if lesson.created_by != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only manage quizzes of your own lessons")


def _get_managed_quiz(db: Session, service: QuizService, quiz_id: int, user: User) -> Quiz:
    quiz = service.get_quiz(quiz_id)
    if not quiz:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    if quiz.created_by != user.id and not _can_manage_lesson(db, user, quiz.lesson_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not allowed to modify this quiz")
    return quiz


# ---------------------------------------------------------------------------
# Quizzes
# ---------------------------------------------------------------------------

@router.get("/mine", response_model=List[QuizResponse])
async def list_my_quizzes(
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    """Quizzes of the current teacher's lessons (every quiz for admins)"""
    return QuizService(db).list_quizzes_by_teacher(user.id, is_admin=is_admin(user))


@router.get("/by-lesson/{lesson_id}", response_model=List[QuizResponse])
async def list_quizzes_by_lesson(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return QuizService(db).list_quizzes_by_lesson(lesson_id)


@router.get("/{quiz_id}", response_model=QuizResponse)
async def get_quiz(
    quiz_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    quiz = QuizService(db).get_quiz(quiz_id)
    if not quiz:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    return quiz


@router.get("/{quiz_id}/full", response_model=QuizFullResponse)
async def get_full_quiz(
    quiz_id: int,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    """Quiz with questions and answers, correct flags included"""
    service = QuizService(db)
    _get_managed_quiz(db, service, quiz_id, user)
    return service.get_full_quiz(quiz_id)


@router.get("/{quiz_id}/take")
async def get_quiz_for_student(
    quiz_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    """Quiz with questions and answers, without correct flags"""
    quiz = QuizService(db).get_full_quiz(quiz_id)
    if not quiz:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    return student_view(quiz)


@router.post("", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    request: QuizCreate,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    _ensure_lesson_owner(db, user, request.lesson_id)
    try:
        return QuizService(db).create_quiz(created_by=user.id, **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{quiz_id}", response_model=QuizResponse)
async def update_quiz(
    quiz_id: int,
    request: QuizUpdate,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    service = QuizService(db)
    _get_managed_quiz(db, service, quiz_id, user)
    fields = request.model_dump(exclude_unset=True)
    _ensure_lesson_owner(db, user, fields.get("lesson_id"))
    try:
        return service.update_quiz(quiz_id, **fields)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(
    quiz_id: int,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    service = QuizService(db)
    _get_managed_quiz(db, service, quiz_id, user)
    service.delete_quiz(quiz_id)
    return None


@router.post("/editor", response_model=QuizFullResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz_from_editor(
    payload: QuizEditorPayload,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    """Create a quiz with its questions and answers in one request"""
    _ensure_lesson_owner(db, user, payload.lesson_id)
    try:
        return QuizService(db).save_from_editor(payload.model_dump(), user_id=user.id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{quiz_id}/editor", response_model=QuizFullResponse)
async def update_quiz_from_editor(
    quiz_id: int,
    payload: QuizEditorPayload,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    """Replace a quiz's fields, questions and answers"""
    service = QuizService(db)
    _get_managed_quiz(db, service, quiz_id, user)
    _ensure_lesson_owner(db, user, payload.lesson_id)
    try:
        return service.save_from_editor(payload.model_dump(), user_id=user.id, quiz_id=quiz_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

@router.get("/{quiz_id}/questions", response_model=List[QuestionResponse])
async def list_questions(
    quiz_id: int,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    service = QuizService(db)
    _get_managed_quiz(db, service, quiz_id, user)
    return service.list_questions(quiz_id)


@router.post("/{quiz_id}/questions", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def create_question(
    quiz_id: int,
    request: QuestionCreate,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    service = QuizService(db)
    _get_managed_quiz(db, service, quiz_id, user)
    try:
        return service.create_question(quiz_id, **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _get_managed_question(db: Session, service: QuizService, question_id: int, user: User):
    question = service.get_question(question_id)
    if not question:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    _get_managed_quiz(db, service, question.quiz_id, user)
    return question


@router.put("/questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: int,
    request: QuestionUpdate,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    service = QuizService(db)
    _get_managed_question(db, service, question_id, user)
    try:
        return service.update_question(question_id, **request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(
    question_id: int,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    service = QuizService(db)
    _get_managed_question(db, service, question_id, user)
    service.delete_question(question_id)
    return None


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------

@router.get("/questions/{question_id}/answers", response_model=List[AnswerResponse])
async def list_answers(
    question_id: int,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    service = QuizService(db)
    _get_managed_question(db, service, question_id, user)
    return service.list_answers(question_id)


@router.post("/questions/{question_id}/answers", response_model=AnswerResponse, status_code=status.HTTP_201_CREATED)
async def create_answer(
    question_id: int,
    request: AnswerCreate,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    service = QuizService(db)
    _get_managed_question(db, service, question_id, user)
    try:
        return service.create_answer(question_id, **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/answers/bulk", response_model=List[AnswerResponse], status_code=status.HTTP_201_CREATED)
async def create_answers(
    request: List[AnswerBulkItem],
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    """Insert several answers at once; nothing is stored if one is invalid"""
    service = QuizService(db)
    for question_id in {item.question_id for item in request}:
        _get_managed_question(db, service, question_id, user)
    try:
        return service.create_answers([item.model_dump(exclude_none=True) for item in request])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _get_managed_answer(db: Session, service: QuizService, answer_id: int, user: User):
    answer = service.get_answer(answer_id)
    if not answer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Answer not found")
    _get_managed_question(db, service, answer.question_id, user)
    return answer


@router.put("/answers/{answer_id}", response_model=AnswerResponse)
async def update_answer(
    answer_id: int,
    request: AnswerUpdate,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    service = QuizService(db)
    _get_managed_answer(db, service, answer_id, user)
    try:
        return service.update_answer(answer_id, **request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/answers/{answer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_answer(
    answer_id: int,
    user: User = Depends(require_permission(Permission.QUIZ_MANAGE)),
    db: Session = Depends(get_db)
):
    service = QuizService(db)
    _get_managed_answer(db, service, answer_id, user)
    service.delete_answer(answer_id)
    return None
