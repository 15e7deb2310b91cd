"""
API routes for recorded quiz results
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from quimica.core.auth import get_current_user_required, require_permission
from quimica.core.database import get_db
from quimica.core.permissions import Permission, has_permission, owns
from quimica.models.lesson import Lesson
from quimica.models.quiz import Quiz
from quimica.models.user import User
from quimica.services.result_service import ResultService

router = APIRouter(prefix="/api/results", tags=["results"])


class ResultResponse(BaseModel):
    id: int
    quiz_id: int
    user_id: UUID
    score: Optional[int] = None
    total: Optional[int] = None
    passed: Optional[bool] = None
    time_spent: Optional[int] = None
    answers: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StudentRef(BaseModel):
    id: UUID
    email: str
    display_name: Optional[str] = None

    class Config:
        from_attributes = True


class QuizResultWithStudent(ResultResponse):
    user: Optional[StudentRef] = None


def _can_view_quiz_results(db: Session, user: User, quiz: Quiz) -> bool:
    if not has_permission(user, Permission.RESULT_VIEW_ALL):
        return False
    if owns(user, quiz.created_by):
        return True
    lesson = db.query(Lesson).filter(Lesson.id == quiz.lesson_id).first()
    return lesson is not None and owns(user, lesson.created_by)


@router.get("/mine", response_model=List[ResultResponse])
async def list_my_results(
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ResultService(db).list_results_by_user(user.id)


@router.get("/mine/quiz/{quiz_id}", response_model=List[ResultResponse])
async def list_my_results_for_quiz(
    quiz_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    """Every attempt of the current user on a quiz, newest first"""
    return ResultService(db).list_results_by_user_and_quiz(user.id, quiz_id)


@router.get("/mine/quiz/{quiz_id}/best", response_model=Optional[ResultResponse])
async def get_my_best_result(
    quiz_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ResultService(db).get_best_result(user.id, quiz_id)


@router.get("/quiz/{quiz_id}", response_model=List[QuizResultWithStudent])
async def list_quiz_results(
    quiz_id: int,
    user: User = Depends(require_permission(Permission.RESULT_VIEW_ALL)),
    db: Session = Depends(get_db)
):
    """Submitted attempts of a quiz, for its author"""
    quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
    if not quiz:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    if not _can_view_quiz_results(db, user, quiz):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only view results of your own quizzes")
    return ResultService(db).list_results_by_quiz(quiz_id)


@router.get("/{result_id}", response_model=ResultResponse)
async def get_result(
    result_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    result = ResultService(db).get_result(result_id)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Result not found")
    if result.user_id != user.id and not _can_view_quiz_results(db, user, result.quiz):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not allowed to view this result")
    return result
