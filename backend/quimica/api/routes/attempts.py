"""
API routes for taking quizzes
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from quimica.core.auth import require_permission
from quimica.core.database import get_db
from quimica.core.errors import AttemptAlreadySubmittedError
from quimica.core.permissions import Permission
from quimica.models.quiz import QuizResult
from quimica.models.user import User
from quimica.services.attempt_service import AttemptService

router = APIRouter(prefix="/api/attempts", tags=["attempts"])


class StartAttemptRequest(BaseModel):
    quiz_id: int


class StartAttemptResponse(BaseModel):
    attempt_id: int
    started_at: datetime
    quiz: Dict[str, Any]
    time_remaining: Optional[int] = None


class AttemptStatusResponse(BaseModel):
    attempt_id: int
    submitted: bool
    time_remaining: Optional[int] = None
    time_remaining_display: Optional[str] = None
    expired: bool


class SubmitAttemptRequest(BaseModel):
    """Selected answer id per question id"""
    answers: Dict[str, Any] = {}
    auto_submit: bool = False


class SubmitAttemptResponse(BaseModel):
    attempt_id: int
    score: int
    correct: int
    total: int
    passed: bool
    time_spent: int
    time_spent_display: str


def _get_own_attempt(service: AttemptService, attempt_id: int, user: User) -> QuizResult:
    attempt = service.get_attempt(attempt_id)
    if not attempt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attempt not found")
    if attempt.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This attempt belongs to another user")
    return attempt


@router.post("", response_model=StartAttemptResponse, status_code=status.HTTP_201_CREATED)
async def start_attempt(
    request: StartAttemptRequest,
    user: User = Depends(require_permission(Permission.QUIZ_TAKE)),
    db: Session = Depends(get_db)
):
    """Start a quiz; the quiz comes back without correct flags"""
    try:
        started = AttemptService(db).start_attempt(request.quiz_id, user.id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if started is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    return started


@router.get("/{attempt_id}/status", response_model=AttemptStatusResponse)
async def attempt_status(
    attempt_id: int,
    user: User = Depends(require_permission(Permission.QUIZ_TAKE)),
    db: Session = Depends(get_db)
):
    """Countdown state of a running attempt"""
    service = AttemptService(db)
    attempt = _get_own_attempt(service, attempt_id, user)
    return service.status(attempt)


@router.post("/{attempt_id}/submit", response_model=SubmitAttemptResponse)
async def submit_attempt(
    attempt_id: int,
    request: SubmitAttemptRequest,
    user: User = Depends(require_permission(Permission.QUIZ_TAKE)),
    db: Session = Depends(get_db)
):
    """
    Grade an attempt

    Manual submissions must answer every question. A submission after the
    countdown ran out is graded as-is, unanswered questions counting as wrong.
    """
    service = AttemptService(db)
    attempt = _get_own_attempt(service, attempt_id, user)
    try:
        return service.submit_attempt(attempt, request.answers, auto_submit=request.auto_submit)
    except AttemptAlreadySubmittedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
