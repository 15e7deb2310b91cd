"""
API routes for student progress on lessons and sections
"""
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from quimica.api.routes.contents import LessonRef
from quimica.api.routes.sections import SectionProgressResponse
from quimica.core.auth import get_current_user_required
from quimica.core.database import get_db
from quimica.models.lesson import Lesson
from quimica.models.user import User
from quimica.services.progress_service import ProgressService

router = APIRouter(prefix="/api/progress", tags=["progress"])


class ProgressResponse(BaseModel):
    id: int
    lesson_id: int
    completed: bool
    score: Optional[int] = None
    last_access: Optional[datetime] = None
    lesson: Optional[LessonRef] = None

    class Config:
        from_attributes = True


class ProgressSummary(BaseModel):
    progress: List[ProgressResponse]
    total_lessons: int
    completed_lessons: int


class LessonStats(BaseModel):
    total_sections: int
    completed_sections: int
    percent_completed: int
    total_time_spent: int


class TouchRequest(BaseModel):
    completed: Optional[bool] = None
    score: Optional[int] = Field(None, ge=0, le=100)


class CompletionRequest(BaseModel):
    lesson_ids: List[int]


class SectionProgressUpdate(BaseModel):
    completed: Optional[bool] = None
    score: Optional[int] = None
    time_spent: Optional[int] = Field(None, ge=0)
    attempts: Optional[int] = Field(None, ge=0)


class SectionCompleteRequest(BaseModel):
    score: Optional[int] = None


class SectionTimeRequest(BaseModel):
    seconds: int = Field(..., ge=0)


def _section_call(method, *args, **kwargs):
    try:
        return method(*args, **kwargs)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/mine", response_model=List[ProgressResponse])
async def list_my_progress(
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    """Lesson progress of the current user, most recent access first"""
    return ProgressService(db).get_progress_by_user(user.id)


@router.get("/mine/summary", response_model=ProgressSummary)
async def my_progress_summary(
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ProgressService(db).student_summary(user.id)


@router.post("/completion", response_model=Dict[int, int])
async def completion_percents(
    request: CompletionRequest,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    """Share of required sections completed, per lesson"""
    return ProgressService(db).completion_percents(user.id, request.lesson_ids)


@router.get("/lessons/{lesson_id}", response_model=Optional[ProgressResponse])
async def get_lesson_progress(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ProgressService(db).get_progress(user.id, lesson_id)


@router.post("/lessons/{lesson_id}/touch", response_model=ProgressResponse)
async def touch_lesson(
    lesson_id: int,
    request: TouchRequest,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    """Record a visit to a lesson"""
    if not db.query(Lesson.id).filter(Lesson.id == lesson_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
    return ProgressService(db).touch_lesson(user.id, lesson_id, **request.model_dump())


@router.get("/lessons/{lesson_id}/stats", response_model=LessonStats)
async def lesson_stats(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ProgressService(db).lesson_stats(user.id, lesson_id)


@router.get("/lessons/{lesson_id}/completed")
async def is_lesson_completed(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return {"lesson_id": lesson_id, "completed": ProgressService(db).is_lesson_completed(user.id, lesson_id)}


@router.get("/lessons/{lesson_id}/sections", response_model=List[SectionProgressResponse])
async def list_section_progress(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ProgressService(db).list_section_progress(user.id, lesson_id)


@router.put("/sections/{section_id}", response_model=SectionProgressResponse)
async def update_section_progress(
    section_id: int,
    request: SectionProgressUpdate,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return _section_call(
        ProgressService(db).upsert_section_progress,
        user.id, section_id, **request.model_dump(exclude_unset=True)
    )


@router.post("/sections/{section_id}/complete", response_model=SectionProgressResponse)
async def complete_section(
    section_id: int,
    request: SectionCompleteRequest,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return _section_call(ProgressService(db).mark_section_completed, user.id, section_id, request.score)


@router.post("/sections/{section_id}/time", response_model=SectionProgressResponse)
async def add_section_time(
    section_id: int,
    request: SectionTimeRequest,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    """Add seconds spent on a section"""
    return _section_call(ProgressService(db).add_section_time, user.id, section_id, request.seconds)


@router.post("/sections/{section_id}/attempts", response_model=SectionProgressResponse)
async def increment_section_attempts(
    section_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return _section_call(ProgressService(db).increment_section_attempts, user.id, section_id)
