"""
API routes for lessons
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from quimica.api.routes.contents import ContentResponse
from quimica.api.routes.models import ARModelResponse
from quimica.api.routes.quizzes import QuizResponse
from quimica.core.auth import get_current_user_required, require_permission
from quimica.core.database import get_db
from quimica.core.permissions import Permission, ensure_owner, is_admin
from quimica.models.user import User
from quimica.services.lesson_service import LessonService

router = APIRouter(prefix="/api/lessons", tags=["lessons"])


class LessonResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    level: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FullLessonResponse(BaseModel):
    """Lesson with everything attached to it"""
    lesson: LessonResponse
    contents: List[ContentResponse] = []
    models: List[ARModelResponse] = []
    quizzes: List[QuizResponse] = []


class LessonCreate(BaseModel):
    title: str
    description: Optional[str] = None
    level: Optional[str] = None
    thumbnail_url: Optional[str] = None


class LessonUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    level: Optional[str] = None
    thumbnail_url: Optional[str] = None


def _get_owned_lesson(service: LessonService, lesson_id: int, user: User):
    lesson = service.get_lesson(lesson_id)
    if not lesson:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
    try:
        ensure_owner(user, lesson.created_by, "lesson")
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return lesson


@router.get("", response_model=List[LessonResponse])
async def list_lessons(
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return LessonService(db).list_lessons()


@router.get("/search", response_model=List[LessonResponse])
async def search_lessons(
    q: str = Query("", description="Text to look for in lesson titles"),
    limit: int = Query(10, ge=1, le=50),
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return LessonService(db).search_lessons(q, limit=limit)


@router.get("/mine", response_model=List[LessonResponse])
async def list_my_lessons(
    user: User = Depends(require_permission(Permission.LESSON_MANAGE)),
    db: Session = Depends(get_db)
):
    """Lessons authored by the current teacher (every lesson for admins)"""
    return LessonService(db).list_lessons_by_teacher(user.id, is_admin=is_admin(user))


@router.get("/{lesson_id}", response_model=LessonResponse)
async def get_lesson(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    lesson = LessonService(db).get_lesson(lesson_id)
    if not lesson:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
    return lesson


@router.get("/{lesson_id}/full", response_model=FullLessonResponse)
async def get_full_lesson(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    full = LessonService(db).get_full_lesson(lesson_id)
    if not full:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
    return full


@router.post("", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
async def create_lesson(
    request: LessonCreate,
    user: User = Depends(require_permission(Permission.LESSON_MANAGE)),
    db: Session = Depends(get_db)
):
    try:
        return LessonService(db).create_lesson(created_by=user.id, **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
    lesson_id: int,
    request: LessonUpdate,
    user: User = Depends(require_permission(Permission.LESSON_MANAGE)),
    db: Session = Depends(get_db)
):
    service = LessonService(db)
    _get_owned_lesson(service, lesson_id, user)
    try:
        return service.update_lesson(lesson_id, **request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson(
    lesson_id: int,
    user: User = Depends(require_permission(Permission.LESSON_MANAGE)),
    db: Session = Depends(get_db)
):
    """Delete a lesson with its sections, quizzes and progress"""
    service = LessonService(db)
    _get_owned_lesson(service, lesson_id, user)
    service.delete_lesson(lesson_id)
    return None
