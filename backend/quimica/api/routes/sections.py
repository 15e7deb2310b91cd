"""
API routes for ordered lesson sections
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from quimica.api.routes.contents import ContentResponse
from quimica.api.routes.models import ARModelResponse
from quimica.api.routes.quizzes import QuizResponse
from quimica.core.auth import get_current_user_required, require_permission
from quimica.core.database import get_db
from quimica.core.permissions import Permission, ensure_owner
from quimica.models.lesson import Lesson
from quimica.models.user import User
from quimica.services.section_service import SectionService

router = APIRouter(prefix="/api/sections", tags=["sections"])


class SectionResponse(BaseModel):
    id: int
    lesson_id: int
    order: int
    section_type: str
    content_id: Optional[int] = None
    quiz_id: Optional[int] = None
    model_id: Optional[int] = None
    title: Optional[str] = None
    is_required: bool
    requirements: List[int] = []
    created_at: datetime

    class Config:
        from_attributes = True


class SectionDetail(SectionResponse):
    content: Optional[ContentResponse] = None
    quiz: Optional[QuizResponse] = None
    model: Optional[ARModelResponse] = None


class SectionProgressResponse(BaseModel):
    id: int
    section_id: int
    completed: bool
    score: Optional[int] = None
    time_spent: int
    attempts: int
    completed_at: Optional[datetime] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class FullSectionResponse(BaseModel):
    section: SectionDetail
    progress: Optional[SectionProgressResponse] = None
    locked: bool


class SectionCreate(BaseModel):
    lesson_id: int
    section_type: str
    order: Optional[int] = None
    content_id: Optional[int] = None
    quiz_id: Optional[int] = None
    model_id: Optional[int] = None
    title: Optional[str] = None
    is_required: Optional[bool] = None
    requirements: List[int] = []


class SectionUpdate(BaseModel):
    order: Optional[int] = None
    section_type: Optional[str] = None
    content_id: Optional[int] = None
    quiz_id: Optional[int] = None
    model_id: Optional[int] = None
    title: Optional[str] = None
    is_required: Optional[bool] = None
    requirements: Optional[List[int]] = None


class SectionOrder(BaseModel):
    id: int
    order: int


def _ensure_lesson_owner(db: Session, lesson_id: int, user: User):
    lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    if not lesson:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
    try:
        ensure_owner(user, lesson.created_by, "lesson")
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


def _get_owned_section(db: Session, service: SectionService, section_id: int, user: User):
    section = service.get_section(section_id)
    if not section:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    _ensure_lesson_owner(db, section.lesson_id, user)
    return section


@router.get("/by-lesson/{lesson_id}", response_model=List[SectionResponse])
async def list_sections(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return SectionService(db).list_sections(lesson_id)


@router.get("/by-lesson/{lesson_id}/full", response_model=List[FullSectionResponse])
async def list_full_sections(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    """Sections with their targets, the current user's progress and lock state"""
    return SectionService(db).list_full_sections(lesson_id, user_id=user.id)


@router.get("/by-lesson/{lesson_id}/next-order")
async def next_section_order(
    lesson_id: int,
    user: User = Depends(require_permission(Permission.LESSON_MANAGE)),
    db: Session = Depends(get_db)
):
    return {"order": SectionService(db).next_order(lesson_id)}


@router.put("/by-lesson/{lesson_id}/reorder", response_model=List[SectionResponse])
async def reorder_sections(
    lesson_id: int,
    request: List[SectionOrder],
    user: User = Depends(require_permission(Permission.LESSON_MANAGE)),
    db: Session = Depends(get_db)
):
    _ensure_lesson_owner(db, lesson_id, user)
    try:
        return SectionService(db).reorder_sections(lesson_id, [item.model_dump() for item in request])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{section_id}", response_model=SectionResponse)
async def get_section(
    section_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    section = SectionService(db).get_section(section_id)
    if not section:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    return section


@router.post("", response_model=SectionResponse, status_code=status.HTTP_201_CREATED)
async def create_section(
    request: SectionCreate,
    user: User = Depends(require_permission(Permission.LESSON_MANAGE)),
    db: Session = Depends(get_db)
):
    _ensure_lesson_owner(db, request.lesson_id, user)
    fields = request.model_dump()
    lesson_id = fields.pop("lesson_id")
    section_type = fields.pop("section_type")
    try:
        return SectionService(db).create_section(lesson_id, section_type, **fields)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{section_id}", response_model=SectionResponse)
async def update_section(
    section_id: int,
    request: SectionUpdate,
    user: User = Depends(require_permission(Permission.LESSON_MANAGE)),
    db: Session = Depends(get_db)
):
    service = SectionService(db)
    _get_owned_section(db, service, section_id, user)
    try:
        return service.update_section(section_id, **request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_section(
    section_id: int,
    user: User = Depends(require_permission(Permission.LESSON_MANAGE)),
    db: Session = Depends(get_db)
):
    service = SectionService(db)
    _get_owned_section(db, service, section_id, user)
    service.delete_section(section_id)
    return None
