"""
API routes for content blocks and their lesson links
"""
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from quimica.core.auth import get_current_user_required, require_permission
from quimica.core.database import get_db
from quimica.core.logging_config import LoggingConfig
from quimica.core.permissions import Permission, is_admin
from quimica.models.content import Content
from quimica.models.lesson import Lesson
from quimica.models.user import User
from quimica.services.content_service import ContentService

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/contents", tags=["contents"])


class LessonRef(BaseModel):
    id: int
    title: str

    class Config:
        from_attributes = True


class ContentResponse(BaseModel):
    """Content block with its lessons in link order"""
    id: int
    title: str
    description: Optional[str] = None
    body_html: Optional[str] = None
    order: Optional[int] = None
    type: Optional[str] = Field(None, validation_alias="content_type")
    author: Optional[str] = None
    difficulty: Optional[str] = None
    safety: Optional[str] = None
    tags: List[str] = []
    resources: List[Any] = []
    version: int
    created_by: Optional[UUID] = None
    updated_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
    lessons: List[LessonRef] = []

    class Config:
        from_attributes = True


class ContentCreate(BaseModel):
    title: str
    lesson_ids: List[int] = []
    description: Optional[str] = None
    body_html: Optional[str] = None
    order: Optional[int] = None
    type: Optional[str] = None
    author: Optional[str] = None
    difficulty: Optional[str] = None
    safety: Optional[str] = None
    tags: List[str] = []
    resources: List[Any] = []


class ContentUpdate(BaseModel):
    title: Optional[str] = None
    lesson_ids: Optional[List[int]] = None
    description: Optional[str] = None
    body_html: Optional[str] = None
    order: Optional[int] = None
    type: Optional[str] = None
    author: Optional[str] = None
    difficulty: Optional[str] = None
    safety: Optional[str] = None
    tags: Optional[List[str]] = None
    resources: Optional[List[Any]] = None


class LessonLinkRequest(BaseModel):
    lesson_id: int
    order: Optional[int] = None


class LessonIdsRequest(BaseModel):
    lesson_ids: List[int]


def _fields(data: dict) -> dict:
    if "type" in data:
        data["content_type"] = data.pop("type")
    return data


def _check_lessons_owned(db: Session, user: User, lesson_ids: Optional[List[int]]):
    """Teachers may only attach contents to lessons they created"""
    if is_admin(user) or not lesson_ids:
        return
    foreign = [
        lesson_id
        for (lesson_id, created_by) in db.query(Lesson.id, Lesson.created_by).filter(Lesson.id.in_(lesson_ids)).all()
        if created_by != user.id
    ]
    if foreign:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You can only attach contents to your own lessons: {foreign}"
        )


def _get_managed_content(service: ContentService, content_id: int, user: User) -> Content:
    content = service.get_content(content_id)
    if not content:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    if not service.can_manage(user, content):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not allowed to modify this content")
    return content


@router.get("", response_model=List[ContentResponse])
async def list_contents(
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ContentService(db).list_contents()


@router.get("/mine", response_model=List[ContentResponse])
async def list_my_contents(
    user: User = Depends(require_permission(Permission.CONTENT_MANAGE)),
    db: Session = Depends(get_db)
):
    """Contents of the current teacher's lessons (every content for admins)"""
    return ContentService(db).list_contents_by_teacher(user.id, is_admin=is_admin(user))


@router.get("/by-lesson/{lesson_id}", response_model=List[ContentResponse])
async def list_contents_by_lesson(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ContentService(db).list_contents_by_lesson(lesson_id)


@router.get("/{content_id}", response_model=ContentResponse)
async def get_content(
    content_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    content = ContentService(db).get_content(content_id)
    if not content:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    return content


@router.post("", response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
async def create_content(
    request: ContentCreate,
    user: User = Depends(require_permission(Permission.CONTENT_MANAGE)),
    db: Session = Depends(get_db)
):
    """Create a content block attached to at least one lesson"""
    _check_lessons_owned(db, user, request.lesson_ids)
    data = _fields(request.model_dump())
    title = data.pop("title")
    lesson_ids = data.pop("lesson_ids")
    try:
        return ContentService(db).create_content(title, lesson_ids, user_id=user.id, **data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{content_id}", response_model=ContentResponse)
async def update_content(
    content_id: int,
    request: ContentUpdate,
    user: User = Depends(require_permission(Permission.CONTENT_MANAGE)),
    db: Session = Depends(get_db)
):
    """Partial update; bumps the version and records the change"""
    service = ContentService(db)
    _get_managed_content(service, content_id, user)
    data = _fields(request.model_dump(exclude_unset=True))
    lesson_ids = data.pop("lesson_ids", None)
    _check_lessons_owned(db, user, lesson_ids)
    try:
        return service.update_content(content_id, user_id=user.id, lesson_ids=lesson_ids, **data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content(
    content_id: int,
    user: User = Depends(require_permission(Permission.CONTENT_MANAGE)),
    db: Session = Depends(get_db)
):
    service = ContentService(db)
    _get_managed_content(service, content_id, user)
    service.delete_content(content_id, user_id=user.id)
    return None


@router.post("/{content_id}/lessons", status_code=status.HTTP_201_CREATED)
async def add_content_lesson(
    content_id: int,
    request: LessonLinkRequest,
    user: User = Depends(require_permission(Permission.CONTENT_MANAGE)),
    db: Session = Depends(get_db)
):
    service = ContentService(db)
    _get_managed_content(service, content_id, user)
    _check_lessons_owned(db, user, [request.lesson_id])
    try:
        link = service.add_lesson(content_id, request.lesson_id, request.order)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"content_id": link.content_id, "lesson_id": link.lesson_id, "order": link.order}


@router.delete("/{content_id}/lessons/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_content_lesson(
    content_id: int,
    lesson_id: int,
    user: User = Depends(require_permission(Permission.CONTENT_MANAGE)),
    db: Session = Depends(get_db)
):
    service = ContentService(db)
    _get_managed_content(service, content_id, user)
    if not service.remove_lesson(content_id, lesson_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson is not linked to this content")
    return None


@router.put("/{content_id}/lessons", response_model=ContentResponse)
async def replace_content_lessons(
    content_id: int,
    request: LessonIdsRequest,
    user: User = Depends(require_permission(Permission.CONTENT_MANAGE)),
    db: Session = Depends(get_db)
):
    """Replace every lesson link; order follows the list"""
    service = ContentService(db)
    _get_managed_content(service, content_id, user)
    _check_lessons_owned(db, user, request.lesson_ids)
    try:
        return service.replace_lessons(content_id, request.lesson_ids)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
