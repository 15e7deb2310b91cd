"""
API routes for augmented-reality 3D models and their content links
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from quimica.core.auth import get_current_user_required, require_permission
from quimica.core.database import get_db
from quimica.core.permissions import Permission, owns
from quimica.models.user import User
from quimica.services.ar_model_service import ARModelService
from quimica.services.content_service import ContentService

router = APIRouter(prefix="/api/models", tags=["models"])


class ARModelResponse(BaseModel):
    id: int
    lesson_id: Optional[int] = None
    name: str
    file_url: str
    model_type: Optional[str] = None
    description: Optional[str] = None
    keywords: List[str] = []
    molecule_formula: Optional[str] = None
    category: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ContentModelResponse(BaseModel):
    content_id: int
    model_id: int
    order: int
    is_primary: bool

    class Config:
        from_attributes = True


class ARModelCreate(BaseModel):
    name: str
    file_url: str
    lesson_id: Optional[int] = None
    model_type: Optional[str] = None
    description: Optional[str] = None
    keywords: List[str] = []
    molecule_formula: Optional[str] = None
    category: Optional[str] = None


class ARModelUpdate(BaseModel):
    name: Optional[str] = None
    file_url: Optional[str] = None
    lesson_id: Optional[int] = None
    model_type: Optional[str] = None
    description: Optional[str] = None
    keywords: Optional[List[str]] = None
    molecule_formula: Optional[str] = None
    category: Optional[str] = None


class ModelLinkRequest(BaseModel):
    model_id: int
    order: Optional[int] = None
    is_primary: bool = False


class SuggestRequest(BaseModel):
    title: str
    tags: List[str] = []
    type: Optional[str] = None


def _get_owned_model(service: ARModelService, model_id: int, user: User):
    model = service.get_model(model_id)
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model not found")
    if not owns(user, model.created_by):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not allowed to modify this model")
    return model


def _ensure_content_managed(db: Session, content_id: int, user: User):
    service = ContentService(db)
    content = service.get_content(content_id)
    if not content:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    if not service.can_manage(user, content):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not allowed to modify this content")


@router.get("", response_model=List[ARModelResponse])
async def list_models(
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ARModelService(db).list_models()


@router.get("/by-lesson/{lesson_id}", response_model=List[ARModelResponse])
async def list_models_by_lesson(
    lesson_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ARModelService(db).list_models_by_lesson(lesson_id)


@router.get("/by-content/{content_id}", response_model=List[ARModelResponse])
async def list_models_by_content(
    content_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    """Models linked to a content, in link order"""
    return ARModelService(db).list_models_by_content(content_id)


@router.get("/by-content/{content_id}/primary", response_model=Optional[ARModelResponse])
async def get_primary_model(
    content_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return ARModelService(db).get_primary_model(content_id)


@router.post("/suggest", response_model=List[ARModelResponse])
async def suggest_models(
    request: SuggestRequest,
    user: User = Depends(require_permission(Permission.MODEL_MANAGE)),
    db: Session = Depends(get_db)
):
    """Models matching a content title, tags and type"""
    return ARModelService(db).suggest_models(request.title, request.tags, request.type)


@router.get("/{model_id}", response_model=ARModelResponse)
async def get_model(
    model_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    model = ARModelService(db).get_model(model_id)
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model not found")
    return model


@router.post("", response_model=ARModelResponse, status_code=status.HTTP_201_CREATED)
async def create_model(
    request: ARModelCreate,
    user: User = Depends(require_permission(Permission.MODEL_MANAGE)),
    db: Session = Depends(get_db)
):
    try:
        return ARModelService(db).create_model(created_by=user.id, **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{model_id}", response_model=ARModelResponse)
async def update_model(
    model_id: int,
    request: ARModelUpdate,
    user: User = Depends(require_permission(Permission.MODEL_MANAGE)),
    db: Session = Depends(get_db)
):
    service = ARModelService(db)
    _get_owned_model(service, model_id, user)
    try:
        return service.update_model(model_id, **request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{model_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_model(
    model_id: int,
    user: User = Depends(require_permission(Permission.MODEL_MANAGE)),
    db: Session = Depends(get_db)
):
    service = ARModelService(db)
    _get_owned_model(service, model_id, user)
    service.delete_model(model_id)
    return None


@router.post("/by-content/{content_id}", response_model=ContentModelResponse, status_code=status.HTTP_201_CREATED)
async def link_model(
    content_id: int,
    request: ModelLinkRequest,
    user: User = Depends(require_permission(Permission.MODEL_MANAGE)),
    db: Session = Depends(get_db)
):
    _ensure_content_managed(db, content_id, user)
    try:
        return ARModelService(db).link_model(content_id, request.model_id, request.order, request.is_primary)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/by-content/{content_id}/{model_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unlink_model(
    content_id: int,
    model_id: int,
    user: User = Depends(require_permission(Permission.MODEL_MANAGE)),
    db: Session = Depends(get_db)
):
    _ensure_content_managed(db, content_id, user)
    if not ARModelService(db).unlink_model(content_id, model_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model is not linked to this content")
    return None


@router.put("/by-content/{content_id}/{model_id}/primary", response_model=ContentModelResponse)
async def set_primary_model(
    content_id: int,
    model_id: int,
    user: User = Depends(require_permission(Permission.MODEL_MANAGE)),
    db: Session = Depends(get_db)
):
    _ensure_content_managed(db, content_id, user)
    link = ARModelService(db).set_primary_model(content_id, model_id)
    if not link:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model is not linked to this content")
    return link


@router.post("/by-content/{content_id}/auto-link")
async def auto_link_models(
    content_id: int,
    user: User = Depends(require_permission(Permission.MODEL_MANAGE)),
    db: Session = Depends(get_db)
):
    """Link the best model suggestions to a content"""
    _ensure_content_managed(db, content_id, user)
    return {"linked": ARModelService(db).auto_link_models(content_id)}
