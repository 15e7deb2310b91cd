"""
API routes for the content change log
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from quimica.core.auth import require_permission
from quimica.core.database import get_db
from quimica.core.permissions import Permission, is_admin
from quimica.models.user import User
from quimica.services.history_service import HistoryService

router = APIRouter(prefix="/api/history", tags=["history"])


class HistoryEntryResponse(BaseModel):
    id: int
    entity_type: str
    entity_id: Optional[int] = None
    action: str
    at: datetime
    user_id: Optional[UUID] = None
    snapshot: Dict[str, Any] = {}

    class Config:
        from_attributes = True


class HistoryFacets(BaseModel):
    actions: List[str]
    authors: List[str]
    types: List[str]


@router.get("", response_model=List[HistoryEntryResponse])
async def list_history(
    action: Optional[str] = Query(None, description="create, update, delete or all"),
    author: Optional[str] = None,
    type: Optional[str] = Query(None, description="Content type recorded in the snapshot"),
    q: Optional[str] = Query(None, description="Text in the snapshot title or description"),
    start: Optional[date] = None,
    end: Optional[date] = None,
    user: User = Depends(require_permission(Permission.CONTENT_MANAGE)),
    db: Session = Depends(get_db)
):
    """Content changes, newest first"""
    return HistoryService(db).list_entries(
        action=action,
        author=author,
        content_type=type,
        query=q,
        start=start,
        end=end,
    )


@router.get("/facets", response_model=HistoryFacets)
async def history_facets(
    user: User = Depends(require_permission(Permission.CONTENT_MANAGE)),
    db: Session = Depends(get_db)
):
    """Values available for the history filters"""
    return HistoryService(db).facets()


@router.delete("")
async def clear_history(
    user: User = Depends(require_permission(Permission.CONTENT_MANAGE)),
    db: Session = Depends(get_db)
):
    """Admins clear everything; teachers clear their own entries"""
    deleted = HistoryService(db).clear(None if is_admin(user) else user.id)
    return {"deleted": deleted}
