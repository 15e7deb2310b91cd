"""
Admin API routes for user management
"""
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from quimica.api.routes.auth import UserResponse
from quimica.core.auth import require_permission
from quimica.core.database import get_db
from quimica.core.permissions import Permission
from quimica.models.user import User, UserRole
from quimica.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


class UserCreateRequest(BaseModel):
    email: str
    password: str
    confirm_password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    phone: Optional[str] = None
    role: str = UserRole.STUDENT.value


class UserUpdateRequest(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    is_verified: Optional[bool] = None


class RoleUpdate(BaseModel):
    role: str


@router.get("", response_model=List[UserResponse])
async def list_users(
    role: Optional[str] = None,
    is_verified: Optional[bool] = None,
    is_active: Optional[bool] = None,
    created_from: Optional[date] = None,
    created_to: Optional[date] = None,
    search: Optional[str] = None,
    admin: User = Depends(require_permission(Permission.USER_MANAGE)),
    db: Session = Depends(get_db)
):
    """List users, newest first"""
    return UserService(db).list_users(
        role=role,
        is_verified=is_verified,
        is_active=is_active,
        created_from=created_from,
        created_to=created_to,
        search=search,
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    admin: User = Depends(require_permission(Permission.USER_MANAGE)),
    db: Session = Depends(get_db)
):
    user = UserService(db).get_user(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: UserCreateRequest,
    admin: User = Depends(require_permission(Permission.USER_MANAGE)),
    db: Session = Depends(get_db)
):
    """Create a user of any role"""
    try:
        return UserService(db).create_user(**request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    request: UserUpdateRequest,
    admin: User = Depends(require_permission(Permission.USER_MANAGE)),
    db: Session = Depends(get_db)
):
    try:
        user = UserService(db).update_user(user_id, **request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.put("/{user_id}/role", response_model=UserResponse)
async def set_user_role(
    user_id: UUID,
    request: RoleUpdate,
    admin: User = Depends(require_permission(Permission.USER_MANAGE)),
    db: Session = Depends(get_db)
):
    try:
        user = UserService(db).set_role(user_id, request.role)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("/{user_id}/toggle-status", response_model=UserResponse)
async def toggle_user_status(
    user_id: UUID,
    admin: User = Depends(require_permission(Permission.USER_MANAGE)),
    db: Session = Depends(get_db)
):
    """Activate or deactivate an account"""
    if user_id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate yourself")
    user = UserService(db).toggle_status(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    hard: bool = Query(False, description="Delete the row instead of deactivating"),
    admin: User = Depends(require_permission(Permission.USER_MANAGE)),
    db: Session = Depends(get_db)
):
    if user_id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete yourself")
    if not UserService(db).delete_user(user_id, hard=hard):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return None
