"""
Authentication dependencies
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from quimica.core.database import get_db
from quimica.core.logging_config import LoggingConfig
from quimica.core.permissions import has_permission
from quimica.models.user import User
from quimica.services.auth_service import AuthService

SESSION_COOKIE = "session_token"

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def get_request_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Session token from the Authorization header, else from the session cookie"""
    if credentials:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE)


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Get current user if authenticated, otherwise return None (no exception)

    Args:
        request: FastAPI request
        credentials: HTTP Bearer credentials (optional)
        db: Database session

    Returns:
        User object if authenticated, None otherwise
    """
    token = get_request_token(request, credentials)
    if not token:
        return None

    user = AuthService(db).validate_session(token)
    if user is not None:
        LoggingConfig.set_context(user_id=str(user.id), user_role=user.role)
    return user


async def get_current_user_required(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    """
    Require authentication: return User or raise 401
    """
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_roles(*allowed_roles: str):
    """
    Dependency factory requiring one of the given roles

    Usage:
        @router.get("/admin", dependencies=[Depends(require_roles("admin"))])
    """
    async def dependency(user: User = Depends(get_current_user_required)) -> User:
        if allowed_roles and user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {list(allowed_roles)}"
            )
        return user

    return dependency


def require_permission(permission: str):
    """
    Dependency factory requiring a permission from ROLE_PERMISSIONS

    Usage:
        current_user: User = Depends(require_permission(Permission.QUIZ_MANAGE))
    """
    async def dependency(user: User = Depends(get_current_user_required)) -> User:
        if not has_permission(user, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied. Required permission: {permission}"
            )
        return user

    return dependency
