"""
Authentication API routes
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import (APIRouter, Depends, HTTPException, Request, Response,
                     status)
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from quimica.core.auth import (SESSION_COOKIE, get_current_user_required,
                               get_request_token, security)
from quimica.core.config import get_settings
from quimica.core.database import get_db
from quimica.core.logging_config import LoggingConfig
from quimica.models.user import User, UserRole
from quimica.services.auth_service import (SELF_REGISTER_ROLES, AuthService,
                                           validate_registration)

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# Request/Response models
class RegisterRequest(BaseModel):
    """Sign-up form"""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    confirm_email: str = ""
    password: str = ""
    confirm_password: str = ""
    phone: str = ""
    role: str = Field(UserRole.STUDENT.value, description="student or teacher")
    terms_accepted: bool = False


class LoginRequest(BaseModel):
    """User login request"""
    email: str
    password: str
    remember_me: bool = False


class UserResponse(BaseModel):
    """User response model"""
    id: UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    phone: Optional[str] = None
    role: str
    is_verified: bool
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    """Login response model"""
    token: str
    user: UserResponse
    expires_at: datetime


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str
    password: str
    confirm_password: str


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


def _set_session_cookie(response: Response, token: str, expires_at: datetime):
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        secure=False,  # Set to True in production with HTTPS
        samesite="lax",
        max_age=max(0, int((expires_at - datetime.utcnow()).total_seconds())),
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db)
):
    """Register a new student or teacher account"""
    try:
        validate_registration(
            request.first_name,
            request.last_name,
            request.email,
            request.confirm_email,
            request.password,
            request.confirm_password,
            request.phone,
            request.terms_accepted,
        )
        if request.role not in SELF_REGISTER_ROLES:
            raise ValueError(f"Invalid role. Allowed roles: {list(SELF_REGISTER_ROLES)}")

        return AuthService(db).register_user(
            email=request.email,
            password=request.password,
            first_name=request.first_name,
            last_name=request.last_name,
            phone=request.phone,
            role=request.role,
            terms_accepted=request.terms_accepted,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Login and create a session"""
    auth_service = AuthService(db)

    user = auth_service.authenticate(request.email, request.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    session = auth_service.create_session(user.id, remember_me=request.remember_me)
    logger.info(f"User {user.id} logged in", extra={"remember_me": request.remember_me})
    _set_session_cookie(response, session.token, session.expires_at)

    return LoginResponse(
        token=session.token,
        user=UserResponse.model_validate(user),
        expires_at=session.expires_at,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
):
    """Logout and invalidate session"""
    token = get_request_token(request, credentials)
    if token:
        AuthService(db).logout(token)
    response.delete_cookie(key=SESSION_COOKIE)
    return None


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(user: User = Depends(get_current_user_required)):
    """Get current user information"""
    return user


@router.post("/refresh", response_model=LoginResponse)
async def refresh_session(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
):
    """Exchange the current session token for a new one"""
    token = get_request_token(request, credentials)
    session = AuthService(db).refresh_session(token) if token else None
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    _set_session_cookie(response, session.token, session.expires_at)
    return LoginResponse(
        token=session.token,
        user=UserResponse.model_validate(session.user),
        expires_at=session.expires_at,
    )


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
async def request_password_reset(
    request: PasswordResetRequest,
    db: Session = Depends(get_db)
):
    """
    Issue a password reset token

    The answer is the same whether the email exists or not. Outside
    production the token is echoed back so the flow can be completed
    without a mail server.
    """
    issued = AuthService(db).request_password_reset(request.email)
    payload = {"message": "If the account exists, a reset link has been sent"}
    if issued and get_settings().app_env != "production":
        payload["reset_token"] = issued[1]
    return payload


@router.post("/password-reset/confirm")
async def confirm_password_reset(
    request: PasswordResetConfirm,
    db: Session = Depends(get_db)
):
    """Set a new password with a reset token"""
    try:
        AuthService(db).reset_password(request.token, request.password, request.confirm_password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Password updated"}


@router.post("/change-password")
async def change_password(
    request: PasswordChangeRequest,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    """Change the password of the logged-in user"""
    try:
        AuthService(db).change_password(
            user, request.current_password, request.new_password, request.confirm_password
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Password updated"}
