"""
Authentication service for registration, sessions and password management
"""
import hashlib
import hmac
import re
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

import bcrypt
from sqlalchemy.orm import Session

from quimica.core.config import get_settings
from quimica.core.logging_config import LoggingConfig
from quimica.models.user import Session as UserSession
from quimica.models.user import User, UserRole

logger = LoggingConfig.get_logger(__name__)

# bcrypt only hashes the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
PHONE_PATTERN = re.compile(r"^[0-9+\-\s()]{6,20}$")

SELF_REGISTER_ROLES = (UserRole.STUDENT.value, UserRole.TEACHER.value)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def validate_password(password: Optional[str], confirm_password: Optional[str]) -> None:
    """
    Apply the password rules shared by sign-up, reset and change

    Raises:
        ValueError: On the first rule the password breaks
    """
    min_length = get_settings().password_min_length
    if not password:
        raise ValueError("Password is required")
    if len(password) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    if password != confirm_password:
        raise ValueError("Passwords do not match")


def validate_registration(
    first_name: Optional[str],
    last_name: Optional[str],
    email: Optional[str],
    confirm_email: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
    phone: Optional[str],
    terms_accepted: bool,
) -> None:
    """
    Validate a sign-up form, reporting the first failing field

    Raises:
        ValueError: With a message naming the failing rule
    """
    if not (first_name or "").strip():
        raise ValueError("First name is required")
    if not (last_name or "").strip():
        raise ValueError("Last name is required")

    email = (email or "").strip()
    if not email:
        raise ValueError("Email is required")
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Email is not valid")
    if normalize_email(email) != normalize_email(confirm_email):
        raise ValueError("Emails do not match")

    validate_password(password, confirm_password)

    phone = (phone or "").strip()
    if not phone:
        raise ValueError("Phone is required")
    if not PHONE_PATTERN.match(phone):
        raise ValueError("Phone is not valid")

    if not terms_accepted:
        raise ValueError("You must accept the terms and conditions")


class AuthService:
    """Service for user authentication and session management"""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()
        self.session_duration_hours = self.settings.session_duration_hours

    def register_user(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        role: str = UserRole.STUDENT.value,
        display_name: Optional[str] = None,
        terms_accepted: bool = False,
        is_verified: bool = False,
    ) -> User:
        """
        Create a user account

        Args:
            email: Email address (stored lower-cased)
            password: Plain text password
            first_name: Given name
            last_name: Family name
            phone: Contact phone
            role: User role (default: student)
            display_name: Defaults to "first last"
            terms_accepted: Whether the terms were accepted
            is_verified: Mark the account as verified right away

        Returns:
            Created User object

        Raises:
            ValueError: If the role is unknown or the email already exists
        """
        if role not in [r.value for r in UserRole]:
            raise ValueError(f"Invalid role. Allowed roles: {[r.value for r in UserRole]}")

        email = normalize_email(email)
        if self.db.query(User).filter(User.email == email).first():
            raise ValueError(f"Email '{email}' already exists")

        first_name = (first_name or "").strip() or None
        last_name = (last_name or "").strip() or None
        if not display_name:
            display_name = " ".join(p for p in (first_name, last_name) if p) or None

        now = datetime.utcnow()
        user = User(
            email=email,
            password_hash=self._hash_password(password),
            first_name=first_name,
            last_name=last_name,
            display_name=display_name,
            phone=(phone or "").strip() or None,
            role=role,
            is_verified=is_verified,
            is_active=True,
            terms_accepted=terms_accepted,
            terms_accepted_at=now if terms_accepted else None,
        )

        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error registering user {email}: {e}", exc_info=True)
            raise

        logger.info(f"Registered new user: {email} (role: {role})")
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user by email and password

        Args:
            email: Email address
            password: Plain text password

        Returns:
            User object if authentication successful, None otherwise
        """
        email = normalize_email(email)
        user = self.db.query(User).filter(User.email == email).first()

        if not user:
            logger.warning(f"Authentication failed: user '{email}' not found")
            return None

        if not user.is_active:
            logger.warning(f"Authentication failed: user '{email}' is inactive")
            return None

        if not self._verify_password(password, user.password_hash):
            logger.warning(f"Authentication failed: invalid password for user '{email}'")
            return None

        user.last_login = datetime.utcnow()
        self.db.commit()

        logger.info(f"User '{email}' authenticated successfully")
        return user

    def create_session(
        self,
        user_id: UUID,
        duration_hours: Optional[int] = None,
        remember_me: bool = False,
    ) -> UserSession:
        """
        Create a new session for a user

        Args:
            user_id: User ID
            duration_hours: Explicit session duration in hours
            remember_me: Use the long "remember me" lifetime

        Returns:
            Created Session object
        """
        if duration_hours is None:
            if remember_me:
                duration_hours = self.settings.remember_me_duration_days * 24
            else:
                duration_hours = self.session_duration_hours

        session = UserSession(
            user_id=user_id,
            token=secrets.token_urlsafe(32),
            expires_at=datetime.utcnow() + timedelta(hours=duration_hours)
        )

        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)

        logger.info(f"Created session for user {user_id}")
        return session

    def validate_session(self, token: str) -> Optional[User]:
        """
        Validate a session token and return the associated user

        Args:
            token: Session token

        Returns:
            User object if session is valid, None otherwise
        """
        session = self.db.query(UserSession).filter(UserSession.token == token).first()
        if not session:
            return None

        if session.expires_at < datetime.utcnow():
            logger.info(f"Session {session.id} expired")
            self.db.delete(session)
            self.db.commit()
            return None

        session.last_activity = datetime.utcnow()
        self.db.commit()

        user = self.db.query(User).filter(User.id == session.user_id).first()
        if not user or not user.is_active:
            return None

        return user

    def refresh_session(self, token: str) -> Optional[UserSession]:
        """
        Replace a valid session token with a new one keeping the same lifetime

        Returns:
            The new Session, or None if the token is unknown or expired
        """
        session = self.db.query(UserSession).filter(UserSession.token == token).first()
        if not session or session.expires_at < datetime.utcnow():
            return None

        lifetime = session.expires_at - session.created_at
        new_session = UserSession(
            user_id=session.user_id,
            token=secrets.token_urlsafe(32),
            expires_at=datetime.utcnow() + lifetime,
        )
        self.db.delete(session)
        self.db.add(new_session)
        self.db.commit()
        self.db.refresh(new_session)

        logger.info(f"Rotated session for user {new_session.user_id}")
        return new_session

    def logout(self, token: str) -> bool:
        """
        Logout by invalidating a session

        Returns:
            True if session was found and deleted, False otherwise
        """
        session = self.db.query(UserSession).filter(UserSession.token == token).first()
        if not session:
            return False

        self.db.delete(session)
        self.db.commit()
        logger.info(f"Session {session.id} invalidated")
        return True

    def logout_all_user_sessions(self, user_id: UUID) -> int:
        """
        Logout all sessions for a user

        Returns:
            Number of sessions deleted
        """
        count = self.db.query(UserSession).filter(UserSession.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.commit()
        logger.info(f"Invalidated {count} sessions for user {user_id}")
        return count

    def cleanup_expired_sessions(self) -> int:
        """
        Remove all expired sessions from the database

        Returns:
            Number of sessions deleted
        """
        count = self.db.query(UserSession).filter(
            UserSession.expires_at < datetime.utcnow()
        ).delete(synchronize_session=False)
        self.db.commit()
        if count > 0:
            logger.info(f"Cleaned up {count} expired sessions")
        return count

    def request_password_reset(self, email: str) -> Optional[Tuple[User, str]]:
        """
        Issue a single-use password reset token

        Args:
            email: Account email

        Returns:
            (user, raw token) for delivery, or None when no active account matches
        """
        user = self.db.query(User).filter(User.email == normalize_email(email)).first()
        if not user or not user.is_active:
            logger.info("Password reset requested for unknown or inactive account")
            return None

        token = secrets.token_urlsafe(32)
        user.password_reset_token_hash = self._hash_reset_token(token)
        user.password_reset_expires_at = datetime.utcnow() + timedelta(
            minutes=self.settings.password_reset_ttl_minutes
        )
        self.db.commit()

        logger.info(f"Password reset token issued for user {user.id}")
        return user, token

    def reset_password(self, token: str, password: str, confirm_password: str) -> User:
        """
        Set a new password using a reset token; every session of the user is closed

        Raises:
            ValueError: If the token is invalid or expired, or the password breaks a rule
        """
        token_hash = self._hash_reset_token(token or "")
        user = self.db.query(User).filter(User.password_reset_token_hash == token_hash).first()
        if not user:
            raise ValueError("Invalid or expired reset token")
        if not user.password_reset_expires_at or user.password_reset_expires_at < datetime.utcnow():
            user.password_reset_token_hash = None
            user.password_reset_expires_at = None
            self.db.commit()
            raise ValueError("Invalid or expired reset token")

        validate_password(password, confirm_password)

        user.password_hash = self._hash_password(password)
        user.password_reset_token_hash = None
        user.password_reset_expires_at = None
        self.db.commit()

        self.logout_all_user_sessions(user.id)
        logger.info(f"Password reset completed for user {user.id}")
        return user

    def change_password(
        self,
        user: User,
        current_password: str,
        new_password: str,
        confirm_password: str,
    ) -> User:
        """
        Change the password of a logged-in user

        Raises:
            ValueError: If the current password is wrong or the new one breaks a rule
        """
        if not self._verify_password(current_password or "", user.password_hash):
            raise ValueError("Current password is incorrect")
        validate_password(new_password, confirm_password)

        user.password_hash = self._hash_password(new_password)
        self.db.commit()
        logger.info(f"Password changed for user {user.id}")
        return user

    def set_password(self, user: User, password: str) -> User:
        """Replace a password without checks (admin tooling)"""
        user.password_hash = self._hash_password(password)
        self.db.commit()
        return user

    def _hash_reset_token(self, token: str) -> str:
        return hmac.new(
            self.settings.secret_key.encode("utf-8"),
            token.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def _hash_password(self, password: str) -> str:
        """Hash a password using bcrypt"""
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    def _verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash"""
        try:
            return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
        except ValueError:
            # Over-long input or a malformed stored hash
            return False
