"""
Admin management of user accounts
"""
from datetime import date, datetime, time
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from quimica.core.logging_config import LoggingConfig
from quimica.models.user import User, UserRole
from quimica.services.auth_service import (EMAIL_PATTERN, AuthService,
                                           normalize_email, validate_password)

logger = LoggingConfig.get_logger(__name__)

_UPDATABLE_FIELDS = ("email", "first_name", "last_name", "display_name", "phone", "role", "is_verified")

DateBound = Union[date, datetime, None]


def _valid_role(role: str) -> str:
    allowed = [r.value for r in UserRole]
    if role not in allowed:
        raise ValueError(f"Invalid role. Allowed roles: {allowed}")
    return role


class UserService:
    """List, create, edit and deactivate user accounts"""

    def __init__(self, db: Session):
        self.db = db

    def list_users(
        self,
        role: Optional[str] = None,
        is_verified: Optional[bool] = None,
        is_active: Optional[bool] = None,
        created_from: DateBound = None,
        created_to: DateBound = None,
        search: Optional[str] = None,
    ) -> List[User]:
        """
        Users newest first

        Role, verification, activity and creation date filter in the
        database; `search` matches email and names case-insensitively.
        """
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        if is_verified is not None:
            query = query.filter(User.is_verified.is_(is_verified))
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        if created_from is not None:
            if not isinstance(created_from, datetime):
                created_from = datetime.combine(created_from, time.min)
            query = query.filter(User.created_at >= created_from)
        if created_to is not None:
            if not isinstance(created_to, datetime):
                created_to = datetime.combine(created_to, time.max)
            query = query.filter(User.created_at <= created_to)

        users = query.order_by(User.created_at.desc()).all()

        needle = (search or "").strip().lower()
        if needle:
            users = [
                user for user in users
                if any(
                    needle in (value or "").lower()
                    for value in (user.email, user.first_name, user.last_name, user.display_name)
                )
            ]
        return users

    def get_user(self, user_id: UUID) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def create_user(
        self,
        email: str,
        password: str,
        confirm_password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        display_name: Optional[str] = None,
        phone: Optional[str] = None,
        role: str = UserRole.STUDENT.value,
    ) -> User:
        """
        Create an account on behalf of an admin

        Raises:
            ValueError: On an invalid email, password, role, or a duplicate email
        """
        if not EMAIL_PATTERN.match((email or "").strip()):
            raise ValueError("Email is not valid")
        validate_password(password, confirm_password)
        return AuthService(self.db).register_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=_valid_role(role),
            display_name=display_name,
        )

    def update_user(self, user_id: UUID, **fields) -> Optional[User]:
        """
        Update profile fields; unknown keys are ignored

        Raises:
            ValueError: On an invalid email or role, or an email taken by another user
        """
        user = self.get_user(user_id)
        if not user:
            return None

        for key, value in fields.items():
            if key not in _UPDATABLE_FIELDS:
                continue
            if key == "email":
                value = normalize_email(value)
                if not EMAIL_PATTERN.match(value):
                    raise ValueError("Email is not valid")
                taken = self.db.query(User.id).filter(User.email == value, User.id != user_id).first()
                if taken:
                    raise ValueError(f"Email '{value}' already exists")
            elif key == "role":
                value = _valid_role(value)
            elif key in ("first_name", "last_name", "display_name", "phone"):
                value = (value or "").strip() or None
            setattr(user, key, value)

        try:
            self.db.commit()
            self.db.refresh(user)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating user {user_id}: {e}", exc_info=True)
            raise
        logger.info(f"Updated user {user_id}")
        return user

    def set_role(self, user_id: UUID, role: str) -> Optional[User]:
        return self.update_user(user_id, role=role)

    def toggle_status(self, user_id: UUID) -> Optional[User]:
        """Flip the active flag; deactivating closes every session"""
        user = self.get_user(user_id)
        if not user:
            return None
        user.is_active = not user.is_active
        self.db.commit()
        if not user.is_active:
            AuthService(self.db).logout_all_user_sessions(user.id)
        self.db.refresh(user)
        logger.info(f"User {user_id} is now {'active' if user.is_active else 'inactive'}")
        return user

    def delete_user(self, user_id: UUID, hard: bool = False) -> bool:
        """
        Remove a user

        Args:
            user_id: User to remove
            hard: Delete the row (with sessions, results and progress);
                otherwise mark the account unverified and inactive

        Returns:
            False if the user does not exist
        """
        user = self.get_user(user_id)
        if not user:
            return False
        try:
            if hard:
                self.db.delete(user)
            else:
                user.is_verified = False
                user.is_active = False
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting user {user_id}: {e}", exc_info=True)
            raise

        if not hard:
            AuthService(self.db).logout_all_user_sessions(user_id)
        logger.info(f"{'Deleted' if hard else 'Deactivated'} user {user_id}")
        return True
