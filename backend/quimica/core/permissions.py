"""
Permission checking utilities
"""
from typing import Optional

from quimica.models.user import User, UserRole


class Permission:
    """Permission constants"""
    # Lesson authoring
    LESSON_VIEW = "lesson:view"
    LESSON_MANAGE = "lesson:manage"

    # Content authoring
    CONTENT_VIEW = "content:view"
    CONTENT_MANAGE = "content:manage"

    # Quiz authoring and taking
    QUIZ_TAKE = "quiz:take"
    QUIZ_MANAGE = "quiz:manage"
    RESULT_VIEW_ALL = "result:view_all"

    # 3D models
    MODEL_MANAGE = "model:manage"
    MODEL_GENERATE = "model:generate"

    # Teacher analytics
    PERFORMANCE_VIEW = "performance:view"

    # Admin permissions
    ADMIN_ALL = "admin:all"
    USER_MANAGE = "user:manage"
    SYSTEM_CONFIG = "system:config"


# Role to permissions mapping
ROLE_PERMISSIONS = {
    UserRole.ADMIN.value: [
        Permission.ADMIN_ALL,
        Permission.USER_MANAGE,
        Permission.SYSTEM_CONFIG,
    ],
    UserRole.TEACHER.value: [
        Permission.LESSON_VIEW,
        Permission.LESSON_MANAGE,
        Permission.CONTENT_VIEW,
        Permission.CONTENT_MANAGE,
        Permission.QUIZ_TAKE,
        Permission.QUIZ_MANAGE,
        Permission.RESULT_VIEW_ALL,
        Permission.MODEL_MANAGE,
        Permission.MODEL_GENERATE,
        Permission.PERFORMANCE_VIEW,
    ],
    UserRole.STUDENT.value: [
        Permission.LESSON_VIEW,
        Permission.CONTENT_VIEW,
        Permission.QUIZ_TAKE,
    ],
}


def has_permission(user: Optional[User], permission: str) -> bool:
    """
    Check if a user has a specific permission

    Args:
        user: User object (None for anonymous requests)
        permission: Permission string (e.g., "lesson:manage")

    Returns:
        True if user has permission, False otherwise
    """
    if user is None:
        return False

    user_permissions = ROLE_PERMISSIONS.get(user.role, [])

    # Admin has all permissions
    if Permission.ADMIN_ALL in user_permissions:
        return True

    return permission in user_permissions


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == UserRole.ADMIN.value


def owns(user: Optional[User], created_by) -> bool:
    """Admin owns everything; anyone else owns what they created"""
    if user is None:
        return False
    return is_admin(user) or (created_by is not None and created_by == user.id)


def ensure_owner(user: Optional[User], created_by, what: str = "resource"):
    """
    Raise PermissionError unless the user may modify a record created by `created_by`

    Raises:
        PermissionError: If the user neither created the record nor is an admin
    """
    if not owns(user, created_by):
        raise PermissionError(f"You are not allowed to modify this {what}")
