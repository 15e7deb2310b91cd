"""
SQLAlchemy models
"""
from quimica.core.database import Base
from quimica.models.ar_model import ARModel, ContentModel  # noqa: F401
from quimica.models.content import Content, ContentLesson  # noqa: F401
from quimica.models.history import HistoryAction, HistoryEntry  # noqa: F401
from quimica.models.lesson import Lesson, LessonSection, SectionType  # noqa: F401
from quimica.models.progress import Progress, SectionProgress  # noqa: F401
from quimica.models.quiz import Answer, Question, Quiz, QuizResult  # noqa: F401
from quimica.models.user import Session, User, UserRole  # noqa: F401

__all__ = [
    "Base",
    "ARModel",
    "ContentModel",
    "Content",
    "ContentLesson",
    "HistoryAction",
    "HistoryEntry",
    "Lesson",
    "LessonSection",
    "SectionType",
    "Progress",
    "SectionProgress",
    "Answer",
    "Question",
    "Quiz",
    "QuizResult",
    "Session",
    "User",
    "UserRole",
]
