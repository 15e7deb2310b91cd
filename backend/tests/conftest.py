"""
Pytest configuration and fixtures
"""
import os
import sys
from pathlib import Path

# Settings are cached on first import, so the test environment goes in first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["ENABLE_TRACING"] = "false"

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import quimica.models  # noqa: F401
from quimica.core.database import Base, enable_sqlite_foreign_keys, get_db
from quimica.main import app
from quimica.models.user import UserRole
from quimica.services.auth_service import AuthService
from quimica.services.lesson_service import LessonService
from quimica.services.quiz_service import QuizService

_gensalt = bcrypt.gensalt


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Lowest bcrypt cost keeps account-heavy tests fast"""
    monkeypatch.setattr(bcrypt, "gensalt", lambda: _gensalt(rounds=4))


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite shared by every connection of a test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Session:
    """Create a database session for testing"""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db: Session):
    """Create test client with database dependency override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db: Session):
    """Factory registering verified users; emails are numbered per role"""
    created = []

    def _make(role: str = UserRole.STUDENT.value, email: str = None, password: str = "secret123", **fields):
        created.append(role)
        fields.setdefault("first_name", role.title())
        fields.setdefault("last_name", str(len(created)))
        return AuthService(db).register_user(
            email=email or f"{role}{len(created)}@example.com",
            password=password,
            role=role,
            is_verified=True,
            **fields,
        )

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN.value)


@pytest.fixture
def teacher(make_user):
    return make_user(UserRole.TEACHER.value)


@pytest.fixture
def other_teacher(make_user):
    return make_user(UserRole.TEACHER.value)


@pytest.fixture
def student(make_user):
    return make_user(UserRole.STUDENT.value)


@pytest.fixture
def auth_headers(db: Session):
    """Bearer headers for a fresh session of the given user"""
    def _headers(user):
        session = AuthService(db).create_session(user.id)
        return {"Authorization": f"Bearer {session.token}"}

    return _headers


@pytest.fixture
def lesson(db: Session, teacher):
    return LessonService(db).create_lesson(
        "Acids and Bases",
        description="pH scale and neutralization",
        level="basic",
        created_by=teacher.id,
    )


@pytest.fixture
def quiz_payload():
    """Editor payload with two questions, the first answer of each being correct"""
    def _payload(lesson_id, **overrides):
        payload = {
            "title": "pH basics",
            "lesson_id": lesson_id,
            "questions": [
                {
                    "text": "What is the pH of pure water?",
                    "answers": [
                        {"text": "7", "is_correct": True},
                        {"text": "1", "is_correct": False},
                        {"text": "14", "is_correct": False},
                    ],
                },
                {
                    "text": "HCl is a...",
                    "answers": [
                        {"text": "strong acid", "is_correct": True},
                        {"text": "weak base", "is_correct": False},
                    ],
                },
            ],
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def quiz(db: Session, teacher, lesson, quiz_payload):
    return QuizService(db).save_from_editor(quiz_payload(lesson.id), user_id=teacher.id)


@pytest.fixture
def answer_key():
    """Selections for a quiz: correct answers, or wrong ones with correct=False"""
    def _answers(quiz, correct: bool = True):
        return {
            str(question.id): next(a.id for a in question.answers if a.is_correct == correct)
            for question in quiz.questions
        }

    return _answers
