"""
Pytest configuration and fixtures for StudyQuiz backend tests.

Provides:
- In-memory test database, recreated for every test
- FastAPI test client authenticated as a test user
- Inline executor so background generation finishes inside the request
- User, file, quiz and attempt fixtures
- OpenAI mock for AI tests
"""

import pytest
import os
from typing import Callable, Generator
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = "test-key-not-real"
os.environ["ENABLE_STALE_QUIZ_SWEEP"] = "false"
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret"

from app.main import app
from app.database import Base, get_db
from app.dependencies.auth import get_current_user
from app.models.models import User, UploadedFile, Quiz, QuizAttempt, QUIZ_STATUS_GENERATING
from app.services.openai_service import openai_service
import app.services.background_tasks as background_tasks

from tests.factories import create_uploaded_file, create_quiz_record
from tests.mocks import create_mock_questions, mock_openai_completion


# Test database setup - one shared in-memory connection
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class InlineExecutor:
    """Runs submitted work immediately on the calling thread."""

    def __init__(self):
        self.submitted = []

    def submit(self, fn, *args, **kwargs):
        self.submitted.append(args)
        fn(*args, **kwargs)


@pytest.fixture(scope="function", autouse=True)
def setup_test_database():
    """Fresh tables for every test"""
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function", autouse=True)
def reset_monitoring():
    openai_service.reset_history()
    yield


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Database session for arranging and inspecting test data"""
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def inline_executor() -> Generator[InlineExecutor, None, None]:
    """Run background generation synchronously against the test database"""
    executor = InlineExecutor()
    with patch.object(background_tasks, "_executor", executor):
        with patch.object(background_tasks, "SessionLocal", TestingSessionLocal):
            yield executor


@pytest.fixture(scope="function")
def upload_dir(tmp_path, monkeypatch):
    directory = tmp_path / "uploads"
    monkeypatch.setenv("UPLOAD_DIR", str(directory))
    return directory


@pytest.fixture(scope="function")
def client(test_user: User, inline_executor, upload_dir) -> Generator[TestClient, None, None]:
    """
    FastAPI test client authenticated as test_user.

    Each request gets its own session, like production, so reads after
    background writes are never served from a stale identity map.
    """
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: test_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login_as() -> Callable[[User], None]:
    """Switch the user that subsequent client requests act as."""
    def _login_as(user: User):
        app.dependency_overrides[get_current_user] = lambda: user
    return _login_as


# =========================================================================
# User Fixtures
# =========================================================================

@pytest.fixture
def test_user(db: Session) -> User:
    """Create a test user"""
    user = User(
        id="test-user-123",
        full_name="Test User",
        email="test@studyquiz.dev"
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_user(db: Session) -> User:
    """A second user who must never see test_user's data"""
    user = User(
        id="other-user-456",
        full_name="Other User",
        email="other@studyquiz.dev"
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# =========================================================================
# File and Quiz Fixtures
# =========================================================================

@pytest.fixture
def test_file(db: Session, test_user: User) -> UploadedFile:
    return create_uploaded_file(db, test_user)


@pytest.fixture
def completed_quiz(db: Session, test_user: User) -> Quiz:
    """A completed three-question multiple-choice quiz"""
    return create_quiz_record(db, test_user)


@pytest.fixture
def generating_quiz(db: Session, test_user: User) -> Quiz:
    return create_quiz_record(db, test_user, status=QUIZ_STATUS_GENERATING)


@pytest.fixture
def stale_quiz(db: Session, test_user: User) -> Quiz:
    """A quiz stuck in generating for longer than the timeout"""
    return create_quiz_record(
        db, test_user,
        status=QUIZ_STATUS_GENERATING,
        created_at=datetime.utcnow() - timedelta(minutes=30)
    )


# =========================================================================
# Attempt Fixtures
# =========================================================================

@pytest.fixture
def test_attempt(db: Session, test_user: User, completed_quiz: Quiz) -> QuizAttempt:
    """One attempt answering the first question correctly"""
    first = completed_quiz.questions[0]
    attempt = QuizAttempt(
        quiz_id=completed_quiz.id,
        user_id=test_user.id,
        answers=[{
            "question_id": first["id"],
            "user_answer": first["correct_answer"],
            "is_correct": True,
            "time_spent": 12
        }],
        score=33,
        total_questions=3,
        correct_answers=1,
        time_taken=60,
        started_at=datetime.utcnow() - timedelta(minutes=1),
        completed_at=datetime.utcnow()
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    return attempt


# =========================================================================
# Mock Fixtures
# =========================================================================

@pytest.fixture
def mock_openai():
    """
    Mock OpenAI API calls for testing without API costs.

    Set the reply with:
        mock_openai.chat.completions.create.return_value = mock_openai_completion(...)
    """
    import app.utils.openai_client as openai_module

    # Reset the cached client
    openai_module._client = None

    mock_instance = MagicMock()
    mock_instance.chat.completions.create.return_value = mock_openai_completion(create_mock_questions(10))

    # Patch the _client directly so get_openai_client returns the mock
    with patch.object(openai_module, '_client', mock_instance):
        yield mock_instance

    # Reset after test to avoid affecting other tests
    openai_module._client = None
