"""
pytest Fixtures for Book Review API Tests

This file contains shared fixtures used across all test files.

WHAT ARE FIXTURES?
==================
Fixtures are reusable test setup/teardown functions.
They provide:
- Test data (users, books, reviews, favorites)
- Test resources (database sessions, HTTP clients, a fake Gemini client)
- Setup/cleanup logic (create/drop tables, roll back each test)

For database tests, we use:
- session scope for engine (expensive to create)
- function scope for sessions (isolation between tests)
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
# This disables rate limiting, sets a test secret key and unsets Gemini
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"
os.environ["GEMINI_API_KEY"] = ""

import json
from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models import Book, Genre, Review, User, UserFavorite
from app.services.gemini import AIServiceError, GeminiClient, get_gemini_client
from app.services.security import create_access_token, hash_password

# bcrypt is deliberately slow; hash once for every test user
TEST_PASSWORD_HASH = hash_password("SecurePass123")


# =============================================================================
# FAKE GEMINI CLIENT
# =============================================================================


class FakeGeminiClient(GeminiClient):
    """
    GeminiClient answering from a queue of canned responses.

    Only generate_text is replaced, so JSON extraction and error handling
    run the real code. Each queued response is either a dict (sent as JSON
    wrapped in some prose), a string, or an exception to raise.
    """

    def __init__(self, api_key: str | None = None) -> None:
        super().__init__(api_key=api_key, model_name="fake-gemini", timeout=1.0)
        self.responses: list = []
        self.prompts: list[str] = []

    def respond_with(self, *responses) -> "FakeGeminiClient":
        self.api_key = "fake-api-key"
        self.responses.extend(responses)
        return self

    def fail_with(self, error: Exception | None = None) -> "FakeGeminiClient":
        return self.respond_with(error or AIServiceError("Gemini request failed: timeout"))

    def generate_text(self, prompt: str) -> str:
        if not self.api_key:
            raise AIServiceError("Gemini API key is not configured")
        self.prompts.append(prompt)
        if not self.responses:
            raise AIServiceError("No response queued")

        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return f"Here you go:\n```json\n{json.dumps(response)}\n```"
        return response


# =============================================================================
# DATABASE FIXTURES
# =============================================================================
# SQLite in-memory keeps tests fast and isolated. Timestamps are always UTC,
# so comparisons behave the same as on PostgreSQL.


@pytest.fixture(scope="session")
def engine():
    """
    Create a SQLite in-memory database engine.

    StaticPool keeps the connection alive for the entire session.
    Without it, SQLite in-memory database would disappear between connections.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """
    Create a fresh database session for each test.

    The session is wrapped in a transaction that's rolled back,
    ensuring test isolation without needing to recreate tables.
    """
    TestSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )

    connection = engine.connect()
    transaction = connection.begin()
    session = TestSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def fake_gemini() -> FakeGeminiClient:
    """Unconfigured fake Gemini client; call respond_with() to enable it."""
    return FakeGeminiClient()


@pytest.fixture(scope="function")
def client(
    db_session: Session,
    fake_gemini: FakeGeminiClient,
) -> Generator[TestClient, None, None]:
    """
    Create a test client with the test database and the fake Gemini client.
    """

    def override_get_db():
        """Provide test database session instead of real one."""
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gemini_client] = lambda: fake_gemini

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# HELPERS
# =============================================================================


def get_auth_header(user: User) -> dict:
    """Create authorization header for a user."""
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


def days_ago(days: float) -> datetime:
    return datetime.now(UTC) - timedelta(days=days)


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


@pytest.fixture
def make_user(db_session: Session):
    """Factory creating users with unique usernames."""
    counter = {"n": 0}

    def _make_user(username: str | None = None, is_active: bool = True) -> User:
        counter["n"] += 1
        username = username or f"reader{counter['n']}"
        user = User(
            email=f"{username}@example.com",
            username=username,
            hashed_password=TEST_PASSWORD_HASH,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def genres(db_session: Session) -> dict[str, Genre]:
    """Create a handful of genres."""
    genres = {
        "scifi": Genre(name="Science Fiction"),
        "dystopian": Genre(name="Dystopian"),
        "fantasy": Genre(name="Fantasy"),
        "mystery": Genre(name="Mystery"),
    }
    db_session.add_all(genres.values())
    db_session.commit()
    return genres


@pytest.fixture
def make_book(db_session: Session):
    """
    Factory creating books.

    created_at defaults to a strictly increasing sequence, so later books
    are "more recently added".
    """
    counter = {"n": 0}

    def _make_book(
        title: str | None = None,
        author: str = "Test Author",
        genres: list[Genre] | None = None,
        description: str | None = None,
        published_year: int | None = None,
        cover_image_url: str | None = None,
        created_at: datetime | None = None,
    ) -> Book:
        counter["n"] += 1
        book = Book(
            title=title or f"Test Book {counter['n']}",
            author=author,
            description=description,
            published_year=published_year,
            cover_image_url=cover_image_url,
            created_at=created_at or datetime(2024, 1, 1, tzinfo=UTC) + timedelta(hours=counter["n"]),
            genres=genres or [],
        )
        db_session.add(book)
        db_session.commit()
        return book

    return _make_book


@pytest.fixture
def make_review(db_session: Session):
    """Factory creating reviews (created now unless told otherwise)."""

    def _make_review(
        user: User,
        book: Book,
        rating: int,
        review_text: str | None = None,
        created_at: datetime | None = None,
    ) -> Review:
        review = Review(
            user_id=user.id,
            book_id=book.id,
            rating=rating,
            review_text=review_text,
            created_at=created_at or datetime.now(UTC),
        )
        db_session.add(review)
        db_session.commit()
        return review

    return _make_review


@pytest.fixture
def make_favorite(db_session: Session):
    """Factory creating favorite markers."""

    def _make_favorite(user: User, book: Book) -> UserFavorite:
        favorite = UserFavorite(user_id=user.id, book_id=book.id)
        db_session.add(favorite)
        db_session.commit()
        return favorite

    return _make_favorite


@pytest.fixture
def sample_user(make_user) -> User:
    return make_user("testuser")


@pytest.fixture
def make_genres(db_session: Session):
    """Factory creating n distinct genres."""

    def _make_genres(n: int) -> list[Genre]:
        tags = [Genre(name=f"Genre {i}") for i in range(n)]
        db_session.add_all(tags)
        db_session.commit()
        return tags

    return _make_genres
