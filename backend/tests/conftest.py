"""
Learning Profile Engine - Test Configuration
Pytest fixtures and configuration for testing
"""
import os

# Point the application at SQLite before any profile_engine module reads settings
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REMOTE_CONSOLIDATION_URL", "")

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import profile_engine.models  # noqa: F401
from profile_engine.core.database import Base, get_db
from profile_engine.main import app


# Test database URL (in-memory SQLite, one per test)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Fresh in-memory database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Sample submissions (clp2, age bucket 5-6)
# ============================================================================

# 15 of the 19 home questions: every Math item and the Interests item left out
HOME_PARTIAL_ANSWERS: dict[str, Any] = {
    "1": 3, "2": 2,          # Communication
    "4": 3,                  # Collaboration
    "7": 2,                  # Content
    "11": 1,                 # Critical Thinking
    "13": 3, "14": 3,        # Creative Innovation
    "16": 2, "17": 2,        # Confidence
    "19": 1, "20": 2, "21": 1,  # Literacy
    "25": "hands-on",
    "26": "creative",
    "27": "small-group",
}

# All 12 classroom questions
CLASSROOM_ANSWERS: dict[str, Any] = {
    "1": 2, "3": 2,          # Communication
    "4": 3, "5": 2,          # Collaboration
    "8": 2, "9": 2,          # Content
    "10": 1, "12": 2,        # Critical Thinking
    "19": 1, "21": 2,        # Literacy
    "22": 3, "24": 2,        # Math
}


@pytest.fixture
def home_submission() -> dict[str, Any]:
    """A parent's partially completed home assessment for a new subject."""
    return {
        "subject_name": "Maya",
        "age_bucket": "5-6",
        "quiz_variant": "home",
        "respondent_role": "parent",
        "respondent_id": "parent-1",
        "answers": dict(HOME_PARTIAL_ANSWERS),
    }


@pytest.fixture
def classroom_submission() -> dict[str, Any]:
    """A teacher's classroom assessment; caller sets existing_profile_id."""
    return {
        "quiz_variant": "classroom",
        "respondent_role": "teacher",
        "respondent_id": "teacher-1",
        "answers": dict(CLASSROOM_ANSWERS),
        "school_context": {"school": "Oakwood Elementary", "grade": "K"},
    }
