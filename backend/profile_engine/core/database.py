"""
Learning Profile Engine - Database Configuration
Async SQLAlchemy engine and session management
"""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from profile_engine.core.config import settings


def _engine_options(url: str) -> dict:
    # SQLite (tests, local dev) does not take pool sizing arguments
    if url.startswith("sqlite"):
        return {"echo": settings.DEBUG}
    return {
        "echo": settings.DEBUG,
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }


# Create async engine
engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.
    
    Usage:
        @router.get("/profiles/{profile_id}")
        async def read_profile(profile_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Initialize database tables."""
    # Import models so their tables are registered on Base.metadata
    import profile_engine.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
