"""
Learning Profile Engine - API Dependencies
FastAPI dependencies wiring the database session and the profile service
"""
from typing import Annotated, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from profile_engine.core.config import settings
from profile_engine.core.database import get_db
from profile_engine.services.profile_service import ProfileService
from profile_engine.services.remote import RemoteConsolidationStrategy

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_remote_strategy() -> Optional[RemoteConsolidationStrategy]:
    """Remote consolidation procedure, when one is configured."""
    if not settings.REMOTE_CONSOLIDATION_URL:
        return None
    return RemoteConsolidationStrategy(
        settings.REMOTE_CONSOLIDATION_URL,
        timeout=settings.REMOTE_CONSOLIDATION_TIMEOUT_SECONDS,
    )


async def get_profile_service(
    db: DbSession,
    remote: Annotated[Optional[RemoteConsolidationStrategy], Depends(get_remote_strategy)],
) -> ProfileService:
    return ProfileService(db, remote=remote)


ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]
