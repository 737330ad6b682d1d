"""
Learning Profile Engine - Assignment Tracking
Marks respondent assignments completed once their submission is consolidated
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profile_engine.models.profile import AssignmentStatus, ProfileAssignment

logger = logging.getLogger(__name__)


class AssignmentTracker:
    """Fire-and-forget completion signal; never fails the submission."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def mark_completed(self, assignment_token: str, profile_id: uuid.UUID) -> bool:
        """
        Record that the assignment behind *assignment_token* produced *profile_id*.

        Returns True when an assignment was updated.
        """
        try:
            result = await self.db.execute(
                select(ProfileAssignment).where(
                    ProfileAssignment.assignment_token == assignment_token
                )
            )
            assignment = result.scalar_one_or_none()
            if assignment is None:
                logger.warning("No assignment found for completed submission on profile %s", profile_id)
                return False

            assignment.status = AssignmentStatus.COMPLETED.value
            assignment.completed_at = datetime.now(timezone.utc)
            assignment.profile_id = profile_id
            await self.db.commit()
            return True
        except Exception as e:
            logger.warning("Failed to mark assignment completed for profile %s: %s", profile_id, e)
            await self.db.rollback()
            return False
