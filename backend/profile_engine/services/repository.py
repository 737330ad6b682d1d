"""
Learning Profile Engine - Profile Repository
Lookup and persistence of consolidated profiles with optimistic versioning
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from profile_engine.core.exceptions import AmbiguousSubjectError, PersistenceConflict
from profile_engine.models.profile import ConsolidatedProfile, SubmissionRecord
from profile_engine.schemas.enums import AgeBucket
from profile_engine.schemas.profile import ProfileState

_STATE_COLUMNS = (
    "subject_name",
    "age_bucket",
    "scoring_version",
    "status",
    "consolidated_scores",
    "accumulated_weight",
    "categories_covered",
    "label",
    "strengths",
    "growth_areas",
    "confidence_percentage",
    "completeness_percentage",
    "total_assessments",
    "parent_assessments",
    "teacher_assessments",
    "data_sources",
    "has_conflict",
    "context_differential",
    "context_difference",
    "conflicts",
    "learning_preferences",
    "recommendations",
    "school_context",
)


class ProfileRepository:
    """Maps ``ProfileState`` to and from the ``consolidated_profiles`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, profile_id: uuid.UUID) -> Optional[ConsolidatedProfile]:
        result = await self.db.execute(
            select(ConsolidatedProfile)
            .where(ConsolidatedProfile.id == profile_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_name(
        self,
        subject_name: str,
        age_bucket: Optional[AgeBucket] = None,
    ) -> Optional[ConsolidatedProfile]:
        """
        Exact match on subject name (and age bucket when given).

        Raises:
            AmbiguousSubjectError: more than one profile matches
        """
        query = select(ConsolidatedProfile).where(
            ConsolidatedProfile.subject_name == subject_name
        )
        if age_bucket is not None:
            query = query.where(ConsolidatedProfile.age_bucket == AgeBucket(age_bucket).value)
        result = await self.db.execute(
            query.limit(2).execution_options(populate_existing=True)
        )
        rows = list(result.scalars().all())
        if len(rows) > 1:
            where = f" in age bucket {AgeBucket(age_bucket).value}" if age_bucket else ""
            raise AmbiguousSubjectError(
                f"More than one profile matches this subject name{where}; "
                "pass existing_profile_id to choose one"
            )
        return rows[0] if rows else None

    @staticmethod
    def to_state(row: ConsolidatedProfile) -> ProfileState:
        data = {column: getattr(row, column) for column in _STATE_COLUMNS}
        data.update(
            id=row.id,
            version=row.version,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
        return ProfileState.model_validate(data)

    @staticmethod
    def _apply_state(row: ConsolidatedProfile, state: ProfileState) -> None:
        data = state.model_dump(mode="json", include=set(_STATE_COLUMNS))
        for column, value in data.items():
            setattr(row, column, value)
        row.updated_at = state.updated_at or datetime.now(timezone.utc)

    async def save(
        self,
        state: ProfileState,
        row: Optional[ConsolidatedProfile] = None,
    ) -> ConsolidatedProfile:
        """
        Insert a new profile, or update *row* if the state was read from it.

        The UPDATE is guarded by the row's version column and the INSERT by
        the unique (subject_name, age_bucket) pair; a concurrent writer that
        got there first turns into ``PersistenceConflict``.
        """
        creating = row is None
        if creating:
            row = ConsolidatedProfile(id=state.id or uuid.uuid4())
            row.created_at = state.created_at or datetime.now(timezone.utc)
            self.db.add(row)
        elif row.version != state.version:
            raise PersistenceConflict(
                f"Profile {row.id} changed while it was being consolidated "
                f"(read v{state.version}, stored v{row.version})"
            )

        self._apply_state(row, state)
        try:
            await self.db.flush()
        except StaleDataError as exc:
            raise PersistenceConflict(
                f"Profile {row.id} was updated by a concurrent submission"
            ) from exc
        except IntegrityError as exc:
            if not creating:
                raise
            raise PersistenceConflict(
                f"A profile for this subject in age bucket {state.age_bucket.value} "
                "was created by a concurrent submission"
            ) from exc
        return row

    async def add_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        self.db.add(record)
        await self.db.flush()
        return record
