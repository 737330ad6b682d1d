"""
Learning Profile Engine - Profile Service
Orchestrates submit() and get(): lookup, scoring, consolidation and persistence
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from profile_engine.core.config import settings
from profile_engine.core.exceptions import (
    PersistenceConflict,
    ProfileEngineError,
    ProfileNotFoundError,
    ScoringVersionMismatchError,
    UpstreamUnavailable,
    ValidationError,
)
from profile_engine.engine import (
    Consolidator,
    EngineConfig,
    age_bucket_from_months,
    contribution,
    get_scoring_table,
    present,
    score,
)
from profile_engine.engine.answers import parse_answers
from profile_engine.engine.contribution import Contribution
from profile_engine.engine.scorer import ScoredSubmission
from profile_engine.engine.tables import ScoringTable
from profile_engine.models.profile import ConsolidatedProfile, SubmissionRecord
from profile_engine.schemas.enums import AgeBucket, ViewingContext
from profile_engine.schemas.profile import (
    ContributionSummary,
    ProfileState,
    ProfileView,
    SubmissionRequest,
    SubmitResult,
)
from profile_engine.services.assignments import AssignmentTracker
from profile_engine.services.locks import ProfileLockRegistry, profile_key, subject_key
from profile_engine.services.remote import RemoteConsolidationStrategy
from profile_engine.services.repository import ProfileRepository

logger = logging.getLogger(__name__)

# Shared by every service instance in this process
_profile_locks = ProfileLockRegistry()

MAX_ATTEMPTS = 2


@dataclass
class _StagedSubmission:
    """A merged profile flushed to the session, waiting for commit."""
    row: ConsolidatedProfile
    is_new_profile: bool
    table: ScoringTable
    scored: ScoredSubmission
    contribution: Contribution
    degraded: bool
    confidence_applied: int


class ProfileService:
    """
    Entry point for assessment submissions and profile reads.

    Every error leaving this class is one of the ``ProfileEngineError``
    kinds; a caller gets either a complete profile (possibly degraded) or
    one of those errors, never a half-written profile.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        config: Optional[EngineConfig] = None,
        remote: Optional[RemoteConsolidationStrategy] = None,
        locks: Optional[ProfileLockRegistry] = None,
        repository: Optional[ProfileRepository] = None,
        default_scoring_version: Optional[str] = None,
        persistence_timeout: Optional[float] = None,
    ):
        self.db = db
        self.config = config or EngineConfig.from_settings(settings)
        self.remote = remote
        self.locks = locks or _profile_locks
        self.repository = repository or ProfileRepository(db)
        self.assignments = AssignmentTracker(db)
        self.default_scoring_version = default_scoring_version or settings.DEFAULT_SCORING_VERSION
        self.persistence_timeout = persistence_timeout or settings.PERSISTENCE_TIMEOUT_SECONDS

    # ========================================================================
    # submit
    # ========================================================================

    async def submit(self, request: SubmissionRequest) -> SubmitResult:
        """
        Score one submission and merge it into the subject's profile.

        The persistence timeout bounds lookup, merge and flush; the commit
        runs outside it, so a durable write is never reported as a conflict.

        Raises:
            ValidationError: bad input, nothing was scored or stored
            ProfileNotFoundError: existing_profile_id does not exist
            AmbiguousSubjectError: name + age bucket matched several profiles
            ScoringVersionMismatchError: profile uses another scoring version
            PersistenceConflict: concurrent write persisted twice in a row, or timeout
        """
        age_bucket = self._validate(request)
        if request.existing_profile_id:
            key = profile_key(request.existing_profile_id)
        else:
            key = subject_key(request.subject_name, age_bucket)

        async with self.locks.hold(key, timeout=self.persistence_timeout):
            for attempt in range(1, MAX_ATTEMPTS + 1):
                try:
                    staged = await asyncio.wait_for(
                        self._stage(request, age_bucket),
                        timeout=self.persistence_timeout,
                    )
                    await self.db.commit()
                    break
                except PersistenceConflict:
                    await self.db.rollback()
                    if attempt == MAX_ATTEMPTS:
                        logger.warning("Persistence conflict on %s persisted after retry", key)
                        raise
                    logger.warning("Persistence conflict on %s, retrying with fresh state", key)
                except asyncio.TimeoutError:
                    await self.db.rollback()
                    raise PersistenceConflict(
                        f"Consolidation did not complete within {self.persistence_timeout}s"
                    ) from None
                except ProfileEngineError:
                    await self.db.rollback()
                    raise
                except Exception:
                    logger.exception("Unexpected failure while consolidating submission on %s", key)
                    await self.db.rollback()
                    raise

        result = self._result(staged)
        if request.assignment_token:
            await self.assignments.mark_completed(request.assignment_token, result.profile.id)
        return result

    def _validate(self, request: SubmissionRequest) -> Optional[AgeBucket]:
        """Input checks that need neither the database nor a scoring table."""
        if not request.answers:
            raise ValidationError("answers must not be empty")

        if request.age_bucket is not None:
            age_bucket = AgeBucket(request.age_bucket)
        elif request.age_months is not None:
            age_bucket = age_bucket_from_months(request.age_months)
        else:
            age_bucket = None

        if request.existing_profile_id is None:
            if not request.subject_name or not request.subject_name.strip():
                raise ValidationError("subject_name or existing_profile_id is required")
            if age_bucket is None:
                raise ValidationError("age_bucket or age_months is required for a new subject")
        return age_bucket

    async def _stage(
        self,
        request: SubmissionRequest,
        age_bucket: Optional[AgeBucket],
    ) -> _StagedSubmission:
        """Resolve, score and merge, then flush the profile and submission row."""
        row = await self._resolve(request, age_bucket)
        existing = self.repository.to_state(row) if row is not None else None
        if existing is not None:
            age_bucket = existing.age_bucket

        table = get_scoring_table(self._scoring_version(request, existing))
        variant = table.variant(request.quiz_variant)
        if request.respondent_role not in variant.roles:
            raise ValidationError(
                f"quiz_variant '{variant.name}' cannot be answered by a {request.respondent_role.value}"
            )

        answers = parse_answers(request.answers, table)
        scored = score(answers, request.quiz_variant, age_bucket, table)
        contrib = contribution(
            request.quiz_variant,
            answers,
            table=table,
            age_bucket=age_bucket,
            min_weight=self.config.min_weight,
        )
        if contrib.answered == 0:
            raise ValidationError(
                f"None of the answered questions belong to quiz_variant '{variant.name}' "
                f"for age bucket {age_bucket.value}"
            )

        profile, degraded, applied = await self._consolidate(
            existing, request, scored, contrib, table, age_bucket
        )

        row = await self.repository.save(profile, row)
        await self.repository.add_submission(SubmissionRecord(
            profile_id=row.id,
            quiz_variant=request.quiz_variant,
            scoring_version=table.version,
            age_bucket=age_bucket.value,
            respondent_role=request.respondent_role.value,
            respondent_id=request.respondent_id,
            respondent_name=request.respondent_name,
            answers={str(k): v for k, v in request.answers.items()},
            scores=dict(scored.scores),
            label=scored.label,
            excluded_questions={str(q): r.value for q, r in scored.excluded_questions.items()},
            weight=contrib.weight,
            confidence_boost=contrib.confidence_boost,
            confidence_applied=applied,
            degraded=degraded,
            school_context=request.school_context,
            submitted_at=profile.updated_at,
        ))

        return _StagedSubmission(
            row=row,
            is_new_profile=existing is None,
            table=table,
            scored=scored,
            contribution=contrib,
            degraded=degraded,
            confidence_applied=applied,
        )

    def _result(self, staged: _StagedSubmission) -> SubmitResult:
        """Log the committed profile and build the caller's result."""
        saved = self.repository.to_state(staged.row)
        table = staged.table
        if staged.is_new_profile:
            logger.info("Created profile %s (%s, %s)", saved.id, table.version, saved.age_bucket.value)
        else:
            logger.info(
                "Updated profile %s: %d assessments, confidence %d%%, completeness %d%%",
                saved.id,
                saved.total_assessments,
                saved.confidence_percentage,
                saved.completeness_percentage,
            )
        if saved.has_conflict:
            logger.warning(
                "Profile %s has a %s home/classroom differential",
                saved.id,
                saved.context_differential.value if saved.context_differential else "unknown",
            )

        contrib = staged.contribution
        return SubmitResult(
            profile=saved,
            is_new_profile=staged.is_new_profile,
            scoring_version=table.version,
            degraded=staged.degraded,
            contribution=ContributionSummary(
                weight=contrib.weight,
                confidence_boost=contrib.confidence_boost,
                confidence_applied=staged.confidence_applied,
                categories_covered=[c for c in table.categories if c in contrib.categories_covered],
                answered_questions=contrib.answered,
                expected_questions=contrib.expected,
            ),
            excluded_questions={
                str(q): r.value for q, r in sorted(staged.scored.excluded_questions.items())
            },
        )

    async def _resolve(
        self,
        request: SubmissionRequest,
        age_bucket: Optional[AgeBucket],
    ) -> Optional[ConsolidatedProfile]:
        if request.existing_profile_id is not None:
            row = await self.repository.find_by_id(request.existing_profile_id)
            if row is None:
                raise ProfileNotFoundError(f"Profile {request.existing_profile_id} not found")
            return row
        return await self.repository.find_by_name(request.subject_name.strip(), age_bucket)

    def _scoring_version(self, request: SubmissionRequest, existing: Optional[ProfileState]) -> str:
        if existing is None:
            return request.scoring_version or self.default_scoring_version
        if request.scoring_version and request.scoring_version != existing.scoring_version:
            raise ScoringVersionMismatchError(
                f"Profile {existing.id} was built with scoring version "
                f"'{existing.scoring_version}', submission uses '{request.scoring_version}'"
            )
        return existing.scoring_version

    async def _consolidate(
        self,
        existing: Optional[ProfileState],
        request: SubmissionRequest,
        scored: ScoredSubmission,
        contrib: Contribution,
        table: ScoringTable,
        age_bucket: AgeBucket,
    ) -> tuple[ProfileState, bool, int]:
        """Remote procedure when configured, local consolidator otherwise or on its failure."""
        degraded = False
        if self.remote is not None:
            try:
                profile = await self.remote.consolidate(
                    existing, request, scored, contrib, scoring_version=table.version
                )
            except UpstreamUnavailable as exc:
                logger.warning("Remote consolidation unavailable, using degraded local path: %s", exc.message)
                degraded = True
            else:
                before = existing.confidence_percentage if existing else 0
                return profile, False, profile.confidence_percentage - before

        outcome = Consolidator(table, self.config).consolidate(
            existing,
            scored,
            contrib,
            quiz_variant=request.quiz_variant,
            respondent_role=request.respondent_role,
            subject_name=request.subject_name.strip() if request.subject_name else None,
            age_bucket=age_bucket,
            respondent_id=request.respondent_id,
            school_context=request.school_context,
            degraded=degraded,
        )
        return outcome.profile, outcome.degraded, outcome.confidence_applied

    # ========================================================================
    # get
    # ========================================================================

    async def get(
        self,
        profile_id: Optional[uuid.UUID] = None,
        name: Optional[str] = None,
        context: ViewingContext | str = ViewingContext.NEUTRAL,
        age_bucket: Optional[AgeBucket] = None,
    ) -> ProfileView:
        """
        Read a profile by id, or by exact subject name, and present it.

        Raises:
            ValidationError: neither profile_id nor name, or unknown context
            ProfileNotFoundError: nothing matches
            AmbiguousSubjectError: the name matches several profiles
        """
        try:
            view_context = ViewingContext(context)
        except ValueError:
            raise ValidationError(
                f"Unknown context '{context}'. Expected one of: {[c.value for c in ViewingContext]}"
            ) from None

        if profile_id is not None:
            row = await self.repository.find_by_id(profile_id)
            if row is None:
                raise ProfileNotFoundError(f"Profile {profile_id} not found")
        elif name and name.strip():
            row = await self.repository.find_by_name(name.strip(), age_bucket)
            if row is None:
                raise ProfileNotFoundError("No profile found for this subject name")
        else:
            raise ValidationError("profile_id or name is required")

        profile = self.repository.to_state(row)
        display = present(
            profile,
            view_context,
            table=get_scoring_table(profile.scoring_version),
            established_threshold=self.config.established_threshold,
        )
        return ProfileView(
            profile=profile,
            display=display,
            view_context=view_context,
            recommendations=display.recommendations,
        )
