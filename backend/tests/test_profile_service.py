"""
Learning Profile Engine - Profile Service Tests
End-to-end submit/get against an in-memory database
"""
import asyncio
import uuid

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from profile_engine.core.exceptions import (
    AmbiguousSubjectError,
    PersistenceConflict,
    ProfileNotFoundError,
    ScoringVersionMismatchError,
    ValidationError,
)
from profile_engine.engine import Consolidator
from profile_engine.engine.tables import CLP2_TABLE
from profile_engine.models import (
    AssignmentStatus,
    ConsolidatedProfile,
    ProfileAssignment,
    SubmissionRecord,
)
from profile_engine.schemas.enums import AgeBucket, ProfileStatus, ViewingContext
from profile_engine.schemas.profile import SubmissionRequest
from profile_engine.services import ProfileLockRegistry, ProfileRepository, ProfileService


class FlakyRepository(ProfileRepository):
    """Fails the first *failures* saves as if another writer got there first."""

    def __init__(self, db, failures: int):
        super().__init__(db)
        self.failures = failures
        self.calls = 0

    async def save(self, state, row=None):
        self.calls += 1
        if self.calls <= self.failures:
            raise PersistenceConflict("simulated concurrent write")
        return await super().save(state, row)


class SlowRepository(ProfileRepository):
    """Takes *delay* seconds before every save."""

    def __init__(self, db, delay: float):
        super().__init__(db)
        self.delay = delay

    async def save(self, state, row=None):
        await asyncio.sleep(self.delay)
        return await super().save(state, row)


@pytest_asyncio.fixture
async def service(db_session) -> ProfileService:
    return ProfileService(db_session, locks=ProfileLockRegistry())


async def _count(db_session, model) -> int:
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


# ============================================================================
# End-to-end scenarios
# ============================================================================

@pytest.mark.asyncio
async def test_first_partial_parent_submission(service, home_submission):
    result = await service.submit(SubmissionRequest(**home_submission))

    profile = result.profile
    assert result.is_new_profile is True
    assert result.degraded is False
    assert result.scoring_version == "clp2"
    assert result.contribution.answered_questions == 15
    assert result.contribution.expected_questions == 19
    assert profile.id is not None
    assert profile.total_assessments == 1
    assert 0 < profile.completeness_percentage < 100
    assert profile.confidence_percentage < 80
    assert profile.status == ProfileStatus.PARTIAL
    assert profile.learning_preferences["Engagement"] == "hands-on"


@pytest.mark.asyncio
async def test_teacher_submission_updates_same_profile(service, home_submission, classroom_submission):
    first = await service.submit(SubmissionRequest(**home_submission))

    classroom_submission["existing_profile_id"] = str(first.profile.id)
    second = await service.submit(SubmissionRequest(**classroom_submission))

    profile = second.profile
    assert second.is_new_profile is False
    assert profile.id == first.profile.id
    assert profile.total_assessments == 2
    assert profile.parent_assessments == 1
    assert profile.teacher_assessments == 1
    assert profile.confidence_percentage > first.profile.confidence_percentage
    assert profile.completeness_percentage == 100
    assert profile.school_context == {"school": "Oakwood Elementary", "grade": "K"}
    assert profile.version == first.profile.version + 1


@pytest.mark.asyncio
async def test_unknown_variant_rejected_and_profile_untouched(service, home_submission):
    first = await service.submit(SubmissionRequest(**home_submission))
    before = await service.get(profile_id=first.profile.id)

    with pytest.raises(ValidationError):
        await service.submit(SubmissionRequest(
            existing_profile_id=first.profile.id,
            quiz_variant="playground",
            respondent_role="teacher",
            answers={"1": 2},
        ))

    after = await service.get(profile_id=first.profile.id)
    assert after == before
    assert await _count(service.db, SubmissionRecord) == 1


@pytest.mark.asyncio
async def test_second_submission_by_name_finds_profile(service, home_submission):
    first = await service.submit(SubmissionRequest(**home_submission))

    again = dict(home_submission, quiz_variant="general", respondent_id="parent-2")
    second = await service.submit(SubmissionRequest(**again))

    assert second.is_new_profile is False
    assert second.profile.id == first.profile.id
    assert second.profile.parent_assessments == 2


@pytest.mark.asyncio
async def test_age_months_resolves_bucket(service, home_submission):
    home_submission.pop("age_bucket")
    home_submission["age_months"] = 70

    result = await service.submit(SubmissionRequest(**home_submission))

    assert result.profile.age_bucket == AgeBucket.AGE_5_6


@pytest.mark.asyncio
async def test_excluded_questions_are_reported(service, home_submission):
    home_submission["answers"]["3"] = 2  # classroom-only item

    result = await service.submit(SubmissionRequest(**home_submission))

    assert result.excluded_questions == {"3": "not_in_variant"}
    assert result.contribution.answered_questions == 15


# ============================================================================
# Validation and error taxonomy
# ============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("changes", [
    {"subject_name": None},
    {"subject_name": "   "},
    {"age_bucket": None},
    {"answers": {}},
    {"answers": {"1": None}},
    {"answers": {"1": 7}},
    {"respondent_role": "teacher"},  # home is a parent form
    {"scoring_version": "clp9"},
    {"answers": {"3": 2}},  # nothing left after variant filtering
])
async def test_invalid_submissions_rejected(service, home_submission, changes):
    home_submission.update(changes)

    with pytest.raises(ValidationError):
        await service.submit(SubmissionRequest(**home_submission))

    assert await _count(service.db, SubmissionRecord) == 0


@pytest.mark.asyncio
async def test_unknown_profile_id(service, classroom_submission):
    classroom_submission["existing_profile_id"] = str(uuid.uuid4())

    with pytest.raises(ProfileNotFoundError):
        await service.submit(SubmissionRequest(**classroom_submission))


@pytest.mark.asyncio
async def test_ambiguous_subject(service, db_session):
    repository = ProfileRepository(db_session)
    for bucket in (AgeBucket.AGE_5_6, AgeBucket.AGE_6_8):
        await repository.save(Consolidator(CLP2_TABLE).new_profile("Maya", bucket))
    await db_session.commit()

    with pytest.raises(AmbiguousSubjectError):
        await service.get(name="Maya")
    view = await service.get(name="Maya", age_bucket=AgeBucket.AGE_6_8)
    assert view.profile.age_bucket == AgeBucket.AGE_6_8


@pytest.mark.asyncio
async def test_scoring_version_mismatch(service, home_submission, classroom_submission):
    home_submission["scoring_version"] = "legacy"
    home_submission["answers"] = {"1": 4, "5": 5, "9": 3}
    first = await service.submit(SubmissionRequest(**home_submission))
    assert first.scoring_version == "legacy"

    classroom_submission["existing_profile_id"] = str(first.profile.id)
    classroom_submission["scoring_version"] = "clp2"
    with pytest.raises(ScoringVersionMismatchError):
        await service.submit(SubmissionRequest(**classroom_submission))


@pytest.mark.asyncio
async def test_existing_profile_keeps_its_scoring_version(service, home_submission):
    home_submission["scoring_version"] = "legacy"
    home_submission["answers"] = {"1": 4, "5": 5}
    first = await service.submit(SubmissionRequest(**home_submission))

    second = await service.submit(SubmissionRequest(
        existing_profile_id=first.profile.id,
        quiz_variant="classroom",
        respondent_role="teacher",
        answers={"6": 2, "7": 3},
    ))

    assert second.scoring_version == "legacy"
    assert second.profile.consolidated_scores["Collaboration"] > 0


# ============================================================================
# Persistence
# ============================================================================

@pytest.mark.asyncio
async def test_submission_record_stored(service, home_submission):
    result = await service.submit(SubmissionRequest(**home_submission))

    records = (await service.db.execute(select(SubmissionRecord))).scalars().all()
    assert len(records) == 1
    record = records[0]
    assert record.profile_id == result.profile.id
    assert record.quiz_variant == "home"
    assert record.respondent_role == "parent"
    assert record.confidence_boost == result.contribution.confidence_boost
    assert record.degraded is False


@pytest.mark.asyncio
async def test_conflict_retried_once_with_fresh_state(db_session, home_submission, classroom_submission):
    first = await ProfileService(db_session, locks=ProfileLockRegistry()).submit(
        SubmissionRequest(**home_submission)
    )

    repository = FlakyRepository(db_session, failures=1)
    service = ProfileService(db_session, repository=repository, locks=ProfileLockRegistry())
    classroom_submission["existing_profile_id"] = str(first.profile.id)
    result = await service.submit(SubmissionRequest(**classroom_submission))

    assert repository.calls == 2
    assert result.profile.total_assessments == 2


@pytest.mark.asyncio
async def test_repeated_conflict_surfaces_as_retryable(db_session, home_submission, classroom_submission):
    first = await ProfileService(db_session, locks=ProfileLockRegistry()).submit(
        SubmissionRequest(**home_submission)
    )

    repository = FlakyRepository(db_session, failures=2)
    service = ProfileService(db_session, repository=repository, locks=ProfileLockRegistry())
    classroom_submission["existing_profile_id"] = str(first.profile.id)

    with pytest.raises(PersistenceConflict) as exc_info:
        await service.submit(SubmissionRequest(**classroom_submission))

    assert exc_info.value.retryable is True
    assert repository.calls == 2
    view = await service.get(profile_id=first.profile.id)
    assert view.profile.total_assessments == 1


@pytest.mark.asyncio
async def test_slow_merge_times_out_without_writing(db_session, home_submission):
    service = ProfileService(
        db_session,
        repository=SlowRepository(db_session, delay=0.2),
        locks=ProfileLockRegistry(),
        persistence_timeout=0.1,
    )

    with pytest.raises(PersistenceConflict) as exc_info:
        await service.submit(SubmissionRequest(**home_submission))

    assert exc_info.value.retryable is True
    assert await _count(db_session, ConsolidatedProfile) == 0


@pytest.mark.asyncio
async def test_slow_commit_is_reported_as_success(db_session, home_submission):
    commit = db_session.commit

    async def slow_commit():
        await commit()
        await asyncio.sleep(0.2)

    db_session.commit = slow_commit
    service = ProfileService(db_session, locks=ProfileLockRegistry(), persistence_timeout=0.1)

    result = await service.submit(SubmissionRequest(**home_submission))

    assert result.is_new_profile is True
    assert result.profile.total_assessments == 1
    assert await _count(db_session, ConsolidatedProfile) == 1


# ============================================================================
# Assignment tracking
# ============================================================================

@pytest.mark.asyncio
async def test_assignment_marked_completed(service, db_session, classroom_submission, home_submission):
    first = await service.submit(SubmissionRequest(**home_submission))
    db_session.add(ProfileAssignment(
        assignment_token="tok-123",
        subject_name="Maya",
        respondent_role="teacher",
    ))
    await db_session.commit()

    classroom_submission["existing_profile_id"] = str(first.profile.id)
    classroom_submission["assignment_token"] = "tok-123"
    await service.submit(SubmissionRequest(**classroom_submission))

    assignment = (await db_session.execute(select(ProfileAssignment))).scalar_one()
    assert assignment.status == AssignmentStatus.COMPLETED.value
    assert assignment.profile_id == first.profile.id
    assert assignment.completed_at is not None


@pytest.mark.asyncio
async def test_unknown_assignment_does_not_fail_submission(service, home_submission):
    home_submission["assignment_token"] = "missing"

    result = await service.submit(SubmissionRequest(**home_submission))

    assert result.is_new_profile is True


# ============================================================================
# get()
# ============================================================================

@pytest.mark.asyncio
async def test_get_is_idempotent(service, home_submission):
    first = await service.submit(SubmissionRequest(**home_submission))

    one = await service.get(profile_id=first.profile.id, context="parent")
    two = await service.get(profile_id=first.profile.id, context="parent")

    assert one.model_dump() == two.model_dump()


@pytest.mark.asyncio
async def test_get_applies_view_context(service, home_submission):
    first = await service.submit(SubmissionRequest(**home_submission))

    view = await service.get(name="Maya", context=ViewingContext.TEACHER)

    assert view.profile.id == first.profile.id
    assert view.view_context == ViewingContext.TEACHER
    assert view.recommendations == first.profile.recommendations.classroom_strategies
    assert view.display.missing_contexts == ["classroom"]


@pytest.mark.asyncio
async def test_get_errors(service):
    with pytest.raises(ValidationError):
        await service.get()
    with pytest.raises(ValidationError):
        await service.get(name="Maya", context="grandparent")
    with pytest.raises(ProfileNotFoundError):
        await service.get(profile_id=uuid.uuid4())
    with pytest.raises(ProfileNotFoundError):
        await service.get(name="Nobody")
