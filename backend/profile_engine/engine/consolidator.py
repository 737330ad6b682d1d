"""
Profile consolidator.

Merges one scored submission into a consolidated profile:

    NEW --first submission--> PARTIAL --confidence >= threshold--> ESTABLISHED

Scores accumulate as a running weighted mean per category, so the order in
which submissions arrive does not change the result. Confidence only ever
grows; a detected conflict slows how fast it grows. The same code path
serves the degraded mode used when the remote procedure is unavailable:
every submission then counts with unit weight and conflict detection is
skipped.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from profile_engine.core.exceptions import ScoringVersionMismatchError
from profile_engine.engine.conflicts import detect_conflicts
from profile_engine.engine.contribution import MIN_CONTRIBUTION_WEIGHT, Contribution
from profile_engine.engine.recommendations import build_recommendations
from profile_engine.engine.scorer import ScoredSubmission, label_for_scores, rank_categories
from profile_engine.engine.tables import ScoringTable
from profile_engine.schemas.enums import AgeBucket, ProfileStatus, RespondentRole
from profile_engine.schemas.profile import DataSourceEntry, ProfileState

DEGRADED_WEIGHT = 1.0


@dataclass(frozen=True)
class EngineConfig:
    """Tunable constants of the consolidation math."""
    min_weight: float = MIN_CONTRIBUTION_WEIGHT
    conflict_threshold: float = 0.3
    high_differential_threshold: float = 0.6
    dampening_factor: float = 0.5
    established_threshold: int = 80
    strength_count: int = 2

    @classmethod
    def from_settings(cls, settings) -> "EngineConfig":
        return cls(
            min_weight=settings.MIN_CONTRIBUTION_WEIGHT,
            conflict_threshold=settings.CONFLICT_THRESHOLD,
            high_differential_threshold=settings.HIGH_DIFFERENTIAL_THRESHOLD,
            dampening_factor=settings.CONFLICT_DAMPENING_FACTOR,
            established_threshold=settings.ESTABLISHED_CONFIDENCE_THRESHOLD,
            strength_count=settings.STRENGTH_COUNT,
        )


@dataclass(frozen=True)
class ConsolidationOutcome:
    profile: ProfileState
    is_new_profile: bool
    degraded: bool
    confidence_applied: int


class Consolidator:
    """Weighted-accumulation merge of submissions into one profile."""

    def __init__(self, table: ScoringTable, config: Optional[EngineConfig] = None):
        self.table = table
        self.config = config or EngineConfig()

    def new_profile(self, subject_name: str, age_bucket: AgeBucket) -> ProfileState:
        return ProfileState(
            subject_name=subject_name,
            age_bucket=age_bucket,
            scoring_version=self.table.version,
            status=ProfileStatus.NEW,
        )

    def consolidate(
        self,
        existing: Optional[ProfileState],
        scored: ScoredSubmission,
        contribution: Contribution,
        *,
        quiz_variant: str,
        respondent_role: RespondentRole,
        subject_name: Optional[str] = None,
        age_bucket: Optional[AgeBucket] = None,
        respondent_id: Optional[str] = None,
        school_context: Optional[dict[str, Any]] = None,
        degraded: bool = False,
        now: Optional[datetime] = None,
    ) -> ConsolidationOutcome:
        """
        Merge *scored* into *existing* (or into a fresh profile when None).

        The input profile is never mutated; a deep copy is updated and
        returned, so a failure part-way leaves the caller's state intact.
        """
        is_new = existing is None
        if is_new:
            if not subject_name or age_bucket is None:
                raise ValueError("subject_name and age_bucket are required to create a profile")
            profile = self.new_profile(subject_name, age_bucket)
        else:
            if existing.scoring_version != self.table.version:
                raise ScoringVersionMismatchError(
                    f"Profile {existing.id} uses scoring version '{existing.scoring_version}', "
                    f"submission was scored with '{self.table.version}'"
                )
            profile = existing.model_copy(deep=True)

        now = now or datetime.now(timezone.utc)
        weight = DEGRADED_WEIGHT if degraded else contribution.weight

        self._accumulate(profile, scored.scores, weight)
        entry = self._record_source(
            profile,
            scored=scored,
            contribution=contribution,
            weight=weight,
            quiz_variant=quiz_variant,
            respondent_role=respondent_role,
            respondent_id=respondent_id,
            degraded=degraded,
            now=now,
        )

        profile.total_assessments += 1
        if respondent_role == RespondentRole.PARENT:
            profile.parent_assessments += 1
        elif respondent_role == RespondentRole.TEACHER:
            profile.teacher_assessments += 1

        if not degraded:
            report = detect_conflicts(
                profile.data_sources,
                scale_span=self.table.scale_span,
                threshold=self.config.conflict_threshold,
                high_threshold=self.config.high_differential_threshold,
            )
            profile.has_conflict = report.has_conflict
            profile.context_differential = report.differential
            profile.context_difference = report.mean_difference
            profile.conflicts = report.conflicts

        increment = contribution.confidence_boost
        if profile.has_conflict and not degraded and increment > 0:
            increment = max(1, int(increment * self.config.dampening_factor))
        entry.confidence_contribution = increment

        profile.confidence_percentage = min(
            100, sum(source.confidence_contribution for source in profile.data_sources)
        )

        covered = set(profile.categories_covered) | set(contribution.categories_covered)
        profile.categories_covered = [c for c in self.table.categories if c in covered]
        profile.completeness_percentage = min(
            100, (100 * len(profile.categories_covered)) // len(self.table.categories)
        )

        self._refresh_derived(profile)
        profile.learning_preferences.update(scored.preferences)
        if school_context is not None:
            profile.school_context = school_context
        profile.status = (
            ProfileStatus.ESTABLISHED
            if profile.confidence_percentage >= self.config.established_threshold
            else ProfileStatus.PARTIAL
        )
        profile.recommendations = build_recommendations(
            profile, complete_at=self.config.established_threshold
        )
        profile.updated_at = now
        if is_new:
            profile.created_at = now

        return ConsolidationOutcome(
            profile=profile,
            is_new_profile=is_new,
            degraded=degraded,
            confidence_applied=increment,
        )

    # ------------------------------------------------------------------
    # Merge steps
    # ------------------------------------------------------------------

    @staticmethod
    def _accumulate(profile: ProfileState, scores: dict[str, float], weight: float) -> None:
        for category, value in scores.items():
            prior_weight = profile.accumulated_weight.get(category, 0.0)
            prior_mean = profile.consolidated_scores.get(category, 0.0)
            total_weight = prior_weight + weight
            profile.consolidated_scores[category] = (
                prior_mean * prior_weight + value * weight
            ) / total_weight
            profile.accumulated_weight[category] = total_weight

    @staticmethod
    def _record_source(
        profile: ProfileState,
        *,
        scored: ScoredSubmission,
        contribution: Contribution,
        weight: float,
        quiz_variant: str,
        respondent_role: RespondentRole,
        respondent_id: Optional[str],
        degraded: bool,
        now: datetime,
    ) -> DataSourceEntry:
        same_role = [s for s in profile.data_sources if s.respondent_role == respondent_role]
        # Same respondent again (or identity unknown) is a retake; a different
        # respondent of the same role is a second opinion.
        is_retake = any(
            s.is_current and (
                respondent_id is None
                or s.respondent_id is None
                or s.respondent_id == respondent_id
            )
            for s in same_role
        )
        if is_retake:
            for source in same_role:
                source.is_current = False

        entry = DataSourceEntry(
            quiz_variant=quiz_variant,
            respondent_role=respondent_role,
            respondent_id=respondent_id,
            contributed_at=now,
            weight=weight,
            scores=dict(scored.scores),
            categories_covered=sorted(contribution.categories_covered),
            is_current=True,
            is_retake=is_retake,
            degraded=degraded,
        )
        profile.data_sources.append(entry)
        return entry

    def _refresh_derived(self, profile: ProfileState) -> None:
        scores = profile.consolidated_scores
        if not scores:
            profile.label = None
            profile.strengths = []
            profile.growth_areas = []
            return
        ranked = rank_categories(scores, self.table)
        n = self.config.strength_count
        profile.label = label_for_scores(scores, self.table)
        profile.strengths = ranked[:n]
        profile.growth_areas = [c for c in reversed(ranked) if c not in profile.strengths][:n]
