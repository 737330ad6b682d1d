"""
Profile presenter.

Prepares a consolidated profile for one audience. It only selects and
labels fields the consolidator already derived; nothing is rescored and no
clock is read, so presenting the same state twice gives identical output.
"""
from typing import Optional

from profile_engine.engine.scorer import rank_categories
from profile_engine.engine.tables import ScoringTable, get_scoring_table
from profile_engine.schemas.enums import RespondentRole, ViewingContext
from profile_engine.schemas.profile import DisplayProfile, ProfileState

MEDIUM_CONFIDENCE_AT = 60

_CONTEXT_NAMES = {
    RespondentRole.PARENT: "home",
    RespondentRole.TEACHER: "classroom",
}


def confidence_level(confidence: int, *, high_at: int = 80) -> str:
    if confidence >= high_at:
        return "high"
    if confidence >= MEDIUM_CONFIDENCE_AT:
        return "medium"
    return "low"


def _summary(profile: ProfileState, ordered: list[str]) -> str:
    if not ordered:
        return f"Not enough answers yet to describe {profile.subject_name}'s learning profile."
    summary = f"{profile.subject_name} shows particular strength in {ordered[0]}"
    if len(ordered) > 1:
        summary += f" and {ordered[1]}"
    return summary + "."


def present(
    profile: ProfileState,
    viewing_context: ViewingContext | str = ViewingContext.NEUTRAL,
    *,
    table: Optional[ScoringTable] = None,
    established_threshold: int = 80,
) -> DisplayProfile:
    """Build the display view of *profile* for *viewing_context*."""
    context = ViewingContext(viewing_context)
    table = table or get_scoring_table(profile.scoring_version)

    insufficient = not profile.consolidated_scores
    ordered = [] if insufficient else rank_categories(profile.consolidated_scores, table)

    if context == ViewingContext.PARENT:
        recommendations = profile.recommendations.home_activities
    elif context == ViewingContext.TEACHER:
        recommendations = profile.recommendations.classroom_strategies
    else:
        recommendations = profile.recommendations.general_support

    counts = {
        RespondentRole.PARENT: profile.parent_assessments,
        RespondentRole.TEACHER: profile.teacher_assessments,
    }
    missing = [name for role, name in _CONTEXT_NAMES.items() if counts[role] == 0]

    return DisplayProfile(
        profile_id=profile.id,
        subject_name=profile.subject_name,
        age_bucket=profile.age_bucket,
        scoring_version=profile.scoring_version,
        status=profile.status,
        view_context=context,
        label=profile.label,
        summary=_summary(profile, ordered),
        scores={
            c: round(profile.consolidated_scores[c], 2)
            for c in table.categories
            if c in profile.consolidated_scores
        },
        strengths=list(profile.strengths),
        growth_areas=list(profile.growth_areas),
        confidence_percentage=profile.confidence_percentage,
        confidence_level=confidence_level(
            profile.confidence_percentage, high_at=established_threshold
        ),
        completeness_percentage=0 if insufficient else profile.completeness_percentage,
        insufficient_data=insufficient,
        has_conflict=profile.has_conflict,
        context_differential=profile.context_differential,
        recommendations=list(recommendations),
        next_assessments=list(profile.recommendations.next_assessments),
        missing_contexts=missing,
        source_counts={
            "total": profile.total_assessments,
            "parent": profile.parent_assessments,
            "teacher": profile.teacher_assessments,
            "current": sum(1 for s in profile.data_sources if s.is_current),
        },
        learning_preferences=dict(profile.learning_preferences),
    )
