"""
Learning Profile Engine - Profile Schemas
Pydantic schemas for submissions, consolidated profile state and display views
"""
import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from profile_engine.schemas.enums import (
    AgeBucket,
    ContextDifferential,
    ProfileStatus,
    RespondentRole,
    ViewingContext,
)


# ============================================================================
# Consolidated profile state
# ============================================================================

class DataSourceEntry(BaseModel):
    """One submission's footprint on a consolidated profile."""
    quiz_variant: str
    respondent_role: RespondentRole
    respondent_id: Optional[str] = None
    contributed_at: datetime
    weight: float
    scores: dict[str, float] = Field(default_factory=dict)
    categories_covered: list[str] = Field(default_factory=list)
    confidence_contribution: int = 0
    is_current: bool = True
    is_retake: bool = False
    degraded: bool = False


class ConflictDetail(BaseModel):
    """A category on which two respondent roles disagree."""
    category: str
    roles: list[RespondentRole]
    difference: float
    normalized_difference: float


class Recommendations(BaseModel):
    """Precomputed recommendation sets, one per audience."""
    home_activities: list[str] = Field(default_factory=list)
    classroom_strategies: list[str] = Field(default_factory=list)
    general_support: list[str] = Field(default_factory=list)
    next_assessments: list[str] = Field(default_factory=list)


class ProfileState(BaseModel):
    """
    The consolidated learning profile for one subject.

    This is what the engine reads and returns; the repository maps it
    to and from the ``consolidated_profiles`` table.
    """
    model_config = ConfigDict(from_attributes=True)

    id: Optional[uuid.UUID] = None
    subject_name: str
    age_bucket: AgeBucket
    scoring_version: str
    status: ProfileStatus = ProfileStatus.NEW

    consolidated_scores: dict[str, float] = Field(default_factory=dict)
    accumulated_weight: dict[str, float] = Field(default_factory=dict)
    categories_covered: list[str] = Field(default_factory=list)

    label: Optional[str] = None
    strengths: list[str] = Field(default_factory=list)
    growth_areas: list[str] = Field(default_factory=list)

    confidence_percentage: int = Field(default=0, ge=0, le=100)
    completeness_percentage: int = Field(default=0, ge=0, le=100)

    total_assessments: int = 0
    parent_assessments: int = 0
    teacher_assessments: int = 0

    data_sources: list[DataSourceEntry] = Field(default_factory=list)

    has_conflict: bool = False
    context_differential: Optional[ContextDifferential] = None
    context_difference: Optional[float] = None
    conflicts: list[ConflictDetail] = Field(default_factory=list)

    learning_preferences: dict[str, Any] = Field(default_factory=dict)
    recommendations: Recommendations = Field(default_factory=Recommendations)
    school_context: Optional[dict[str, Any]] = None

    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================================================
# Submission
# ============================================================================

class SubmissionRequest(BaseModel):
    """An assessment submission from a parent or teacher."""
    subject_name: Optional[str] = None
    existing_profile_id: Optional[uuid.UUID] = None
    age_bucket: Optional[AgeBucket] = None
    age_months: Optional[int] = None

    quiz_variant: str
    respondent_role: RespondentRole
    respondent_id: Optional[str] = None
    respondent_name: Optional[str] = None

    # question id -> Likert number, option string or list of option strings
    answers: dict[str, Any]

    scoring_version: Optional[str] = None
    school_context: Optional[dict[str, Any]] = None
    assignment_token: Optional[str] = None


class ContributionSummary(BaseModel):
    weight: float
    confidence_boost: int
    confidence_applied: int
    categories_covered: list[str]
    answered_questions: int
    expected_questions: int


class SubmitResult(BaseModel):
    """Result of submit()."""
    profile: ProfileState
    is_new_profile: bool
    scoring_version: str
    degraded: bool
    contribution: ContributionSummary
    excluded_questions: dict[str, str] = Field(default_factory=dict)


# ============================================================================
# Presentation
# ============================================================================

class DisplayProfile(BaseModel):
    """A consolidated profile prepared for one audience."""
    profile_id: Optional[uuid.UUID] = None
    subject_name: str
    age_bucket: AgeBucket
    scoring_version: str
    status: ProfileStatus
    view_context: ViewingContext

    label: Optional[str] = None
    summary: str
    scores: dict[str, float] = Field(default_factory=dict)
    strengths: list[str] = Field(default_factory=list)
    growth_areas: list[str] = Field(default_factory=list)

    confidence_percentage: int
    confidence_level: str  # "low", "medium", "high"
    completeness_percentage: int
    insufficient_data: bool

    has_conflict: bool = False
    context_differential: Optional[ContextDifferential] = None

    recommendations: list[str] = Field(default_factory=list)
    next_assessments: list[str] = Field(default_factory=list)
    missing_contexts: list[str] = Field(default_factory=list)
    source_counts: dict[str, int] = Field(default_factory=dict)
    learning_preferences: dict[str, Any] = Field(default_factory=dict)


class ProfileView(BaseModel):
    """Result of get()."""
    profile: ProfileState
    display: DisplayProfile
    view_context: ViewingContext
    recommendations: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    detail: str
    retryable: bool = False
