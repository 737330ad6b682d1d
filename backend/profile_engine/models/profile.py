"""
Learning Profile Engine - Profile Models
SQLAlchemy models for consolidated profiles, submissions and assignments
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from profile_engine.core.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ConsolidatedProfile(Base):
    """The single aggregated learning profile of one subject."""

    __tablename__ = "consolidated_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_name: Mapped[str] = mapped_column(String(255), index=True)
    age_bucket: Mapped[str] = mapped_column(String(10), index=True)
    scoring_version: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), default="partial")

    # Running weighted mean per category and the weight behind it
    consolidated_scores: Mapped[dict] = mapped_column(JSONType, default=dict)
    accumulated_weight: Mapped[dict] = mapped_column(JSONType, default=dict)
    categories_covered: Mapped[list] = mapped_column(JSONType, default=list)

    label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    strengths: Mapped[list] = mapped_column(JSONType, default=list)
    growth_areas: Mapped[list] = mapped_column(JSONType, default=list)

    confidence_percentage: Mapped[int] = mapped_column(Integer, default=0)
    completeness_percentage: Mapped[int] = mapped_column(Integer, default=0)

    total_assessments: Mapped[int] = mapped_column(Integer, default=0)
    parent_assessments: Mapped[int] = mapped_column(Integer, default=0)
    teacher_assessments: Mapped[int] = mapped_column(Integer, default=0)

    # Ordered list of {quiz_variant, respondent_role, contributed_at, weight, ...}
    data_sources: Mapped[list] = mapped_column(JSONType, default=list)

    has_conflict: Mapped[bool] = mapped_column(Boolean, default=False)
    context_differential: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    context_difference: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    conflicts: Mapped[list] = mapped_column(JSONType, default=list)

    learning_preferences: Mapped[dict] = mapped_column(JSONType, default=dict)
    # {home_activities, classroom_strategies, general_support, next_assessments}
    recommendations: Mapped[dict] = mapped_column(JSONType, default=dict)
    school_context: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    # Optimistic concurrency: every UPDATE checks and bumps this
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )

    submissions: Mapped[list["SubmissionRecord"]] = relationship(
        "SubmissionRecord",
        back_populates="profile",
        order_by="SubmissionRecord.submitted_at",
    )

    # One profile per subject and age bucket, also across worker processes
    __table_args__ = (
        UniqueConstraint("subject_name", "age_bucket", name="uq_profiles_subject_age_bucket"),
    )
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<ConsolidatedProfile {self.id} v{self.version}>"


class SubmissionRecord(Base):
    """One accepted assessment submission, stored as received and scored."""

    __tablename__ = "profile_submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("consolidated_profiles.id", ondelete="CASCADE"),
        index=True
    )

    quiz_variant: Mapped[str] = mapped_column(String(30))
    scoring_version: Mapped[str] = mapped_column(String(20))
    age_bucket: Mapped[str] = mapped_column(String(10))
    respondent_role: Mapped[str] = mapped_column(String(20))
    respondent_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    respondent_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    answers: Mapped[dict] = mapped_column(JSONType)
    scores: Mapped[dict] = mapped_column(JSONType, default=dict)
    label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    # question id -> exclusion reason
    excluded_questions: Mapped[dict] = mapped_column(JSONType, default=dict)

    weight: Mapped[float] = mapped_column(Float)
    confidence_boost: Mapped[int] = mapped_column(Integer)
    confidence_applied: Mapped[int] = mapped_column(Integer)
    degraded: Mapped[bool] = mapped_column(Boolean, default=False)
    school_context: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )

    profile: Mapped["ConsolidatedProfile"] = relationship(
        "ConsolidatedProfile", back_populates="submissions"
    )


class ProfileAssignment(Base):
    """An invitation for a respondent to assess a subject."""

    __tablename__ = "profile_assignments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    assignment_token: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    subject_name: Mapped[str] = mapped_column(String(255))
    respondent_role: Mapped[str] = mapped_column(String(20))
    respondent_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(String(20), default=AssignmentStatus.PENDING.value)
    profile_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("consolidated_profiles.id", ondelete="SET NULL"),
        nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )
