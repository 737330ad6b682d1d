"""Learning Profile Engine - Models initialization."""
from profile_engine.models.profile import (
    ConsolidatedProfile,
    ProfileAssignment,
    SubmissionRecord,
    AssignmentStatus,
)


__all__ = [
    "ConsolidatedProfile",
    "SubmissionRecord",
    "ProfileAssignment",
    "AssignmentStatus",
]
