"""
Learning Profile Engine - Error Taxonomy
The fixed set of error kinds reported to callers of submit() and get()
"""


class ProfileEngineError(Exception):
    """Base error for every failure surfaced by the engine."""

    kind = "ProfileEngineError"
    retryable = False

    def __init__(self, message: str, *, retryable: bool | None = None):
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable

    def to_dict(self) -> dict:
        return {
            "error": self.kind,
            "detail": self.message,
            "retryable": self.retryable,
        }


class ValidationError(ProfileEngineError):
    """Submission rejected before any scoring attempt."""
    kind = "ValidationError"


class ProfileNotFoundError(ValidationError):
    """Referenced profile id or subject name does not exist."""
    kind = "ProfileNotFound"


class AmbiguousSubjectError(ProfileEngineError):
    """Name + age bucket lookup matched more than one profile."""
    kind = "AmbiguousSubjectError"


class ScoringVersionMismatchError(ProfileEngineError):
    """Update targets a profile created under another scoring version."""
    kind = "ScoringVersionMismatchError"


class UpstreamUnavailable(ProfileEngineError):
    """
    Remote consolidation procedure failed or timed out.
    
    Recovered internally through the degraded local path; callers only
    ever see it as ``degraded: true``.
    """
    kind = "UpstreamUnavailable"
    retryable = True


class PersistenceConflict(ProfileEngineError):
    """Concurrent write on the same profile, or the write did not finish in time."""
    kind = "PersistenceConflict"
    retryable = True
