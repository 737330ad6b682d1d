"""Learning Profile Engine - Services initialization."""
from profile_engine.services.assignments import AssignmentTracker
from profile_engine.services.locks import ProfileLockRegistry
from profile_engine.services.profile_service import ProfileService
from profile_engine.services.remote import RemoteConsolidationStrategy
from profile_engine.services.repository import ProfileRepository

__all__ = [
    "ProfileService",
    "ProfileRepository",
    "ProfileLockRegistry",
    "RemoteConsolidationStrategy",
    "AssignmentTracker",
]
