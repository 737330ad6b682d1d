"""
Learning Profile Engine - Profiles API
Endpoints for submitting assessments and reading consolidated profiles
"""
import uuid
from typing import Optional

from fastapi import APIRouter, status

from profile_engine.api.deps import ProfileServiceDep
from profile_engine.schemas.enums import AgeBucket, ViewingContext
from profile_engine.schemas.profile import (
    ErrorResponse,
    ProfileView,
    SubmissionRequest,
    SubmitResult,
)

router = APIRouter(prefix="/profiles", tags=["Profiles"])

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post(
    "/submissions",
    response_model=SubmitResult,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def submit_assessment(request: SubmissionRequest, service: ProfileServiceDep):
    """
    Submit one parent or teacher assessment.

    Creates the subject's profile on the first submission, otherwise merges
    into it. ``degraded`` is true when the remote consolidation procedure was
    unavailable and the reduced local path was used.
    """
    return await service.submit(request)


@router.get("/{profile_id}", response_model=ProfileView, responses=_ERRORS)
async def get_profile(
    profile_id: uuid.UUID,
    service: ProfileServiceDep,
    context: ViewingContext = ViewingContext.NEUTRAL,
):
    """Get a consolidated profile prepared for a parent, teacher or neutral audience."""
    return await service.get(profile_id=profile_id, context=context)


@router.get("", response_model=ProfileView, responses=_ERRORS)
async def find_profile(
    name: str,
    service: ProfileServiceDep,
    context: ViewingContext = ViewingContext.NEUTRAL,
    age_bucket: Optional[AgeBucket] = None,
):
    """Look up a profile by exact subject name (and age bucket, if several share the name)."""
    return await service.get(name=name, context=context, age_bucket=age_bucket)
