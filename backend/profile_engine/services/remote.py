"""
Learning Profile Engine - Remote Consolidation
Optional server-side consolidation procedure, called over HTTP
"""
import logging
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from profile_engine.core.exceptions import UpstreamUnavailable
from profile_engine.engine.contribution import Contribution
from profile_engine.engine.scorer import ScoredSubmission
from profile_engine.schemas.profile import ProfileState, SubmissionRequest

logger = logging.getLogger(__name__)


class RemoteConsolidationStrategy:
    """
    Delegates scoring-and-merge of one submission to a remote procedure.

    The remote side receives the current profile (or null), the submission
    and the locally computed scores and contribution, and answers with
    ``{"profile": ProfileState}``. Anything else, including a timeout or a
    result that breaks the profile invariants, is reported as
    ``UpstreamUnavailable`` so the caller can fall back to the local path.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def consolidate(
        self,
        existing: Optional[ProfileState],
        request: SubmissionRequest,
        scored: ScoredSubmission,
        contribution: Contribution,
        *,
        scoring_version: str,
    ) -> ProfileState:
        payload = {
            "profile": existing.model_dump(mode="json") if existing else None,
            "submission": request.model_dump(mode="json"),
            "scored": {
                "scores": scored.scores,
                "label": scored.label,
                "preferences": scored.preferences,
            },
            "contribution": {
                "weight": contribution.weight,
                "confidence_boost": contribution.confidence_boost,
                "categories_covered": sorted(contribution.categories_covered),
            },
            "scoring_version": scoring_version,
        }

        try:
            data = await self._post(payload)
            profile = ProfileState.model_validate(data["profile"])
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Remote consolidation failed: {exc!r}") from exc
        except (PydanticValidationError, KeyError, TypeError, ValueError) as exc:
            raise UpstreamUnavailable(f"Remote consolidation returned an invalid profile: {exc}") from exc

        self._check(profile, existing, scoring_version)
        if existing is not None:
            profile.id = existing.id
            profile.version = existing.version
            profile.created_at = existing.created_at
        return profile

    async def _post(self, payload: dict) -> dict:
        if self._client is not None:
            response = await self._client.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _check(profile: ProfileState, existing: Optional[ProfileState], scoring_version: str) -> None:
        problems = []
        if profile.scoring_version != scoring_version:
            problems.append(f"scoring_version {profile.scoring_version!r} != {scoring_version!r}")
        if profile.total_assessments != profile.parent_assessments + profile.teacher_assessments:
            problems.append("assessment counters do not add up")
        if existing is not None:
            if existing.id is not None and profile.id not in (None, existing.id):
                problems.append("returned a different profile id")
            if profile.total_assessments != existing.total_assessments + 1:
                problems.append("total_assessments did not advance by one")
            if profile.confidence_percentage < existing.confidence_percentage:
                problems.append("confidence decreased")
            if profile.completeness_percentage < existing.completeness_percentage:
                problems.append("completeness decreased")
        elif profile.total_assessments != 1:
            problems.append("new profile must have exactly one assessment")
        if problems:
            raise UpstreamUnavailable("Remote consolidation result rejected: " + "; ".join(problems))
