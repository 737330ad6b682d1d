"""
Cross-source conflict detection.

Every respondent role keeps its own weighted mean per category, built only
from that role's current data sources. Roles are compared pairwise on the
categories they share; the worst pair decides the profile's context
differential. Differences are measured as a fraction of the scale span so
the same thresholds hold for the 1-5 and the 0-3 scales.
"""
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, Optional

from profile_engine.schemas.enums import ContextDifferential, RespondentRole
from profile_engine.schemas.profile import ConflictDetail, DataSourceEntry


@dataclass(frozen=True)
class ConflictReport:
    has_conflict: bool
    differential: Optional[ContextDifferential]
    mean_difference: Optional[float]  # normalized, worst role pair
    conflicts: list[ConflictDetail]


def no_comparison() -> ConflictReport:
    """Report for profiles where fewer than two roles share a category."""
    return ConflictReport(
        has_conflict=False,
        differential=None,
        mean_difference=None,
        conflicts=[],
    )


def role_means(sources: Iterable[DataSourceEntry]) -> dict[RespondentRole, dict[str, float]]:
    """Weighted mean per category for each role, over current sources only."""
    sums: dict[RespondentRole, dict[str, list[float]]] = {}
    for entry in sources:
        if not entry.is_current:
            continue
        per_role = sums.setdefault(entry.respondent_role, {})
        for category, value in entry.scores.items():
            acc = per_role.setdefault(category, [0.0, 0.0])
            acc[0] += entry.weight * value
            acc[1] += entry.weight
    return {
        role: {c: total / weight for c, (total, weight) in per_role.items() if weight > 0}
        for role, per_role in sums.items()
    }


def classify(normalized: float, threshold: float, high_threshold: float) -> ContextDifferential:
    if normalized >= high_threshold:
        return ContextDifferential.HIGH
    if normalized > threshold:
        return ContextDifferential.MEDIUM
    return ContextDifferential.LOW


def detect_conflicts(
    sources: Iterable[DataSourceEntry],
    *,
    scale_span: float,
    threshold: float,
    high_threshold: float,
) -> ConflictReport:
    """Compare every pair of roles that both have current data on shared categories."""
    means = role_means(sources)
    worst: Optional[float] = None
    details: list[ConflictDetail] = []

    for role_a, role_b in combinations(sorted(means, key=lambda r: r.value), 2):
        shared = sorted(set(means[role_a]) & set(means[role_b]))
        if not shared:
            continue
        diffs = {c: abs(means[role_a][c] - means[role_b][c]) for c in shared}
        pair_mean = sum(diffs.values()) / len(diffs) / scale_span
        if worst is None or pair_mean > worst:
            worst = pair_mean
        for category, diff in diffs.items():
            normalized = diff / scale_span
            if normalized > threshold:
                details.append(ConflictDetail(
                    category=category,
                    roles=[role_a, role_b],
                    difference=diff,
                    normalized_difference=normalized,
                ))

    if worst is None:
        return no_comparison()
    return ConflictReport(
        has_conflict=worst > threshold,
        differential=classify(worst, threshold, high_threshold),
        mean_difference=worst,
        conflicts=details,
    )
