"""
Response scorer.

Maps one submission's answers onto per-category scores and a label. A
category is the plain mean of its answered Likert items on the table's own
scale; categories with nothing answered are left out of ``scores`` entirely.
"""
from dataclasses import dataclass, field
from typing import Mapping

from profile_engine.engine.answers import (
    Answer,
    ChoiceAnswer,
    ExclusionReason,
    LikertAnswer,
    MultiChoiceAnswer,
    QuestionId,
    partition_answers,
)
from profile_engine.engine.tables import ScoringTable
from profile_engine.schemas.enums import AgeBucket


@dataclass(frozen=True)
class ScoredSubmission:
    """Scores and label derived from a single submission."""
    scores: dict[str, float]
    label: str
    preferences: dict[str, str | list[str]] = field(default_factory=dict)
    excluded_questions: dict[int, ExclusionReason] = field(default_factory=dict)


def rank_categories(scores: Mapping[str, float], table: ScoringTable) -> list[str]:
    """Categories ordered by score, highest first; ties follow the table's priority order."""
    return sorted(scores, key=lambda c: (-scores[c], table.category_rank(c)))


def label_for_scores(scores: Mapping[str, float], table: ScoringTable) -> str:
    """Label from the two highest-ranked categories."""
    ranked = rank_categories(scores, table)
    if len(ranked) < 2:
        return table.default_label
    return table.label_for(ranked[0], ranked[1])


def score(
    answers: Mapping[QuestionId, Answer],
    quiz_variant: str,
    age_bucket: AgeBucket,
    table: ScoringTable,
) -> ScoredSubmission:
    """Score parsed *answers* for *quiz_variant* under *table*."""
    variant = table.variant(quiz_variant)
    accepted, excluded = partition_answers(answers, table, variant, age_bucket)

    values_by_category: dict[str, list[float]] = {}
    preferences: dict[str, str | list[str]] = {}
    for qid, answer in accepted.items():
        category = table.questions[qid].category
        if isinstance(answer, LikertAnswer):
            values_by_category.setdefault(category, []).append(answer.value)
        elif isinstance(answer, ChoiceAnswer):
            preferences[category] = answer.value
        elif isinstance(answer, MultiChoiceAnswer):
            preferences[category] = list(answer.values)

    scores = {
        category: sum(values) / len(values)
        for category, values in values_by_category.items()
    }
    return ScoredSubmission(
        scores=scores,
        label=label_for_scores(scores, table),
        preferences=preferences,
        excluded_questions=dict(excluded),
    )
