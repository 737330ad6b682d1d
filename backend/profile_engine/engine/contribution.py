"""
Contribution calculator.

How much one submission should move the consolidated profile: its weight,
its confidence boost and the categories it actually covered.
"""
from dataclasses import dataclass
from typing import Mapping

from profile_engine.engine.answers import Answer, QuestionId, partition_answers
from profile_engine.engine.tables import ScoringTable
from profile_engine.schemas.enums import AgeBucket

MIN_CONTRIBUTION_WEIGHT = 0.1


@dataclass(frozen=True)
class Contribution:
    weight: float
    confidence_boost: int
    categories_covered: frozenset[str]
    answered: int
    expected: int

    @property
    def answered_ratio(self) -> float:
        return self.answered / self.expected if self.expected else 0.0


def contribution(
    quiz_variant: str,
    answers: Mapping[QuestionId, Answer],
    *,
    table: ScoringTable,
    age_bucket: AgeBucket,
    min_weight: float = MIN_CONTRIBUTION_WEIGHT,
) -> Contribution:
    """
    Weight and confidence boost scale with the answered/expected ratio of the
    variant's canonical question set. Weight never drops below *min_weight*.
    """
    variant = table.variant(quiz_variant)
    expected = table.expected_questions(variant, age_bucket)
    accepted, _ = partition_answers(answers, table, variant, age_bucket)

    ratio = len(accepted) / len(expected) if expected else 0.0
    weight = max(min_weight, variant.scoring_weight * ratio)
    boost = round(variant.confidence_boost * ratio)
    if accepted:
        boost = max(1, boost)

    covered = frozenset(
        table.questions[qid].category
        for qid in accepted
        if table.questions[qid].is_scored
    )
    return Contribution(
        weight=weight,
        confidence_boost=boost,
        categories_covered=covered,
        answered=len(accepted),
        expected=len(expected),
    )
