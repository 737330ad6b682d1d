"""
Answer parsing.

Raw answers arrive keyed by question id (JSON object keys are strings) with
scalar or list values. They are validated against the active scoring table
here, once, and turned into a closed set of answer types so nothing
downstream has to inspect raw values again.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, NewType, Union

from profile_engine.core.exceptions import ValidationError
from profile_engine.engine.tables import QuestionSpec, QuizVariantSpec, ScoringTable
from profile_engine.schemas.enums import AgeBucket, AnswerKind

QuestionId = NewType("QuestionId", int)


@dataclass(frozen=True)
class LikertAnswer:
    value: float


@dataclass(frozen=True)
class ChoiceAnswer:
    value: str


@dataclass(frozen=True)
class MultiChoiceAnswer:
    values: tuple[str, ...]


Answer = Union[LikertAnswer, ChoiceAnswer, MultiChoiceAnswer]


class ExclusionReason(str, Enum):
    """Why an answered question did not count towards this submission."""
    AGE_INAPPROPRIATE = "age_inappropriate"
    NOT_IN_VARIANT = "not_in_variant"


def _question_id(key: Any) -> QuestionId:
    if isinstance(key, bool):
        raise ValidationError(f"Invalid question id: {key!r}")
    if isinstance(key, int):
        return QuestionId(key)
    if isinstance(key, str) and key.strip().isdigit():
        return QuestionId(int(key))
    raise ValidationError(f"Invalid question id: {key!r}")


def _parse_one(question: QuestionSpec, value: Any, table: ScoringTable) -> Answer | None:
    if question.kind == AnswerKind.LIKERT:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(
                f"Question {question.id} expects a number on the "
                f"{table.scale_min}-{table.scale_max} scale, got {value!r}"
            )
        if not table.scale_min <= value <= table.scale_max:
            raise ValidationError(
                f"Question {question.id} answer {value} is outside the "
                f"{table.scale_min}-{table.scale_max} scale"
            )
        return LikertAnswer(float(value))

    if question.kind == AnswerKind.CHOICE:
        if value not in question.options:
            raise ValidationError(
                f"Question {question.id} expects one of {list(question.options)}, got {value!r}"
            )
        return ChoiceAnswer(value)

    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValidationError(f"Question {question.id} expects a list of options, got {value!r}")
    unknown = [v for v in value if v not in question.options]
    if unknown:
        raise ValidationError(f"Question {question.id} has unknown options: {unknown}")
    if not value:
        return None
    return MultiChoiceAnswer(tuple(dict.fromkeys(value)))


def parse_answers(raw: Mapping[Any, Any], table: ScoringTable) -> dict[QuestionId, Answer]:
    """
    Validate raw answers against *table*.
    
    ``None`` values and empty multi-selects mean "not answered" and are
    dropped. Unknown question ids and values outside the scale are
    rejected with ``ValidationError``.
    """
    if not raw:
        raise ValidationError("answers must not be empty")

    parsed: dict[QuestionId, Answer] = {}
    for key, value in raw.items():
        qid = _question_id(key)
        question = table.questions.get(qid)
        if question is None:
            raise ValidationError(
                f"Question {qid} does not exist in scoring version '{table.version}'"
            )
        if value is None:
            continue
        answer = _parse_one(question, value, table)
        if answer is not None:
            parsed[qid] = answer

    if not parsed:
        raise ValidationError("answers must contain at least one answered question")
    return parsed


def partition_answers(
    answers: Mapping[QuestionId, Answer],
    table: ScoringTable,
    variant: QuizVariantSpec,
    age_bucket: AgeBucket,
) -> tuple[dict[QuestionId, Answer], dict[QuestionId, ExclusionReason]]:
    """Split answers into those that count and those excluded up front, with the reason."""
    expected = {q.id for q in table.expected_questions(variant, age_bucket)}
    accepted: dict[QuestionId, Answer] = {}
    excluded: dict[QuestionId, ExclusionReason] = {}
    for qid, answer in answers.items():
        if age_bucket not in table.questions[qid].age_buckets:
            excluded[qid] = ExclusionReason.AGE_INAPPROPRIATE
        elif qid not in expected:
            excluded[qid] = ExclusionReason.NOT_IN_VARIANT
        else:
            accepted[qid] = answer
    return accepted, excluded
