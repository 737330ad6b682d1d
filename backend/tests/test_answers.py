"""
Learning Profile Engine - Answer Parsing Tests
"""
import pytest

from profile_engine.core.exceptions import ValidationError
from profile_engine.engine.answers import (
    ChoiceAnswer,
    ExclusionReason,
    LikertAnswer,
    MultiChoiceAnswer,
    parse_answers,
    partition_answers,
)
from profile_engine.engine.tables import CLP2_TABLE, LEGACY_TABLE
from profile_engine.schemas.enums import AgeBucket


def test_parses_each_answer_kind():
    answers = parse_answers(
        {"1": 3, 25: "visual", "28": ["art", "music", "art"]},
        CLP2_TABLE,
    )
    assert answers[1] == LikertAnswer(3.0)
    assert answers[25] == ChoiceAnswer("visual")
    assert answers[28] == MultiChoiceAnswer(("art", "music"))


def test_unanswered_values_are_dropped():
    answers = parse_answers({"1": 2, "2": None, "28": []}, CLP2_TABLE)
    assert set(answers) == {1}


def test_empty_answers_rejected():
    with pytest.raises(ValidationError):
        parse_answers({}, CLP2_TABLE)


def test_all_unanswered_rejected():
    with pytest.raises(ValidationError):
        parse_answers({"1": None}, CLP2_TABLE)


@pytest.mark.parametrize("raw", [
    {"99": 2},          # unknown question
    {"abc": 2},         # not a question id
    {"1": 4},           # above the 0-3 scale
    {"1": -1},
    {"1": "often"},     # Likert expects a number
    {"1": True},
    {"25": "juggling"},  # not an option
    {"28": "art"},      # multi-select expects a list
    {"28": ["art", "opera"]},
])
def test_invalid_answers_rejected(raw):
    with pytest.raises(ValidationError):
        parse_answers(raw, CLP2_TABLE)


def test_legacy_scale_is_one_to_five():
    assert parse_answers({"1": 5}, LEGACY_TABLE)[1] == LikertAnswer(5.0)
    with pytest.raises(ValidationError):
        parse_answers({"1": 0}, LEGACY_TABLE)


def test_partition_reports_exclusion_reason():
    answers = parse_answers({"1": 2, "3": 2, "6": 1, "29": 3}, CLP2_TABLE)
    home = CLP2_TABLE.variant("home")

    accepted, excluded = partition_answers(answers, CLP2_TABLE, home, AgeBucket.AGE_3_4)

    assert set(accepted) == {1}
    # 3 is a classroom item; 6 and 29 are not asked at 3-4
    assert excluded == {
        3: ExclusionReason.NOT_IN_VARIANT,
        6: ExclusionReason.AGE_INAPPROPRIATE,
        29: ExclusionReason.AGE_INAPPROPRIATE,
    }
