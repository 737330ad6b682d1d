"""
Learning Profile Engine - Contribution Calculator Tests
"""
import pytest

from profile_engine.engine.answers import parse_answers
from profile_engine.engine.contribution import contribution
from profile_engine.engine.tables import CLP2_TABLE
from profile_engine.schemas.enums import AgeBucket

from conftest import CLASSROOM_ANSWERS, HOME_PARTIAL_ANSWERS


def _contribution(raw, variant, age=AgeBucket.AGE_5_6, **kwargs):
    answers = parse_answers(raw, CLP2_TABLE)
    return contribution(variant, answers, table=CLP2_TABLE, age_bucket=age, **kwargs)


def test_partial_home_form_scales_weight_and_boost():
    result = _contribution(HOME_PARTIAL_ANSWERS, "home")

    assert result.answered == 15
    assert result.expected == 19
    assert result.weight == pytest.approx(0.6 * 15 / 19)
    assert result.confidence_boost == round(30 * 15 / 19)


def test_complete_classroom_form_gets_full_base_values():
    result = _contribution(CLASSROOM_ANSWERS, "classroom")

    assert result.answered_ratio == 1.0
    assert result.weight == pytest.approx(0.8)
    assert result.confidence_boost == 40


def test_categories_covered_are_exactly_the_answered_ones():
    result = _contribution({"1": 2, "19": 1, "25": "visual"}, "home")
    assert result.categories_covered == frozenset({"Communication", "Literacy"})


def test_weight_never_drops_below_minimum():
    result = _contribution({"1": 2}, "general", min_weight=0.1)
    assert result.weight == pytest.approx(0.1)
    assert result.confidence_boost >= 1


def test_questions_outside_the_variant_do_not_count():
    result = _contribution({"1": 2, "3": 2}, "home")
    assert result.answered == 1
