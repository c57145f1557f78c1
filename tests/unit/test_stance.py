"""
Stance scoring tests.

The 8-level stance maps to a fixed 0-100 score table and to the
support / neutral / oppose buckets.
"""

import pytest

from analysis.errors import UnknownStanceError
from analysis.models import PoliticalStance
from analysis.stance import (
    STANCE_SCORES,
    compute_stance_score,
    parse_stance,
    stance_bucket,
    stance_weight,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "stance,expected",
    [
        ("STRONG_SUPPORT", 100),
        ("SUPPORT", 80),
        ("LEAN_SUPPORT", 60),
        ("NEUTRAL", 50),
        ("UNDECIDED", 50),
        ("LEAN_OPPOSE", 40),
        ("OPPOSE", 20),
        ("STRONG_OPPOSE", 0),
    ],
)
def test_score_table(stance, expected):
    assert compute_stance_score(stance) == expected
    assert compute_stance_score(PoliticalStance(stance)) == expected


@pytest.mark.unit
@pytest.mark.invariant
def test_scores_are_monotonic_and_bounded():
    ordered = [STANCE_SCORES[s] for s in PoliticalStance]
    assert all(0 <= score <= 100 for score in ordered)
    # Enum order runs from strongest support to strongest opposition
    assert ordered == sorted(ordered, reverse=True)


@pytest.mark.unit
def test_unknown_stance_raises():
    with pytest.raises(UnknownStanceError) as exc_info:
        compute_stance_score("MAYBE")
    assert exc_info.value.stance == "MAYBE"


@pytest.mark.unit
def test_unknown_stance_falls_back_to_neutral_when_enabled():
    assert compute_stance_score("MAYBE", fallback_to_neutral=True) == 50


@pytest.mark.unit
def test_parse_stance_is_case_sensitive():
    assert parse_stance("SUPPORT") is PoliticalStance.SUPPORT
    with pytest.raises(UnknownStanceError):
        parse_stance("support")


@pytest.mark.unit
def test_buckets():
    assert stance_bucket("LEAN_SUPPORT") == "support"
    assert stance_bucket("UNDECIDED") == "neutral"
    assert stance_bucket("NEUTRAL") == "neutral"
    assert stance_bucket(PoliticalStance.LEAN_OPPOSE) == "oppose"


@pytest.mark.unit
def test_stance_weight_uses_neutral_for_unknown():
    assert stance_weight("STRONG_SUPPORT") == 1.0
    assert stance_weight("OPPOSE") == pytest.approx(0.2)
    assert stance_weight("???") == 0.5
