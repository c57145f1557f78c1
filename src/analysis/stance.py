"""
Stance scoring.

Maps the 8-level political stance to a 0-100 score and to the
support / neutral / oppose buckets used by the district and report rollups.
"""

import logging
from typing import Union

from .errors import UnknownStanceError
from .models import PoliticalStance

logger = logging.getLogger(__name__)

STANCE_SCORES = {
    PoliticalStance.STRONG_SUPPORT: 100,
    PoliticalStance.SUPPORT: 80,
    PoliticalStance.LEAN_SUPPORT: 60,
    PoliticalStance.NEUTRAL: 50,
    PoliticalStance.UNDECIDED: 50,
    PoliticalStance.LEAN_OPPOSE: 40,
    PoliticalStance.OPPOSE: 20,
    PoliticalStance.STRONG_OPPOSE: 0,
}

NEUTRAL_SCORE = STANCE_SCORES[PoliticalStance.NEUTRAL]

SUPPORT_STANCES = frozenset(
    {
        PoliticalStance.STRONG_SUPPORT,
        PoliticalStance.SUPPORT,
        PoliticalStance.LEAN_SUPPORT,
    }
)
NEUTRAL_STANCES = frozenset({PoliticalStance.NEUTRAL, PoliticalStance.UNDECIDED})
OPPOSE_STANCES = frozenset(
    {
        PoliticalStance.LEAN_OPPOSE,
        PoliticalStance.OPPOSE,
        PoliticalStance.STRONG_OPPOSE,
    }
)


def parse_stance(stance: Union[PoliticalStance, str]) -> PoliticalStance:
    """
    Resolve a stance value to the enum.

    Raises:
        UnknownStanceError: if the value is not one of the 8 stances
    """
    if isinstance(stance, PoliticalStance):
        return stance
    try:
        return PoliticalStance(stance)
    except ValueError:
        raise UnknownStanceError(stance) from None


def compute_stance_score(
    stance: Union[PoliticalStance, str], fallback_to_neutral: bool = False
) -> int:
    """
    Score a stance on the 0-100 scale.

    Args:
        stance: Stance enum or its string value
        fallback_to_neutral: Score unknown values as NEUTRAL instead of raising

    Returns:
        Score between 0 (STRONG_OPPOSE) and 100 (STRONG_SUPPORT)
    """
    try:
        return STANCE_SCORES[parse_stance(stance)]
    except UnknownStanceError:
        if fallback_to_neutral:
            logger.debug(f"Scoring unknown stance {stance!r} as neutral")
            return NEUTRAL_SCORE
        raise


def stance_bucket(stance: Union[PoliticalStance, str]) -> str:
    """Return 'support', 'neutral' or 'oppose' for a stance."""
    parsed = parse_stance(stance)
    if parsed in SUPPORT_STANCES:
        return "support"
    elif parsed in OPPOSE_STANCES:
        return "oppose"
    return "neutral"


def stance_weight(stance: Union[PoliticalStance, str]) -> float:
    """Heatmap weight in [0, 1]; unknown stances weigh as neutral."""
    return compute_stance_score(stance, fallback_to_neutral=True) / 100.0
