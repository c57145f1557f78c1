"""
Win-probability estimation.

Combines district vote estimates into a campaign-level probability using a
logistic curve centered on a zero margin. Aggregate confidence controls the
steepness: well-sampled campaigns move away from 0.5 faster.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from .config import AnalysisConfig
from .models import (
    ContactStats,
    DistrictBreakdown,
    ProbabilityFactor,
    StanceDistribution,
    WinProbability,
    WinScenario,
)

logger = logging.getLogger(__name__)


def classify_scenario(probability: float) -> WinScenario:
    """Map a probability to its scenario label; first matching threshold wins."""
    if probability >= 0.85:
        return WinScenario.STRONG_WIN
    elif probability >= 0.6:
        return WinScenario.LIKELY_WIN
    elif 0.4 < probability < 0.6:
        return WinScenario.TOSS_UP
    elif probability > 0.15:
        return WinScenario.LIKELY_LOSE
    return WinScenario.STRONG_LOSE


def logistic(x: float) -> float:
    """Numerically stable logistic function."""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def aggregate_confidence(breakdowns: Sequence[DistrictBreakdown]) -> float:
    """Voter-weighted mean of district confidence."""
    weights = [b.total_voters for b in breakdowns]
    if sum(weights) == 0:
        return 0.0
    return float(np.average([b.confidence for b in breakdowns], weights=weights))


def win_probability_from_margin(
    margin: float, votes_needed: float, confidence: float, config: AnalysisConfig
) -> float:
    steepness = config.steepness_min + (
        config.steepness_max - config.steepness_min
    ) * min(max(confidence, 0.0), 1.0)
    relative_margin = margin / max(votes_needed, 1.0)
    return logistic(steepness * relative_margin)


def _clamp_impact(value: float) -> float:
    return round(min(max(value, -100.0), 100.0), 2)


def _build_factors(
    confidence: float,
    stance_distribution: Optional[StanceDistribution],
    contact_stats: Optional[ContactStats],
) -> List[ProbabilityFactor]:
    factors = [
        ProbabilityFactor(
            name="district_confidence",
            impact=_clamp_impact((confidence - 0.5) * 200),
            description=f"Sample confidence across districts is {confidence:.0%}",
        )
    ]

    if stance_distribution is not None and stance_distribution.total > 0:
        total = stance_distribution.total
        undecided_share = stance_distribution.undecided_count / total
        factors.append(
            ProbabilityFactor(
                name="undecided_share",
                impact=_clamp_impact(-undecided_share * 100),
                description=(
                    f"{stance_distribution.undecided_count} neutral or undecided "
                    f"voters ({undecided_share:.0%}) still to win over"
                ),
            )
        )
        balance = (
            stance_distribution.support_count - stance_distribution.oppose_count
        ) / total
        factors.append(
            ProbabilityFactor(
                name="support_balance",
                impact=_clamp_impact(balance * 100),
                description=(
                    f"{stance_distribution.support_count} supporters against "
                    f"{stance_distribution.oppose_count} opponents"
                ),
            )
        )

    if contact_stats is not None:
        factors.append(
            ProbabilityFactor(
                name="contact_rate",
                impact=_clamp_impact((contact_stats.contact_rate - 0.5) * 200),
                description=f"{contact_stats.contact_rate:.0%} of voters contacted",
            )
        )
        factors.append(
            ProbabilityFactor(
                name="contact_trend",
                impact=_clamp_impact(contact_stats.recent_contact_trend * 100),
                description=(
                    f"Recent contact activity changed by "
                    f"{contact_stats.recent_contact_trend:+.0%}"
                ),
            )
        )

    return factors


def estimate_win_probability(
    breakdowns: Sequence[DistrictBreakdown],
    votes_needed: float,
    config: Optional[AnalysisConfig] = None,
    stance_distribution: Optional[StanceDistribution] = None,
    contact_stats: Optional[ContactStats] = None,
) -> WinProbability:
    """
    Estimate the campaign's chance of winning.

    Args:
        breakdowns: Per-district breakdowns with estimated votes
        votes_needed: Winning threshold supplied by the caller
        config: Steepness bounds of the logistic curve
        stance_distribution: Optional, adds stance-based factors
        contact_stats: Optional, adds contact-based factors

    Returns:
        WinProbability with probability and confidence in [0, 1]
    """
    config = config or AnalysisConfig()
    if votes_needed < 0:
        raise ValueError("votes_needed cannot be negative")

    estimated_votes = float(sum(b.estimated_votes for b in breakdowns))
    margin = estimated_votes - votes_needed
    confidence = aggregate_confidence(breakdowns)

    probability = round(
        win_probability_from_margin(margin, votes_needed, confidence, config), 6
    )
    scenario = classify_scenario(probability)

    logger.info(
        f"Win probability {probability:.3f} ({scenario.value}): "
        f"{estimated_votes:.1f} estimated vs {votes_needed:.1f} needed"
    )

    return WinProbability(
        probability=probability,
        confidence=round(confidence, 6),
        estimated_votes=round(estimated_votes, 6),
        votes_needed=votes_needed,
        margin=round(margin, 6),
        scenario=scenario,
        factors=_build_factors(confidence, stance_distribution, contact_stats),
    )
