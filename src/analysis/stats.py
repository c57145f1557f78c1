"""
Campaign-level statistics.

Voter, contact, stance, trend and heatmap rollups that feed the analytics
snapshot. All functions are pure over already-fetched records.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import AnalysisConfig
from .district import registered_voter_total
from .errors import UnknownStanceError
from .models import (
    Contact,
    ContactStats,
    District,
    HeatmapBounds,
    HeatmapData,
    HeatmapPoint,
    ReportPeriod,
    StanceDistribution,
    TrendDataPoint,
    Voter,
    VoterStats,
)
from .stance import compute_stance_score, parse_stance, stance_bucket, stance_weight

logger = logging.getLogger(__name__)


def _to_timestamp(value) -> pd.Timestamp:
    """Timezone-naive timestamp; aware values are converted to UTC first."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def _enum_value(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


def _safe_bucket(stance: str) -> str:
    try:
        return stance_bucket(stance)
    except UnknownStanceError:
        return "neutral"


def compute_voter_stats(
    voters: Sequence[Voter],
    districts: Sequence[District] = (),
    config: Optional[AnalysisConfig] = None,
    warnings: Optional[List[str]] = None,
) -> VoterStats:
    """
    Voter totals, coverage and average scores.

    Voters whose stance cannot be scored are left out of avg_stance_score
    and reported in warnings.
    """
    config = config or AnalysisConfig()
    total = len(voters)
    registered = registered_voter_total(districts)

    stance_scores = []
    for voter in voters:
        try:
            stance_scores.append(
                compute_stance_score(voter.stance, config.stance_fallback)
            )
        except UnknownStanceError as e:
            message = f"Voter {voter.id} excluded from stance averages: {e}"
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)

    influence = [v.influence_score for v in voters]

    return VoterStats(
        total_voters=total,
        total_registered=registered,
        coverage_rate=round(total / registered, 6) if registered else 0.0,
        avg_influence_score=round(float(np.mean(influence)), 4) if influence else 0.0,
        high_influence_count=sum(
            1 for score in influence if score >= config.high_influence_threshold
        ),
        avg_stance_score=(
            round(float(np.mean(stance_scores)), 4) if stance_scores else 0.0
        ),
    )


def compute_stance_distribution(
    voters: Sequence[Voter],
    warnings: Optional[List[str]] = None,
    fallback_to_neutral: bool = False,
) -> StanceDistribution:
    """
    Count voters per stance.

    Unknown stances are counted as NEUTRAL with fallback_to_neutral, and
    skipped and reported in warnings otherwise.
    """
    distribution = StanceDistribution()
    for voter in voters:
        try:
            stance = parse_stance(voter.stance)
        except UnknownStanceError as e:
            if fallback_to_neutral:
                distribution.neutral += 1
                continue
            message = f"Voter {voter.id} excluded from stance distribution: {e}"
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)
            continue
        field_name = stance.value.lower()
        setattr(distribution, field_name, getattr(distribution, field_name) + 1)
    return distribution


def _contacts_between(
    contact_times: Sequence[pd.Timestamp], start: pd.Timestamp, end: pd.Timestamp
) -> int:
    return sum(1 for t in contact_times if start < t <= end)


def compute_contact_stats(
    voters: Sequence[Voter],
    contacts: Sequence[Contact],
    as_of: datetime,
    window_days: int = 7,
) -> ContactStats:
    """
    Contact totals and recent trend.

    recent_contact_trend compares the last window_days before as_of with the
    window before it, as a relative change.
    """
    total_voters = len(voters)
    voter_ids = {v.id for v in voters}

    contacted = {c.voter_id for c in contacts if c.voter_id in voter_ids}
    contacted.update(v.id for v in voters if v.contact_count > 0)

    by_type = Counter(_enum_value(c.type) for c in contacts)
    by_outcome = Counter(_enum_value(c.outcome) for c in contacts)

    end = _to_timestamp(as_of)
    window = pd.Timedelta(days=window_days)
    times = [_to_timestamp(c.contact_date) for c in contacts]
    recent = _contacts_between(times, end - window, end)
    previous = _contacts_between(times, end - 2 * window, end - window)

    if previous > 0:
        trend = (recent - previous) / previous
    elif recent > 0:
        trend = 1.0
    else:
        trend = 0.0

    return ContactStats(
        total_contacts=len(contacts),
        unique_voters_contacted=len(contacted),
        contact_rate=round(len(contacted) / total_voters, 6) if total_voters else 0.0,
        avg_contacts_per_voter=(
            round(len(contacts) / total_voters, 6) if total_voters else 0.0
        ),
        contacts_by_type=dict(sorted(by_type.items())),
        contacts_by_outcome=dict(sorted(by_outcome.items())),
        recent_contact_trend=round(trend, 6),
    )


def compute_trend(
    voters: Sequence[Voter], contacts: Sequence[Contact], period: ReportPeriod
) -> List[TrendDataPoint]:
    """
    One data point per calendar day of the period.

    Stance rates are cumulative over voters created up to and including the
    day; voters without a creation time count from the start.
    """
    start_day = _to_timestamp(period.start).normalize()
    end_day = _to_timestamp(period.end).normalize()
    if end_day < start_day:
        raise ValueError("Report period ends before it starts")

    voter_days = pd.Series(
        [
            _to_timestamp(v.created_at).normalize() if v.created_at else pd.NaT
            for v in voters
        ],
        dtype="datetime64[ns]",
    )
    buckets = pd.Series([_safe_bucket(v.stance) for v in voters], dtype="object")
    contact_days = pd.Series(
        [_to_timestamp(c.contact_date).normalize() for c in contacts],
        dtype="datetime64[ns]",
    )

    new_voters = voter_days.dropna().value_counts()
    daily_contacts = contact_days.value_counts()

    trend = []
    for day in pd.date_range(start_day, end_day, freq="D"):
        existing = voter_days.isna() | (voter_days <= day)
        count = int(existing.sum())
        counts = buckets[existing].value_counts()

        if count:
            support_rate = counts.get("support", 0) / count
            oppose_rate = counts.get("oppose", 0) / count
            neutral_rate = max(0.0, 1.0 - support_rate - oppose_rate)
        else:
            support_rate = oppose_rate = neutral_rate = 0.0

        trend.append(
            TrendDataPoint(
                date=day.date(),
                support_rate=round(float(support_rate), 6),
                neutral_rate=round(float(neutral_rate), 6),
                oppose_rate=round(float(oppose_rate), 6),
                contact_count=int(daily_contacts.get(day, 0)),
                new_voters=int(new_voters.get(day, 0)),
            )
        )

    return trend


def compute_heatmap(voters: Sequence[Voter]) -> HeatmapData:
    """
    Heatmap points weighted by stance and influence.

    Voters at identical coordinates share a point.
    """
    grouped: Dict[Tuple[float, float], List[float]] = {}
    for voter in voters:
        if voter.latitude is None or voter.longitude is None:
            continue
        weight = (stance_weight(voter.stance) + voter.influence_score / 100.0) / 2
        grouped.setdefault((voter.latitude, voter.longitude), []).append(weight)

    points = [
        HeatmapPoint(
            latitude=lat,
            longitude=lng,
            weight=round(float(np.mean(weights)), 4),
            voter_count=len(weights),
        )
        for (lat, lng), weights in grouped.items()
    ]

    if not points:
        return HeatmapData(points=[], bounds=None)

    lats = [p.latitude for p in points]
    lngs = [p.longitude for p in points]
    return HeatmapData(
        points=points,
        bounds=HeatmapBounds(
            north=max(lats), south=min(lats), east=max(lngs), west=min(lngs)
        ),
    )


def default_period(end: datetime, days: int) -> ReportPeriod:
    """Period covering the `days` calendar days ending on `end`."""
    return ReportPeriod(start=end - timedelta(days=days - 1), end=end)
