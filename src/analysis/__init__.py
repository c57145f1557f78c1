"""
Analysis module for campaign voter analytics.

This module provides the campaign analytics engine:
- Stance scoring and the voter influence graph
- Influence propagation and key-person ranking
- District aggregation and win-probability estimation
- ReportBuilder: assembles everything into a CampaignAnalytics snapshot
"""

from .config import AnalysisConfig
from .district import aggregate_district, aggregate_districts
from .errors import (
    AggregationError,
    AnalyticsError,
    DanglingReferenceError,
    UnknownStanceError,
    VoterNotFoundError,
)
from .graph import EdgeWarning, InfluenceGraph, build_influence_graph
from .influence import build_key_person_report, compute_influence, rank_influencers
from .probability import classify_scenario, estimate_win_probability
from .report import ReportBuilder
from .stance import compute_stance_score

__all__ = [
    "AnalysisConfig",
    "ReportBuilder",
    "compute_stance_score",
    "build_influence_graph",
    "InfluenceGraph",
    "EdgeWarning",
    "compute_influence",
    "rank_influencers",
    "build_key_person_report",
    "aggregate_district",
    "aggregate_districts",
    "estimate_win_probability",
    "classify_scenario",
    "AnalyticsError",
    "UnknownStanceError",
    "DanglingReferenceError",
    "VoterNotFoundError",
    "AggregationError",
]
