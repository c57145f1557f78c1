"""
Analysis configuration.

Values are supplied by the calling service. `AnalysisConfig.from_env()`
reads overrides from CAMPAIGN_* environment variables, e.g.
CAMPAIGN_DECAY_FACTOR=0.4 or CAMPAIGN_VOTES_NEEDED=1200.
"""

import logging
import os
from dataclasses import dataclass, fields
from typing import Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "CAMPAIGN_"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AnalysisConfig:
    """Tunable parameters for influence, district and win-probability analysis."""

    min_sample_size: int = 30
    decay_factor: float = 0.5
    max_traversal_depth: int = 2
    turnout_assumption: float = 0.7
    votes_needed: Optional[float] = None
    influence_cap: float = 100.0
    direct_weight: float = 0.6
    network_weight: float = 0.4
    symmetric_relationships: bool = False
    stance_fallback: bool = False
    high_influence_threshold: int = 70
    uncommitted_threshold: float = 50.0
    steepness_min: float = 2.0
    steepness_max: float = 10.0
    trend_days: int = 30
    top_influencers: int = 20

    def __post_init__(self):
        if self.min_sample_size < 1:
            raise ValueError("min_sample_size must be at least 1")
        if not 0.0 <= self.decay_factor <= 1.0:
            raise ValueError("decay_factor must be between 0 and 1")
        if self.max_traversal_depth < 1:
            raise ValueError("max_traversal_depth must be at least 1")
        if not 0.0 <= self.turnout_assumption <= 1.0:
            raise ValueError("turnout_assumption must be between 0 and 1")
        if self.votes_needed is not None and self.votes_needed < 0:
            raise ValueError("votes_needed cannot be negative")
        if self.influence_cap <= 0:
            raise ValueError("influence_cap must be positive")
        if self.direct_weight < 0 or self.network_weight < 0:
            raise ValueError("influence weights cannot be negative")
        if self.steepness_min <= 0 or self.steepness_max < self.steepness_min:
            raise ValueError("steepness_max must be >= steepness_min > 0")
        if self.trend_days < 1:
            raise ValueError("trend_days must be at least 1")
        if self.top_influencers < 1:
            raise ValueError("top_influencers must be at least 1")

    @classmethod
    def from_env(cls, environ=None) -> "AnalysisConfig":
        """Build a config from CAMPAIGN_<FIELD> environment variables."""
        environ = os.environ if environ is None else environ
        overrides = {}

        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw == "":
                continue

            if f.type in (bool, "bool"):
                overrides[f.name] = _parse_bool(raw)
            elif f.type in (int, "int"):
                overrides[f.name] = int(raw)
            else:
                # float and Optional[float]
                overrides[f.name] = float(raw)

        if overrides:
            logger.info(f"Analysis config overrides from environment: {overrides}")

        return cls(**overrides)
