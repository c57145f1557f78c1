"""
Domain records and analytics result types for campaign analysis.

Input records (Voter, VoterRelationship, Contact, District) mirror the rows
held by the data layer. Result types (CampaignAnalytics and its sections)
are derived per request and never persisted as a source of truth.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np


class PoliticalStance(str, Enum):
    STRONG_SUPPORT = "STRONG_SUPPORT"
    SUPPORT = "SUPPORT"
    LEAN_SUPPORT = "LEAN_SUPPORT"
    NEUTRAL = "NEUTRAL"
    UNDECIDED = "UNDECIDED"
    LEAN_OPPOSE = "LEAN_OPPOSE"
    OPPOSE = "OPPOSE"
    STRONG_OPPOSE = "STRONG_OPPOSE"


class PoliticalParty(str, Enum):
    KMT = "KMT"
    DPP = "DPP"
    TPP = "TPP"
    NPP = "NPP"
    TSP = "TSP"
    OTHER = "OTHER"
    INDEPENDENT = "INDEPENDENT"
    UNKNOWN = "UNKNOWN"


class RelationType(str, Enum):
    FAMILY = "FAMILY"
    SPOUSE = "SPOUSE"
    PARENT = "PARENT"
    CHILD = "CHILD"
    SIBLING = "SIBLING"
    NEIGHBOR = "NEIGHBOR"
    FRIEND = "FRIEND"
    COLLEAGUE = "COLLEAGUE"
    COMMUNITY = "COMMUNITY"
    OTHER = "OTHER"


class ContactType(str, Enum):
    HOME_VISIT = "HOME_VISIT"
    STREET_VISIT = "STREET_VISIT"
    PHONE_CALL = "PHONE_CALL"
    LINE_CALL = "LINE_CALL"
    LIVING_ROOM = "LIVING_ROOM"
    FUNERAL = "FUNERAL"
    WEDDING = "WEDDING"
    EVENT = "EVENT"
    MARKETPLACE = "MARKETPLACE"
    TEMPLE = "TEMPLE"
    OTHER = "OTHER"


class ContactOutcome(str, Enum):
    POSITIVE = "POSITIVE"
    NEUTRAL = "NEUTRAL"
    NEGATIVE = "NEGATIVE"
    NO_RESPONSE = "NO_RESPONSE"
    NOT_HOME = "NOT_HOME"


class DistrictLevel(str, Enum):
    """Administrative levels, ordered from the widest to the narrowest."""

    CITY = "CITY"
    DISTRICT = "DISTRICT"
    VILLAGE = "VILLAGE"
    NEIGHBORHOOD = "NEIGHBORHOOD"

    @property
    def depth(self) -> int:
        return list(DistrictLevel).index(self)


class WinScenario(str, Enum):
    STRONG_WIN = "STRONG_WIN"
    LIKELY_WIN = "LIKELY_WIN"
    TOSS_UP = "TOSS_UP"
    LIKELY_LOSE = "LIKELY_LOSE"
    STRONG_LOSE = "STRONG_LOSE"


class ReportType(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    CUSTOM = "CUSTOM"


def convert_numpy_types(obj: Any) -> Any:
    """Convert numpy, enum and datetime values to JSON-ready Python types."""
    if isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, dict):
        return {convert_numpy_types(k): convert_numpy_types(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy_types(item) for item in obj]
    else:
        return obj


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        return convert_numpy_types(asdict(self))


# Input records


@dataclass
class Voter(_Serializable):
    """A voter tracked by a campaign."""

    id: str
    campaign_id: str
    name: str
    stance: str = PoliticalStance.UNDECIDED.value
    influence_score: int = 0
    political_party: Optional[str] = None
    city: Optional[str] = None
    district_name: Optional[str] = None
    village: Optional[str] = None
    neighborhood: Optional[str] = None
    district_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_count: int = 0
    last_contact_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass
class VoterRelationship(_Serializable):
    """Directed influence edge between two voters."""

    id: str
    source_voter_id: str
    target_voter_id: str
    relation_type: str = RelationType.OTHER.value
    influence_weight: int = 50
    created_at: Optional[datetime] = None


@dataclass
class Contact(_Serializable):
    id: str
    voter_id: str
    campaign_id: str
    type: str
    outcome: str
    contact_date: datetime


@dataclass
class District(_Serializable):
    id: str
    name: str
    level: DistrictLevel
    parent_id: Optional[str] = None
    registered_voters: Optional[int] = None


# Analytics results


@dataclass
class VoterStats(_Serializable):
    total_voters: int
    total_registered: Optional[int]
    coverage_rate: float
    avg_influence_score: float
    high_influence_count: int
    avg_stance_score: float


@dataclass
class ContactStats(_Serializable):
    total_contacts: int
    unique_voters_contacted: int
    contact_rate: float
    avg_contacts_per_voter: float
    contacts_by_type: Dict[str, int]
    contacts_by_outcome: Dict[str, int]
    recent_contact_trend: float


@dataclass
class StanceDistribution(_Serializable):
    strong_support: int = 0
    support: int = 0
    lean_support: int = 0
    neutral: int = 0
    undecided: int = 0
    lean_oppose: int = 0
    oppose: int = 0
    strong_oppose: int = 0

    @property
    def total(self) -> int:
        return sum(asdict(self).values())

    @property
    def support_count(self) -> int:
        return self.strong_support + self.support + self.lean_support

    @property
    def oppose_count(self) -> int:
        return self.lean_oppose + self.oppose + self.strong_oppose

    @property
    def undecided_count(self) -> int:
        return self.neutral + self.undecided


@dataclass
class DistrictBreakdown(_Serializable):
    district_id: str
    district_name: str
    level: str
    total_voters: int
    support_rate: float
    neutral_rate: float
    oppose_rate: float
    contact_rate: float
    estimated_votes: float
    confidence: float  # 0-1


@dataclass
class TrendDataPoint(_Serializable):
    date: date
    support_rate: float
    neutral_rate: float
    oppose_rate: float
    contact_count: int
    new_voters: int


@dataclass
class ProbabilityFactor(_Serializable):
    name: str
    impact: float  # -100 to +100
    description: str


@dataclass
class WinProbability(_Serializable):
    probability: float  # 0-1
    confidence: float  # 0-1
    estimated_votes: float
    votes_needed: float
    margin: float
    scenario: WinScenario
    factors: List[ProbabilityFactor] = field(default_factory=list)


@dataclass
class InfluenceConnection(_Serializable):
    target_voter_id: str
    target_name: str
    relation_type: str
    influence_weight: int
    target_stance: str


@dataclass
class InfluenceAnalysis(_Serializable):
    voter_id: str
    voter_name: str
    direct_influence: float
    network_influence: float
    total_influence: float
    reachable_voters: int
    connections: List[InfluenceConnection] = field(default_factory=list)


@dataclass
class KeyPersonReport(_Serializable):
    top_influencers: List[InfluenceAnalysis]
    uncommitted_influencers: List[InfluenceAnalysis]
    potential_converts: List[InfluenceAnalysis]
    priority_visits: List[InfluenceAnalysis]


@dataclass
class HeatmapPoint(_Serializable):
    latitude: float
    longitude: float
    weight: float
    voter_count: int


@dataclass
class HeatmapBounds(_Serializable):
    north: float
    south: float
    east: float
    west: float


@dataclass
class HeatmapData(_Serializable):
    points: List[HeatmapPoint]
    bounds: Optional[HeatmapBounds]


@dataclass
class ReportPeriod(_Serializable):
    start: datetime
    end: datetime


@dataclass
class CampaignAnalytics(_Serializable):
    """Point-in-time analytics snapshot for one campaign."""

    campaign_id: str
    timestamp: datetime
    voter_stats: VoterStats
    contact_stats: ContactStats
    stance_distribution: StanceDistribution
    district_breakdown: List[DistrictBreakdown]
    trend_data: List[TrendDataPoint]
    win_probability: WinProbability
    top_influencers: List[InfluenceAnalysis] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ReportInsight(_Serializable):
    type: str  # 'positive', 'warning', 'action'
    title: str
    description: str
    metric: Optional[str] = None
    change: Optional[float] = None


@dataclass
class AnalyticsReport(_Serializable):
    id: str
    campaign_id: str
    type: ReportType
    title: str
    generated_at: datetime
    period: ReportPeriod
    data: CampaignAnalytics
    insights: List[ReportInsight] = field(default_factory=list)
