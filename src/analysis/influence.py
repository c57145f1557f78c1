"""
Influence propagation over the voter relationship graph.

For each voter this computes direct influence (outgoing 1-hop weight),
network influence (decayed weight over a depth-bounded breadth-first
traversal) and their weighted total, all on a 0-100 scale.
"""

import logging
from collections import deque
from typing import Dict, List, Optional

from .config import AnalysisConfig
from .graph import InfluenceGraph
from .models import (
    InfluenceAnalysis,
    InfluenceConnection,
    KeyPersonReport,
    PoliticalStance,
)

logger = logging.getLogger(__name__)

PRIORITY_VISIT_COUNT = 5

UNCOMMITTED_STANCES = {PoliticalStance.NEUTRAL.value, PoliticalStance.UNDECIDED.value}
CONVERTIBLE_STANCES = {
    PoliticalStance.LEAN_SUPPORT.value,
    PoliticalStance.LEAN_OPPOSE.value,
}


def _saturate(value: float, cap: float) -> float:
    """Normalize a raw weight sum to 0-100, saturating at cap."""
    return min(max(value, 0.0), cap) / cap * 100.0


def compute_influence(
    graph: InfluenceGraph, voter_id: str, config: Optional[AnalysisConfig] = None
) -> InfluenceAnalysis:
    """
    Compute the influence of a single voter.

    Each reachable voter is counted once, at the depth where the traversal
    first discovers it, contributing edge_weight * decay_factor ** (depth - 1).

    Raises:
        VoterNotFoundError: if voter_id is not in the graph
    """
    config = config or AnalysisConfig()
    voter = graph.get_voter(voter_id)
    edges = graph.neighbors(voter_id)

    direct_raw = sum(edge.influence_weight for edge in edges)

    visited = {voter_id}
    queue = deque([(voter_id, 0)])
    network_raw = 0.0

    while queue:
        current, depth = queue.popleft()
        if depth >= config.max_traversal_depth:
            continue

        for edge in graph.neighbors(current):
            if edge.target in visited:
                continue
            visited.add(edge.target)
            network_raw += edge.influence_weight * config.decay_factor ** depth
            queue.append((edge.target, depth + 1))

    direct = _saturate(direct_raw, config.influence_cap)
    network = _saturate(network_raw, config.influence_cap)
    total = direct * config.direct_weight + network * config.network_weight
    total = min(max(total, 0.0), 100.0)

    connections = []
    for edge in edges:
        target = graph.voters[edge.target]
        connections.append(
            InfluenceConnection(
                target_voter_id=target.id,
                target_name=target.name,
                relation_type=edge.relation_type,
                influence_weight=edge.influence_weight,
                target_stance=target.stance,
            )
        )

    return InfluenceAnalysis(
        voter_id=voter.id,
        voter_name=voter.name,
        direct_influence=round(direct, 4),
        network_influence=round(network, 4),
        total_influence=round(total, 4),
        reachable_voters=len(visited) - 1,
        connections=connections,
    )


def rank_influencers(
    graph: InfluenceGraph,
    config: Optional[AnalysisConfig] = None,
    limit: Optional[int] = None,
) -> List[InfluenceAnalysis]:
    """
    Compute influence for every voter, strongest first.

    Ties on total influence are broken by voter id ascending.
    """
    config = config or AnalysisConfig()
    analyses = [compute_influence(graph, voter_id, config) for voter_id in graph.voter_ids()]
    analyses.sort(key=lambda a: (-a.total_influence, a.voter_id))

    if limit is not None:
        analyses = analyses[:limit]
    return analyses


def build_key_person_report(
    graph: InfluenceGraph,
    config: Optional[AnalysisConfig] = None,
    limit: Optional[int] = None,
) -> KeyPersonReport:
    """
    Identify the voters worth prioritizing.

    - top influencers: highest total influence
    - uncommitted influencers: NEUTRAL/UNDECIDED voters at or above the
      uncommitted threshold
    - potential converts: LEAN_SUPPORT/LEAN_OPPOSE voters by influence
    - priority visits: the first few uncommitted influencers
    """
    config = config or AnalysisConfig()
    limit = limit or config.top_influencers
    ranked = rank_influencers(graph, config)

    uncommitted = [
        a
        for a in ranked
        if graph.voters[a.voter_id].stance in UNCOMMITTED_STANCES
        and a.total_influence >= config.uncommitted_threshold
    ]
    converts = [
        a for a in ranked if graph.voters[a.voter_id].stance in CONVERTIBLE_STANCES
    ]

    return KeyPersonReport(
        top_influencers=ranked[:limit],
        uncommitted_influencers=uncommitted[:limit],
        potential_converts=converts[:limit],
        priority_visits=uncommitted[:PRIORITY_VISIT_COUNT],
    )


def recompute_influence_scores(
    graph: InfluenceGraph, config: Optional[AnalysisConfig] = None
) -> Dict[str, int]:
    """Rounded total influence per voter, suitable for Voter.influence_score."""
    config = config or AnalysisConfig()
    scores = {}
    for voter_id in graph.voter_ids():
        analysis = compute_influence(graph, voter_id, config)
        scores[voter_id] = int(round(analysis.total_influence))

    logger.info(f"Recomputed influence scores for {len(scores)} voters")
    return scores
