"""
Voter influence graph.

Builds an in-memory weighted, directed graph from a campaign's voter
relationships. Edges keep relationship insertion order so traversals are
deterministic.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .errors import DanglingReferenceError, VoterNotFoundError
from .models import Voter, VoterRelationship

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Edge:
    """One directed influence edge."""

    source: str
    target: str
    relation_type: str
    influence_weight: int
    relationship_id: Optional[str] = None


@dataclass
class EdgeWarning:
    """A relationship skipped while building the graph."""

    kind: str  # 'dangling_reference', 'duplicate_edge', 'self_loop', 'invalid_weight'
    relationship_id: str
    source_voter_id: str
    target_voter_id: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "kind": self.kind,
            "relationship_id": self.relationship_id,
            "source_voter_id": self.source_voter_id,
            "target_voter_id": self.target_voter_id,
            "message": self.message,
        }


class InfluenceGraph:
    """
    Adjacency-list graph keyed by voter id.

    Every campaign voter is a node, including voters without relationships.
    """

    def __init__(self, voters: Iterable[Voter]):
        self.voters: Dict[str, Voter] = {}
        self._adjacency: Dict[str, List[Edge]] = {}
        self._edge_keys: Set[Tuple[str, str, str]] = set()

        for voter in voters:
            self.voters[voter.id] = voter
            self._adjacency[voter.id] = []

    def __contains__(self, voter_id: str) -> bool:
        return voter_id in self._adjacency

    def __len__(self) -> int:
        return len(self._adjacency)

    @property
    def edge_count(self) -> int:
        return len(self._edge_keys)

    def voter_ids(self) -> List[str]:
        return list(self._adjacency)

    def has_edge(self, source: str, target: str, relation_type: str) -> bool:
        return (source, target, relation_type) in self._edge_keys

    def add_edge(self, edge: Edge) -> bool:
        """
        Add a directed edge.

        Returns:
            False if an edge with the same (source, target, relation_type)
            already exists, True otherwise

        Raises:
            DanglingReferenceError: if either endpoint is not a known voter
        """
        for voter_id in (edge.source, edge.target):
            if voter_id not in self._adjacency:
                raise DanglingReferenceError(edge.relationship_id or "", voter_id)

        key = (edge.source, edge.target, edge.relation_type)
        if key in self._edge_keys:
            return False

        self._edge_keys.add(key)
        self._adjacency[edge.source].append(edge)
        return True

    def neighbors(self, voter_id: str) -> List[Edge]:
        """Outgoing edges of a voter in insertion order."""
        try:
            return self._adjacency[voter_id]
        except KeyError:
            raise VoterNotFoundError(voter_id) from None

    def get_voter(self, voter_id: str) -> Voter:
        try:
            return self.voters[voter_id]
        except KeyError:
            raise VoterNotFoundError(voter_id) from None


@dataclass
class GraphBuildResult:
    graph: InfluenceGraph
    warnings: List[EdgeWarning] = field(default_factory=list)

    @property
    def dangling_references(self) -> List[EdgeWarning]:
        return [w for w in self.warnings if w.kind == "dangling_reference"]


def build_influence_graph(
    voters: Iterable[Voter],
    relationships: Iterable[VoterRelationship],
    symmetric: bool = False,
) -> GraphBuildResult:
    """
    Build the influence graph for a campaign.

    Bad relationships never abort the build: edges with an unknown endpoint,
    self-loops, out-of-range weights and repeated (source, target, type)
    tuples are skipped and reported as warnings.

    Args:
        voters: All voters of the campaign
        relationships: Relationship rows in insertion order
        symmetric: Also add the reverse of every accepted edge

    Returns:
        GraphBuildResult with the graph and the skipped-edge warnings
    """
    graph = InfluenceGraph(voters)
    warnings: List[EdgeWarning] = []

    def skip(rel: VoterRelationship, kind: str, message: str):
        warnings.append(
            EdgeWarning(
                kind=kind,
                relationship_id=rel.id,
                source_voter_id=rel.source_voter_id,
                target_voter_id=rel.target_voter_id,
                message=message,
            )
        )

    for rel in relationships:
        if rel.source_voter_id == rel.target_voter_id:
            skip(rel, "self_loop", f"Relationship {rel.id} links voter to itself")
            continue

        weight = rel.influence_weight
        if weight is None or not 0 <= weight <= 100:
            skip(
                rel,
                "invalid_weight",
                f"Relationship {rel.id} has influence weight {weight} outside 0-100",
            )
            continue

        edge = Edge(
            source=rel.source_voter_id,
            target=rel.target_voter_id,
            relation_type=rel.relation_type,
            influence_weight=int(weight),
            relationship_id=rel.id,
        )

        try:
            added = graph.add_edge(edge)
        except DanglingReferenceError as e:
            skip(rel, "dangling_reference", str(e))
            continue

        if not added:
            skip(
                rel,
                "duplicate_edge",
                f"Relationship {rel.id} duplicates an existing "
                f"{rel.relation_type} edge {rel.source_voter_id} -> {rel.target_voter_id}",
            )
            continue

        if symmetric:
            graph.add_edge(
                Edge(
                    source=edge.target,
                    target=edge.source,
                    relation_type=edge.relation_type,
                    influence_weight=edge.influence_weight,
                    relationship_id=edge.relationship_id,
                )
            )

    for warning in warnings:
        logger.warning(f"Skipped relationship ({warning.kind}): {warning.message}")

    logger.info(
        f"Built influence graph with {len(graph)} voters and "
        f"{graph.edge_count} edges ({len(warnings)} skipped)"
    )
    return GraphBuildResult(graph=graph, warnings=warnings)
