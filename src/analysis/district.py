"""
District aggregation.

Rolls voter stance and contact data up into per-district breakdowns and
checks the CITY > DISTRICT > VILLAGE > NEIGHBORHOOD hierarchy.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .config import AnalysisConfig
from .errors import UnknownStanceError
from .models import Contact, District, DistrictBreakdown, Voter
from .stance import stance_bucket

logger = logging.getLogger(__name__)


def descendant_ids(districts: Iterable[District], root_id: str) -> Set[str]:
    """Return root_id plus the ids of every district below it."""
    children: Dict[str, List[str]] = defaultdict(list)
    for district in districts:
        if district.parent_id:
            children[district.parent_id].append(district.id)

    found = {root_id}
    stack = [root_id]
    while stack:
        for child_id in children.get(stack.pop(), []):
            if child_id not in found:
                found.add(child_id)
                stack.append(child_id)
    return found


def registered_voter_total(districts: Sequence[District]) -> Optional[int]:
    """
    Registered voters across a district set without double counting levels.

    A district's own count is used when known; otherwise its children's
    counts are summed. Returns None when no count is known anywhere.
    """
    by_id = {d.id: d for d in districts}
    children: Dict[str, List[District]] = defaultdict(list)
    for district in districts:
        if district.parent_id in by_id:
            children[district.parent_id].append(district)

    def total_for(district: District, seen: Set[str]) -> Optional[int]:
        if district.registered_voters is not None:
            return district.registered_voters
        seen.add(district.id)
        counts = [
            total_for(child, seen)
            for child in children.get(district.id, [])
            if child.id not in seen
        ]
        counts = [c for c in counts if c is not None]
        return sum(counts) if counts else None

    roots = [d for d in districts if d.parent_id not in by_id]
    totals = [total_for(root, set()) for root in roots]
    totals = [t for t in totals if t is not None]
    return sum(totals) if totals else None


def validate_district_hierarchy(districts: Sequence[District]) -> List[str]:
    """
    Check parent links of a district set.

    Returns:
        Human-readable problems; empty when the hierarchy is consistent
    """
    by_id = {d.id: d for d in districts}
    problems = []

    for district in districts:
        if not district.parent_id:
            continue

        parent = by_id.get(district.parent_id)
        if parent is None:
            problems.append(
                f"District {district.id} references missing parent {district.parent_id}"
            )
            continue

        if district.level.depth <= parent.level.depth:
            problems.append(
                f"District {district.id} ({district.level.value}) cannot sit under "
                f"{parent.id} ({parent.level.value})"
            )

    # Parent cycles
    for district in districts:
        seen = {district.id}
        current = by_id.get(district.parent_id) if district.parent_id else None
        while current is not None:
            if current.id in seen:
                problems.append(f"District {district.id} is part of a parent cycle")
                break
            seen.add(current.id)
            current = by_id.get(current.parent_id) if current.parent_id else None

    return problems


def aggregate_district(
    voters: Iterable[Voter],
    contacts: Iterable[Contact],
    district_id: str,
    config: Optional[AnalysisConfig] = None,
    district: Optional[District] = None,
    include_descendants: bool = False,
    districts: Optional[Sequence[District]] = None,
) -> DistrictBreakdown:
    """
    Compute the breakdown for one district.

    Args:
        voters: Campaign voters; only those assigned to the district count
        contacts: Campaign contacts, used to mark voters as contacted
        district_id: District to aggregate
        config: Turnout assumption and minimum sample size
        district: District record, for name and level
        include_descendants: Also count voters of sub-districts
        districts: All districts; required with include_descendants

    Returns:
        DistrictBreakdown; a district without voters has all rates and
        confidence at 0
    """
    config = config or AnalysisConfig()

    member_ids = {district_id}
    if include_descendants:
        if districts is None:
            raise ValueError("districts are required with include_descendants")
        member_ids = descendant_ids(districts, district_id)

    members = [v for v in voters if v.district_id in member_ids]
    contacted_ids = {c.voter_id for c in contacts}

    total = len(members)
    support = 0
    oppose = 0
    contacted = 0
    for voter in members:
        try:
            bucket = stance_bucket(voter.stance)
        except UnknownStanceError:
            bucket = "neutral"
        if bucket == "support":
            support += 1
        elif bucket == "oppose":
            oppose += 1

        if voter.contact_count > 0 or voter.id in contacted_ids:
            contacted += 1

    if total > 0:
        support_rate = support / total
        oppose_rate = oppose / total
        neutral_rate = max(0.0, 1.0 - support_rate - oppose_rate)
        contact_rate = contacted / total
        confidence = min(1.0, total / config.min_sample_size)
    else:
        support_rate = oppose_rate = neutral_rate = contact_rate = 0.0
        confidence = 0.0

    estimated_votes = total * support_rate * config.turnout_assumption

    return DistrictBreakdown(
        district_id=district_id,
        district_name=district.name if district else district_id,
        level=district.level.value if district else "",
        total_voters=total,
        support_rate=round(support_rate, 6),
        neutral_rate=round(neutral_rate, 6),
        oppose_rate=round(oppose_rate, 6),
        contact_rate=round(contact_rate, 6),
        estimated_votes=round(estimated_votes, 6),
        confidence=round(confidence, 6),
    )


def aggregate_districts(
    voters: Sequence[Voter],
    contacts: Sequence[Contact],
    districts: Sequence[District],
    config: Optional[AnalysisConfig] = None,
) -> List[DistrictBreakdown]:
    """Breakdown for every district, in the given district order."""
    config = config or AnalysisConfig()
    known = {d.id for d in districts}

    unassigned = sum(1 for v in voters if v.district_id not in known)
    if unassigned:
        logger.info(f"{unassigned} voters are not assigned to a known district")

    return [
        aggregate_district(voters, contacts, d.id, config, district=d)
        for d in districts
    ]
