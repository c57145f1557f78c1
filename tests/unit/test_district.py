"""
District aggregation and hierarchy tests.
"""

import pytest

from analysis.config import AnalysisConfig
from analysis.district import (
    aggregate_district,
    aggregate_districts,
    descendant_ids,
    registered_voter_total,
    validate_district_hierarchy,
)
from analysis.models import District, DistrictLevel, Voter


@pytest.mark.unit
def test_sample_district_breakdown(sample_voters, sample_contacts, sample_districts):
    breakdown = aggregate_district(
        sample_voters, sample_contacts, "D1", district=sample_districts[1]
    )

    assert breakdown.district_name == "North"
    assert breakdown.level == "DISTRICT"
    assert breakdown.total_voters == 2
    assert breakdown.support_rate == 0.5
    assert breakdown.neutral_rate == 0.5
    assert breakdown.oppose_rate == 0.0
    assert breakdown.contact_rate == 1.0
    assert breakdown.estimated_votes == pytest.approx(0.7)
    assert breakdown.confidence == pytest.approx(2 / 30, abs=1e-6)


@pytest.mark.unit
def test_voter_counts_as_contacted_from_contact_rows(sample_voters, sample_contacts):
    # v4 has neither contact_count nor contact rows, v3 has both
    breakdown = aggregate_district(sample_voters, sample_contacts, "D2")
    assert breakdown.contact_rate == 0.5
    assert breakdown.oppose_rate == 0.5
    assert breakdown.estimated_votes == 0.0


@pytest.mark.unit
def test_empty_district_is_all_zero(sample_voters, sample_contacts):
    breakdown = aggregate_district(sample_voters, sample_contacts, "nowhere")

    assert breakdown.total_voters == 0
    assert breakdown.district_name == "nowhere"
    assert breakdown.level == ""
    for value in (
        breakdown.support_rate,
        breakdown.neutral_rate,
        breakdown.oppose_rate,
        breakdown.contact_rate,
        breakdown.estimated_votes,
        breakdown.confidence,
    ):
        assert value == 0.0


@pytest.mark.unit
@pytest.mark.invariant
def test_rates_sum_to_one_and_confidence_saturates():
    voters = [
        Voter(id=f"v{i}", campaign_id="c", name="x", stance=stance, district_id="D")
        for i, stance in enumerate(["SUPPORT", "OPPOSE", "UNDECIDED"] * 20)
    ]
    breakdown = aggregate_district(voters, [], "D", AnalysisConfig(min_sample_size=30))

    total = breakdown.support_rate + breakdown.neutral_rate + breakdown.oppose_rate
    assert total == pytest.approx(1.0, abs=1e-5)
    assert breakdown.confidence == 1.0


@pytest.mark.unit
def test_all_eight_stances_bucket_into_rates():
    stances = (
        ["STRONG_SUPPORT"] * 20
        + ["SUPPORT"] * 20
        + ["LEAN_SUPPORT"] * 20
        + ["NEUTRAL"] * 10
        + ["UNDECIDED"] * 10
        + ["LEAN_OPPOSE"] * 7
        + ["OPPOSE"] * 7
        + ["STRONG_OPPOSE"] * 6
    )
    voters = [
        Voter(id=f"v{i:03d}", campaign_id="c", name="x", stance=stance, district_id="D")
        for i, stance in enumerate(stances)
    ]
    breakdown = aggregate_district(voters, [], "D")

    assert breakdown.total_voters == 100
    assert breakdown.support_rate == 0.6
    assert breakdown.neutral_rate == 0.2
    assert breakdown.oppose_rate == 0.2
    assert breakdown.confidence == 1.0
    assert breakdown.estimated_votes == pytest.approx(42.0)


@pytest.mark.unit
def test_unknown_stance_counts_as_neutral():
    voters = [
        Voter(id="a", campaign_id="c", name="A", stance="SUPPORT", district_id="D"),
        Voter(id="b", campaign_id="c", name="B", stance="WHATEVER", district_id="D"),
    ]
    breakdown = aggregate_district(voters, [], "D")
    assert breakdown.support_rate == 0.5
    assert breakdown.neutral_rate == 0.5


@pytest.mark.unit
def test_descendants_roll_up(sample_voters, sample_contacts, sample_districts):
    assert descendant_ids(sample_districts, "C1") == {"C1", "D1", "D2"}

    city = aggregate_district(
        sample_voters,
        sample_contacts,
        "C1",
        include_descendants=True,
        districts=sample_districts,
    )
    assert city.total_voters == 4
    assert city.support_rate == 0.25

    with pytest.raises(ValueError):
        aggregate_district(sample_voters, sample_contacts, "C1", include_descendants=True)


@pytest.mark.unit
def test_aggregate_districts_keeps_district_order(sample_voters, sample_contacts, sample_districts):
    breakdowns = aggregate_districts(sample_voters, sample_contacts, sample_districts)
    assert [b.district_id for b in breakdowns] == ["C1", "D1", "D2"]
    assert breakdowns[0].total_voters == 0


@pytest.mark.unit
def test_registered_total_does_not_double_count(sample_districts):
    assert registered_voter_total(sample_districts) == 100

    without_city_count = [
        District(id="C1", name="City", level=DistrictLevel.CITY),
        *sample_districts[1:],
    ]
    assert registered_voter_total(without_city_count) == 100
    assert registered_voter_total([District(id="X", name="X", level=DistrictLevel.CITY)]) is None


@pytest.mark.unit
def test_hierarchy_validation(sample_districts):
    assert validate_district_hierarchy(sample_districts) == []

    broken = [
        District(id="C1", name="City", level=DistrictLevel.CITY),
        District(id="V1", name="Village", level=DistrictLevel.VILLAGE, parent_id="C1"),
        District(id="D9", name="Bad", level=DistrictLevel.DISTRICT, parent_id="V1"),
        District(id="N1", name="Lost", level=DistrictLevel.NEIGHBORHOOD, parent_id="gone"),
    ]
    problems = validate_district_hierarchy(broken)
    assert len(problems) == 2
    assert any("D9" in p and "cannot sit under" in p for p in problems)
    assert any("missing parent gone" in p for p in problems)


@pytest.mark.unit
def test_hierarchy_cycle_is_reported():
    cyclic = [
        District(id="A", name="A", level=DistrictLevel.DISTRICT, parent_id="B"),
        District(id="B", name="B", level=DistrictLevel.VILLAGE, parent_id="A"),
    ]
    problems = validate_district_hierarchy(cyclic)
    assert any("parent cycle" in p for p in problems)
