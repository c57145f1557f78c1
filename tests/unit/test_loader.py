"""
CSV loader tests: validation counts and what ends up in DuckDB.
"""

import pandas as pd
import pytest

from data.loader import CampaignDataLoader


def _write(path, rows):
    pd.DataFrame(rows).to_csv(path, index=False)
    return str(path)


@pytest.mark.unit
def test_load_sample_directory(sample_csv_dir):
    with CampaignDataLoader() as loader:
        results = loader.load_directory(str(sample_csv_dir))

        assert set(results) == {"districts", "voters", "voter_relationships", "contacts"}
        assert results["districts"]["loaded"] == 3
        assert results["voters"]["loaded"] == 4
        # Duplicate and dangling edges are stored; the graph builder reports them
        assert results["voter_relationships"]["loaded"] == 5
        assert results["contacts"]["loaded"] == 3

        summary = loader.get_summary_statistics()
        values = dict(zip(summary["metric"], summary["value"]))
        assert values["voters_rows"] == 4
        assert values["campaigns"] == 1


@pytest.mark.unit
def test_voter_validation(tmp_path):
    path = _write(
        tmp_path / "voters.csv",
        [
            {"id": "a", "campaign_id": "c", "name": "A", "stance": "support", "influence_score": 150},
            {"id": "b", "campaign_id": "c", "name": "B", "stance": "SWING", "influence_score": -3},
            {"id": "b", "campaign_id": "c", "name": "B2", "stance": "OPPOSE", "influence_score": 10},
            {"id": "d", "campaign_id": "c", "name": "D", "stance": None, "influence_score": None},
        ],
    )
    with CampaignDataLoader() as loader:
        stats = loader.load_voters(path)
        rows = loader.db.query("SELECT id, stance, influence_score FROM voters ORDER BY id")

    assert stats["duplicate_ids"] == 1
    assert stats["unknown_stances"] == 1
    assert stats["clipped_influence_scores"] == 2
    assert stats["loaded"] == 3
    assert rows["stance"].tolist() == ["SUPPORT", "SWING", "UNDECIDED"]
    assert rows["influence_score"].tolist() == [100, 0, 0]


@pytest.mark.unit
def test_district_levels_validated(tmp_path):
    path = _write(
        tmp_path / "districts.csv",
        [
            {"id": "C1", "name": "City", "level": "city", "parent_id": None},
            {"id": "X1", "name": "Ward", "level": "WARD", "parent_id": "C1"},
        ],
    )
    with CampaignDataLoader() as loader:
        stats = loader.load_districts(path)

    assert stats["invalid_levels"] == 1
    assert stats["loaded"] == 1


@pytest.mark.unit
def test_relationship_defaults(tmp_path):
    path = _write(
        tmp_path / "relationships.csv",
        [
            {"id": "r1", "campaign_id": "c", "source_voter_id": "a", "target_voter_id": "b", "relation_type": "cousin", "influence_weight": None},
            {"id": "r2", "campaign_id": "c", "source_voter_id": "b", "target_voter_id": "a", "relation_type": "friend", "influence_weight": 140},
        ],
    )
    with CampaignDataLoader() as loader:
        stats = loader.load_relationships(path)
        rows = loader.db.query(
            "SELECT relation_type, influence_weight FROM voter_relationships ORDER BY id"
        )

    assert stats["unknown_relation_types"] == 1
    assert stats["out_of_range_weights"] == 1
    assert rows["relation_type"].tolist() == ["OTHER", "FRIEND"]
    assert rows["influence_weight"].tolist() == [50, 140]


@pytest.mark.unit
def test_contacts_with_bad_dates_are_dropped(tmp_path):
    path = _write(
        tmp_path / "contacts.csv",
        [
            {"id": "c1", "campaign_id": "c", "voter_id": "a", "type": "HOME_VISIT", "outcome": "POSITIVE", "contact_date": "2024-03-10T11:00:00Z"},
            {"id": "c2", "campaign_id": "c", "voter_id": "a", "type": "CARRIER_PIGEON", "outcome": "POSITIVE", "contact_date": "not a date"},
            {"id": "c3", "campaign_id": "c", "voter_id": "a", "type": "CARRIER_PIGEON", "outcome": "MAYBE", "contact_date": "2024-03-11 08:00:00"},
        ],
    )
    with CampaignDataLoader() as loader:
        stats = loader.load_contacts(path)
        rows = loader.db.query("SELECT id, contact_date FROM contacts ORDER BY id")

    assert stats["invalid_dates"] == 1
    assert stats["unknown_types"] == 1
    assert stats["unknown_outcomes"] == 1
    assert stats["loaded"] == 2
    assert rows["id"].tolist() == ["c1", "c3"]
    assert rows.iloc[0]["contact_date"] == pd.Timestamp("2024-03-10 11:00:00")


@pytest.mark.unit
def test_missing_file_and_columns(tmp_path):
    with CampaignDataLoader() as loader:
        with pytest.raises(FileNotFoundError):
            loader.load_voters(str(tmp_path / "nope.csv"))

        path = _write(tmp_path / "voters.csv", [{"id": "a", "name": "A"}])
        with pytest.raises(ValueError, match="campaign_id"):
            loader.load_voters(path)


@pytest.mark.unit
def test_missing_files_are_skipped(tmp_path):
    with CampaignDataLoader() as loader:
        assert loader.load_directory(str(tmp_path)) == {}
