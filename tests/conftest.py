"""
Shared pytest configuration and fixtures for campaign-influence-analyzer.

This module provides a small sample campaign used across unit,
integration and web tests.
"""

import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from analysis.models import (  # noqa: E402
    Contact,
    District,
    DistrictLevel,
    Voter,
    VoterRelationship,
)
from data.database import CampaignDatabase  # noqa: E402
from data.loader import CampaignDataLoader  # noqa: E402

CAMPAIGN_ID = "camp-1"


@pytest.fixture
def temp_db():
    """Provide a temporary in-memory database with the campaign schema."""
    db = CampaignDatabase(":memory:", read_only=False)
    db.create_schema()
    yield db
    db.close()


@pytest.fixture
def temp_db_file():
    """Provide a temporary database file path for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    os.unlink(db_path)  # Let DuckDB create the file

    try:
        yield db_path
    finally:
        for path in (db_path, db_path + ".wal"):
            if os.path.exists(path):
                os.unlink(path)


@pytest.fixture
def sample_districts():
    """City C1 with two districts below it."""
    return [
        District(id="C1", name="Harbor City", level=DistrictLevel.CITY, registered_voters=100),
        District(
            id="D1",
            name="North",
            level=DistrictLevel.DISTRICT,
            parent_id="C1",
            registered_voters=60,
        ),
        District(
            id="D2",
            name="South",
            level=DistrictLevel.DISTRICT,
            parent_id="C1",
            registered_voters=40,
        ),
    ]


@pytest.fixture
def sample_voters():
    """Four voters across D1 and D2; Alice and Bob share coordinates."""
    return [
        Voter(
            id="v1",
            campaign_id=CAMPAIGN_ID,
            name="Alice",
            stance="STRONG_SUPPORT",
            influence_score=80,
            district_id="D1",
            latitude=25.0,
            longitude=121.5,
            contact_count=2,
            created_at=datetime(2024, 3, 1, 9, 0),
        ),
        Voter(
            id="v2",
            campaign_id=CAMPAIGN_ID,
            name="Bob",
            stance="UNDECIDED",
            influence_score=60,
            district_id="D1",
            latitude=25.0,
            longitude=121.5,
            created_at=datetime(2024, 3, 11, 10, 0),
        ),
        Voter(
            id="v3",
            campaign_id=CAMPAIGN_ID,
            name="Carol",
            stance="OPPOSE",
            influence_score=20,
            district_id="D2",
            latitude=25.1,
            longitude=121.6,
            contact_count=1,
        ),
        Voter(
            id="v4",
            campaign_id=CAMPAIGN_ID,
            name="Dave",
            stance="NEUTRAL",
            influence_score=50,
            district_id="D2",
            created_at=datetime(2024, 3, 12, 8, 0),
        ),
    ]


@pytest.fixture
def sample_relationships():
    """Three usable edges, one duplicate of r1 and one dangling reference."""
    return [
        VoterRelationship(id="r1", source_voter_id="v1", target_voter_id="v2", relation_type="FAMILY", influence_weight=60),
        VoterRelationship(id="r2", source_voter_id="v2", target_voter_id="v3", relation_type="FRIEND", influence_weight=40),
        VoterRelationship(id="r3", source_voter_id="v1", target_voter_id="v4", relation_type="NEIGHBOR", influence_weight=50),
        VoterRelationship(id="r4", source_voter_id="v1", target_voter_id="v2", relation_type="FAMILY", influence_weight=70),
        VoterRelationship(id="r5", source_voter_id="v3", target_voter_id="v9", relation_type="FRIEND", influence_weight=30),
    ]


@pytest.fixture
def sample_contacts():
    return [
        Contact(id="c3", voter_id="v3", campaign_id=CAMPAIGN_ID, type="HOME_VISIT", outcome="NEGATIVE", contact_date=datetime(2024, 3, 5, 15, 0)),
        Contact(id="c1", voter_id="v1", campaign_id=CAMPAIGN_ID, type="HOME_VISIT", outcome="POSITIVE", contact_date=datetime(2024, 3, 10, 11, 0)),
        Contact(id="c2", voter_id="v2", campaign_id=CAMPAIGN_ID, type="PHONE_CALL", outcome="NO_RESPONSE", contact_date=datetime(2024, 3, 12, 18, 30)),
    ]


def _frame(records, columns=None):
    rows = []
    for record in records:
        row = record.to_dict()
        if columns:
            row = {k: row[k] for k in columns}
        rows.append(row)
    return pd.DataFrame(rows)


@pytest.fixture
def sample_csv_dir(tmp_path, sample_districts, sample_voters, sample_relationships, sample_contacts):
    """Write the sample campaign as the CSV exports the loader expects."""
    _frame(sample_districts).to_csv(tmp_path / "districts.csv", index=False)
    _frame(sample_voters).to_csv(tmp_path / "voters.csv", index=False)

    relationships = _frame(sample_relationships)
    relationships["campaign_id"] = CAMPAIGN_ID
    relationships.to_csv(tmp_path / "relationships.csv", index=False)

    _frame(sample_contacts).to_csv(tmp_path / "contacts.csv", index=False)
    return tmp_path


@pytest.fixture
def loaded_db_file(temp_db_file, sample_csv_dir):
    """A DuckDB file holding the sample campaign; the writer is closed."""
    with CampaignDataLoader(temp_db_file) as loader:
        loader.load_directory(str(sample_csv_dir))
    return temp_db_file


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (medium speed, database required)",
    )
    config.addinivalue_line(
        "markers",
        "golden: marks tests as golden dataset validation (hand-computed expectations)",
    )
    config.addinivalue_line(
        "markers", "invariant: marks tests as mathematical invariant validation"
    )
    config.addinivalue_line(
        "markers", "smoke: marks tests as smoke tests (basic functionality check)"
    )
