"""
Campaign-keyed data access.

Reads voters, relationships, contacts and districts from DuckDB and turns
rows into the analysis records. Row order is fixed by each query so that
repeated reads of the same data produce the same analysis output.
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

try:
    from ..analysis.models import (
        Contact,
        District,
        DistrictLevel,
        Voter,
        VoterRelationship,
    )
    from .database import CampaignDatabase
except ImportError:
    from analysis.models import Contact, District, DistrictLevel, Voter, VoterRelationship
    from data.database import CampaignDatabase

logger = logging.getLogger(__name__)


def _clean(value: Any) -> Any:
    """Turn pandas missing values into None and timestamps into datetimes."""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    return [
        {key: _clean(value) for key, value in row.items()}
        for row in df.to_dict("records")
    ]


class CampaignRepository:
    """Data-access layer for one DuckDB campaign database."""

    def __init__(self, db: CampaignDatabase):
        self.db = db

    def has_data(self) -> bool:
        return self.db.table_exists("voters")

    def list_campaigns(self) -> List[str]:
        df = self.db.query(
            "SELECT DISTINCT campaign_id FROM voters ORDER BY campaign_id"
        )
        return df["campaign_id"].tolist()

    def count_voters(self, campaign_id: str) -> int:
        df = self.db.query(
            "SELECT COUNT(*) AS n FROM voters WHERE campaign_id = ?", [campaign_id]
        )
        return int(df.iloc[0]["n"])

    def get_voters(self, campaign_id: str) -> List[Voter]:
        df = self.db.query(
            """
            SELECT
                id, campaign_id, name, stance, influence_score, political_party,
                city, district_name, village, neighborhood, district_id,
                latitude, longitude, contact_count, last_contact_at, created_at
            FROM voters
            WHERE campaign_id = ?
            ORDER BY id
            """,
            [campaign_id],
        )

        voters = []
        for row in _records(df):
            row["influence_score"] = int(row["influence_score"] or 0)
            row["contact_count"] = int(row["contact_count"] or 0)
            for key in ("latitude", "longitude"):
                if row[key] is not None:
                    row[key] = float(row[key])
            voters.append(Voter(**row))

        logger.debug(f"Loaded {len(voters)} voters for campaign {campaign_id}")
        return voters

    def get_relationships(self, campaign_id: str) -> List[VoterRelationship]:
        """Relationships in insertion order."""
        df = self.db.query(
            """
            SELECT
                id, source_voter_id, target_voter_id, relation_type,
                influence_weight, created_at
            FROM voter_relationships
            WHERE campaign_id = ?
            ORDER BY rowid
            """,
            [campaign_id],
        )

        relationships = []
        for row in _records(df):
            row["influence_weight"] = int(row["influence_weight"])
            relationships.append(VoterRelationship(**row))
        return relationships

    def get_contacts(
        self,
        campaign_id: str,
        start: Optional[pd.Timestamp] = None,
        end: Optional[pd.Timestamp] = None,
    ) -> List[Contact]:
        sql = """
            SELECT id, voter_id, campaign_id, type, outcome, contact_date
            FROM contacts
            WHERE campaign_id = ?
        """
        params: List[Any] = [campaign_id]
        if start is not None:
            sql += " AND contact_date >= ?"
            params.append(start)
        if end is not None:
            sql += " AND contact_date <= ?"
            params.append(end)
        sql += " ORDER BY contact_date, id"

        return [Contact(**row) for row in _records(self.db.query(sql, params))]

    def get_districts(self, campaign_id: str) -> List[District]:
        """Districts the campaign's voters sit in, plus their ancestors."""
        df = self.db.query(
            """
            WITH RECURSIVE campaign_districts(id) AS (
                SELECT DISTINCT district_id
                FROM voters
                WHERE campaign_id = ? AND district_id IS NOT NULL
                UNION
                SELECT d.parent_id
                FROM districts d
                JOIN campaign_districts cd ON d.id = cd.id
                WHERE d.parent_id IS NOT NULL
            )
            SELECT id, name, level, parent_id, registered_voters
            FROM districts
            WHERE id IN (SELECT id FROM campaign_districts)
            ORDER BY id
            """,
            [campaign_id],
        )

        districts = []
        for row in _records(df):
            row["level"] = DistrictLevel(row["level"])
            if row["registered_voters"] is not None:
                row["registered_voters"] = int(row["registered_voters"])
            districts.append(District(**row))
        return districts

    def update_influence_scores(self, scores: Dict[str, int]) -> int:
        """Write recomputed influence scores back; needs a read-write database."""
        rows = [(int(score), voter_id) for voter_id, score in sorted(scores.items())]
        if not rows:
            return 0
        self.db.conn.executemany(
            "UPDATE voters SET influence_score = ? WHERE id = ?", rows
        )
        logger.info(f"Updated influence scores for {len(rows)} voters")
        return len(rows)
