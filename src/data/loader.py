import logging
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

try:
    from ..analysis.models import (
        ContactOutcome,
        ContactType,
        DistrictLevel,
        PoliticalStance,
        RelationType,
    )
    from .database import CampaignDatabase
except ImportError:
    from analysis.models import (
        ContactOutcome,
        ContactType,
        DistrictLevel,
        PoliticalStance,
        RelationType,
    )
    from data.database import CampaignDatabase

logger = logging.getLogger(__name__)

# Column name -> DuckDB type used when casting CSV text on insert
TABLE_COLUMNS = {
    "districts": {
        "id": "VARCHAR",
        "name": "VARCHAR",
        "level": "VARCHAR",
        "parent_id": "VARCHAR",
        "registered_voters": "INTEGER",
    },
    "voters": {
        "id": "VARCHAR",
        "campaign_id": "VARCHAR",
        "name": "VARCHAR",
        "stance": "VARCHAR",
        "influence_score": "INTEGER",
        "political_party": "VARCHAR",
        "city": "VARCHAR",
        "district_name": "VARCHAR",
        "village": "VARCHAR",
        "neighborhood": "VARCHAR",
        "district_id": "VARCHAR",
        "latitude": "DOUBLE",
        "longitude": "DOUBLE",
        "contact_count": "INTEGER",
        "last_contact_at": "TIMESTAMP",
        "created_at": "TIMESTAMP",
    },
    "voter_relationships": {
        "id": "VARCHAR",
        "campaign_id": "VARCHAR",
        "source_voter_id": "VARCHAR",
        "target_voter_id": "VARCHAR",
        "relation_type": "VARCHAR",
        "influence_weight": "INTEGER",
        "created_at": "TIMESTAMP",
    },
    "contacts": {
        "id": "VARCHAR",
        "campaign_id": "VARCHAR",
        "voter_id": "VARCHAR",
        "type": "VARCHAR",
        "outcome": "VARCHAR",
        "contact_date": "TIMESTAMP",
    },
}

REQUIRED_COLUMNS = {
    "districts": ["id", "name", "level"],
    "voters": ["id", "campaign_id", "name"],
    "voter_relationships": [
        "id",
        "campaign_id",
        "source_voter_id",
        "target_voter_id",
    ],
    "contacts": ["id", "campaign_id", "voter_id", "type", "outcome", "contact_date"],
}

# Default CSV file names inside a data directory, in load order
DATA_FILES = [
    ("districts", "districts.csv"),
    ("voters", "voters.csv"),
    ("voter_relationships", "relationships.csv"),
    ("contacts", "contacts.csv"),
]

STANCE_VALUES = {s.value for s in PoliticalStance}
RELATION_VALUES = {r.value for r in RelationType}
CONTACT_TYPE_VALUES = {t.value for t in ContactType}
OUTCOME_VALUES = {o.value for o in ContactOutcome}
LEVEL_VALUES = {lvl.value for lvl in DistrictLevel}


class CampaignDataLoader:
    """
    Loads campaign CSV exports into DuckDB for analysis.
    Validates each file and reports what was dropped or flagged.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize loader.

        Args:
            db_path: Path to DuckDB database file (default: in-memory)
        """
        self.db = CampaignDatabase(db_path, read_only=False)
        self.db.create_schema()

    def _read_csv(self, csv_path: str, table: str) -> pd.DataFrame:
        path = Path(csv_path)
        if not path.exists():
            raise FileNotFoundError(f"CSV file not found: {path}")

        logger.info(f"Loading {table} from: {path}")
        df = pd.read_csv(path, dtype=str, skipinitialspace=True)
        df.columns = [c.strip() for c in df.columns]

        missing = [c for c in REQUIRED_COLUMNS[table] if c not in df.columns]
        if missing:
            raise ValueError(f"{path.name} is missing required columns: {missing}")

        for column in TABLE_COLUMNS[table]:
            if column not in df.columns:
                df[column] = None

        return df

    def _insert(self, table: str, df: pd.DataFrame) -> int:
        columns = TABLE_COLUMNS[table]
        df = df[list(columns)].astype(object)
        df = df.where(pd.notna(df), None)

        select_list = ", ".join(
            f'CAST("{name}" AS {sql_type}) AS "{name}"' for name, sql_type in columns.items()
        )
        column_list = ", ".join(f'"{name}"' for name in columns)

        self.db.conn.register("incoming_rows", df)
        try:
            self.db.conn.execute(
                f"INSERT OR REPLACE INTO {table} ({column_list}) "
                f"SELECT {select_list} FROM incoming_rows"
            )
        finally:
            self.db.conn.unregister("incoming_rows")

        logger.info(f"Inserted {len(df)} rows into {table}")
        return len(df)

    def _drop_duplicate_ids(self, df: pd.DataFrame, table: str, stats: Dict[str, int]):
        duplicates = int(df["id"].duplicated().sum())
        stats["duplicate_ids"] = duplicates
        if duplicates:
            logger.warning(f"Dropping {duplicates} duplicate ids from {table}")
        return df.drop_duplicates(subset="id", keep="first")

    def load_districts(self, csv_path: str) -> Dict[str, int]:
        df = self._read_csv(csv_path, "districts")
        stats = {"total_rows": len(df)}
        df = self._drop_duplicate_ids(df, "districts", stats)

        df["level"] = df["level"].str.upper()
        invalid = ~df["level"].isin(LEVEL_VALUES)
        stats["invalid_levels"] = int(invalid.sum())
        if stats["invalid_levels"]:
            logger.warning(f"Dropping {stats['invalid_levels']} districts with unknown level")
        df = df[~invalid]

        stats["loaded"] = self._insert("districts", df)
        return stats

    def load_voters(self, csv_path: str) -> Dict[str, int]:
        df = self._read_csv(csv_path, "voters")
        stats = {"total_rows": len(df)}
        df = self._drop_duplicate_ids(df, "voters", stats)

        df["stance"] = df["stance"].fillna(PoliticalStance.UNDECIDED.value).str.upper()
        unknown = ~df["stance"].isin(STANCE_VALUES)
        stats["unknown_stances"] = int(unknown.sum())
        if stats["unknown_stances"]:
            # Kept: analysis excludes them from stance averages with a warning
            logger.warning(f"{stats['unknown_stances']} voters have an unknown stance")

        scores = pd.to_numeric(df["influence_score"], errors="coerce").fillna(0)
        stats["clipped_influence_scores"] = int(((scores < 0) | (scores > 100)).sum())
        df["influence_score"] = scores.clip(0, 100).round().astype(int)
        df["contact_count"] = (
            pd.to_numeric(df["contact_count"], errors="coerce").fillna(0).astype(int)
        )

        stats["loaded"] = self._insert("voters", df)
        return stats

    def load_relationships(self, csv_path: str) -> Dict[str, int]:
        df = self._read_csv(csv_path, "voter_relationships")
        stats = {"total_rows": len(df)}
        df = self._drop_duplicate_ids(df, "voter_relationships", stats)

        df["relation_type"] = (
            df["relation_type"].fillna(RelationType.OTHER.value).str.upper()
        )
        unknown = ~df["relation_type"].isin(RELATION_VALUES)
        stats["unknown_relation_types"] = int(unknown.sum())
        df.loc[unknown, "relation_type"] = RelationType.OTHER.value

        weights = pd.to_numeric(df["influence_weight"], errors="coerce").fillna(50)
        stats["out_of_range_weights"] = int(((weights < 0) | (weights > 100)).sum())
        if stats["out_of_range_weights"]:
            logger.warning(
                f"{stats['out_of_range_weights']} relationships have weights outside 0-100"
            )
        df["influence_weight"] = weights.round().astype(int)

        stats["loaded"] = self._insert("voter_relationships", df)
        return stats

    def load_contacts(self, csv_path: str) -> Dict[str, int]:
        df = self._read_csv(csv_path, "contacts")
        stats = {"total_rows": len(df)}
        df = self._drop_duplicate_ids(df, "contacts", stats)

        dates = pd.to_datetime(
            df["contact_date"], errors="coerce", utc=True, format="mixed"
        ).dt.tz_localize(None)
        stats["invalid_dates"] = int(dates.isna().sum())
        df = df[dates.notna()].copy()
        df["contact_date"] = dates[dates.notna()].dt.strftime("%Y-%m-%d %H:%M:%S")

        stats["unknown_types"] = int((~df["type"].isin(CONTACT_TYPE_VALUES)).sum())
        stats["unknown_outcomes"] = int((~df["outcome"].isin(OUTCOME_VALUES)).sum())
        for key in ("invalid_dates", "unknown_types", "unknown_outcomes"):
            if stats[key]:
                logger.warning(f"contacts: {stats[key]} rows flagged as {key}")

        stats["loaded"] = self._insert("contacts", df)
        return stats

    def load_directory(self, data_dir: str) -> Dict[str, Dict[str, int]]:
        """
        Load every known CSV present in a directory.

        Returns:
            Load statistics per table
        """
        loaders = {
            "districts": self.load_districts,
            "voters": self.load_voters,
            "voter_relationships": self.load_relationships,
            "contacts": self.load_contacts,
        }

        results = {}
        for table, file_name in DATA_FILES:
            path = Path(data_dir) / file_name
            if path.exists():
                results[table] = loaders[table](str(path))
            else:
                logger.info(f"No {file_name} in {data_dir}, skipping {table}")
        return results

    def get_summary_statistics(self) -> pd.DataFrame:
        """Row counts per table as metric/value pairs."""
        rows: List[Dict[str, object]] = []
        for table in TABLE_COLUMNS:
            count = self.db.query(f"SELECT COUNT(*) AS n FROM {table}").iloc[0]["n"]
            rows.append({"metric": f"{table}_rows", "value": int(count)})

        campaigns = self.db.query("SELECT COUNT(DISTINCT campaign_id) AS n FROM voters")
        rows.append({"metric": "campaigns", "value": int(campaigns.iloc[0]["n"])})
        return pd.DataFrame(rows)

    def close(self):
        self.db.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
