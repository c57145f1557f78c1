"""
Basic database functionality unit tests.

These tests verify core database operations and the campaign schema
without requiring external data files.
"""

import duckdb
import pandas as pd
import pytest

from data.database import CampaignDatabase


@pytest.mark.unit
def test_database_creation(temp_db):
    """Test that database can be created and closed."""
    assert temp_db is not None
    assert temp_db.conn is not None


@pytest.mark.unit
def test_basic_query(temp_db):
    result = temp_db.query("SELECT 1 as test_value")
    assert isinstance(result, pd.DataFrame)
    assert len(result) == 1
    assert result.iloc[0]["test_value"] == 1


@pytest.mark.unit
def test_parameterized_query(temp_db):
    result = temp_db.query("SELECT ? AS a, ? AS b", ["x", 2])
    assert result.iloc[0]["a"] == "x"
    assert result.iloc[0]["b"] == 2


@pytest.mark.unit
def test_schema_tables_exist(temp_db):
    for table in ("districts", "voters", "voter_relationships", "contacts"):
        assert temp_db.table_exists(table)
    assert not temp_db.table_exists("precincts")


@pytest.mark.unit
def test_create_schema_is_idempotent(temp_db):
    temp_db.create_schema()
    assert temp_db.table_exists("voters")


@pytest.mark.unit
def test_table_info(temp_db):
    info = temp_db.get_table_info("voters")
    columns = set(info["column_name"])
    assert {"id", "campaign_id", "stance", "influence_score", "district_id"} <= columns

    with pytest.raises(ValueError):
        temp_db.get_table_info("missing_table")


@pytest.mark.unit
def test_missing_script_raises(temp_db):
    with pytest.raises(FileNotFoundError):
        temp_db.execute_script("99_does_not_exist")


@pytest.mark.unit
def test_sql_error_propagates(temp_db):
    with pytest.raises(duckdb.Error):
        temp_db.query("SELECT * FROM nowhere")


@pytest.mark.unit
def test_read_only_file_database(temp_db_file):
    with CampaignDatabase(temp_db_file, read_only=False) as writer:
        writer.create_schema()

    with CampaignDatabase(temp_db_file, read_only=True) as reader:
        assert reader.table_exists("voters")
        with pytest.raises(duckdb.Error):
            reader.conn.execute("DELETE FROM voters")


@pytest.mark.unit
def test_query_with_temporary_connection(temp_db_file):
    with CampaignDatabase(temp_db_file, read_only=False) as writer:
        writer.create_schema()

    db = CampaignDatabase(temp_db_file, read_only=True)
    result = db.query("SELECT COUNT(*) AS n FROM voters", use_temporary_connection=True)
    assert result.iloc[0]["n"] == 0
    assert db._conn is None
    db.close()
