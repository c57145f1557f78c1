import logging
import os
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Query

try:
    from ..analysis.config import AnalysisConfig
    from ..analysis.district import aggregate_districts, validate_district_hierarchy
    from ..analysis.errors import AggregationError, VoterNotFoundError
    from ..analysis.graph import build_influence_graph
    from ..analysis.influence import build_key_person_report, compute_influence
    from ..analysis.models import ReportPeriod, convert_numpy_types
    from ..analysis.report import ReportBuilder, derive_votes_needed
    from ..analysis.stats import (
        compute_contact_stats,
        compute_heatmap,
        compute_stance_distribution,
        compute_trend,
        compute_voter_stats,
        default_period,
    )
    from ..analysis.probability import estimate_win_probability
    from ..data.database import CampaignDatabase
    from ..data.repository import CampaignRepository
    from .schemas import ReportRequest
except ImportError:
    from analysis.config import AnalysisConfig
    from analysis.district import aggregate_districts, validate_district_hierarchy
    from analysis.errors import AggregationError, VoterNotFoundError
    from analysis.graph import build_influence_graph
    from analysis.influence import build_key_person_report, compute_influence
    from analysis.models import ReportPeriod, convert_numpy_types
    from analysis.probability import estimate_win_probability
    from analysis.report import ReportBuilder, derive_votes_needed
    from analysis.stats import (
        compute_contact_stats,
        compute_heatmap,
        compute_stance_distribution,
        compute_trend,
        compute_voter_stats,
        default_period,
    )
    from data.database import CampaignDatabase
    from data.repository import CampaignRepository
    from web.schemas import ReportRequest

logger = logging.getLogger(__name__)

DATABASE_PATH_ENV = "CAMPAIGN_DATABASE_PATH"

app = FastAPI(
    title="Campaign Influence Analyzer",
    description="Voter influence, district and win-probability analytics",
)

# Global database path - connections are opened per request
db_path = None


def get_database() -> CampaignDatabase:
    """
    Get a read-only database for the configured path.
    Falls back to the CAMPAIGN_DATABASE_PATH environment variable.
    """
    path = db_path or os.environ.get(DATABASE_PATH_ENV)
    if not path:
        raise HTTPException(status_code=500, detail="Database not configured")
    return CampaignDatabase(path, read_only=True)


def set_database_path(path: str):
    """Set the database path for the application."""
    global db_path
    db_path = path
    os.environ[DATABASE_PATH_ENV] = path
    logger.info(f"Database path set to: {path}")

    # Test connection to ensure database is accessible
    with CampaignDatabase(path, read_only=True) as test_db:
        if not test_db.table_exists("voters"):
            logger.warning("Database has no voters table yet")
    logger.info("Database connection test successful")


def get_config(
    votes_needed: Optional[float] = None, turnout: Optional[float] = None
) -> AnalysisConfig:
    """Environment config with optional per-request overrides."""
    config = AnalysisConfig.from_env()
    overrides = {}
    if votes_needed is not None:
        overrides["votes_needed"] = votes_needed
    if turnout is not None:
        overrides["turnout_assumption"] = turnout
    return replace(config, **overrides) if overrides else config


@contextmanager
def campaign_repository(campaign_id: str):
    """Open a repository for one request and make sure the campaign exists."""
    database = get_database()
    try:
        repository = CampaignRepository(database)
        if not repository.has_data():
            raise HTTPException(status_code=400, detail="No data loaded")
        if repository.count_voters(campaign_id) == 0:
            raise HTTPException(
                status_code=404, detail=f"Campaign {campaign_id} not found"
            )
        yield repository
    finally:
        database.close()


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/campaigns")
async def list_campaigns():
    database = get_database()
    try:
        repository = CampaignRepository(database)
        if not repository.has_data():
            raise HTTPException(status_code=400, detail="No data loaded")
        return {"campaigns": repository.list_campaigns()}
    finally:
        database.close()


@app.get("/api/analysis/overview")
async def get_overview(campaign_id: str):
    """Voter, contact and stance overview."""
    config = get_config()
    with campaign_repository(campaign_id) as repository:
        voters = repository.get_voters(campaign_id)
        contacts = repository.get_contacts(campaign_id)
        districts = repository.get_districts(campaign_id)

    warnings = []
    return convert_numpy_types(
        {
            "campaign_id": campaign_id,
            "timestamp": datetime.now(),
            "voter_stats": compute_voter_stats(
                voters, districts, config, warnings
            ).to_dict(),
            "contact_stats": compute_contact_stats(
                voters, contacts, datetime.now()
            ).to_dict(),
            "stance_distribution": compute_stance_distribution(
                voters, warnings, config.stance_fallback
            ).to_dict(),
            "warnings": warnings,
        }
    )


@app.get("/api/analysis/stance")
async def get_stance_distribution(campaign_id: str):
    config = get_config()
    with campaign_repository(campaign_id) as repository:
        voters = repository.get_voters(campaign_id)
    return compute_stance_distribution(
        voters, fallback_to_neutral=config.stance_fallback
    ).to_dict()


@app.get("/api/analysis/district")
async def get_district_analysis(
    campaign_id: str, turnout: Optional[float] = Query(None, ge=0, le=1)
):
    """Per-district breakdowns plus hierarchy consistency problems."""
    config = get_config(turnout=turnout)
    with campaign_repository(campaign_id) as repository:
        voters = repository.get_voters(campaign_id)
        contacts = repository.get_contacts(campaign_id)
        districts = repository.get_districts(campaign_id)

    breakdowns = aggregate_districts(voters, contacts, districts, config)
    return {
        "campaign_id": campaign_id,
        "districts": [b.to_dict() for b in breakdowns],
        "hierarchy_problems": validate_district_hierarchy(districts),
    }


@app.get("/api/analysis/trend")
async def get_trend_analysis(campaign_id: str, days: int = Query(30, ge=1, le=366)):
    with campaign_repository(campaign_id) as repository:
        voters = repository.get_voters(campaign_id)
        contacts = repository.get_contacts(campaign_id)

    period = default_period(datetime.now(), days)
    trend = compute_trend(voters, contacts, period)
    return {
        "period": period.to_dict(),
        "trend": [point.to_dict() for point in trend],
    }


@app.get("/api/analysis/win-probability")
async def get_win_probability(
    campaign_id: str,
    votes_needed: Optional[float] = Query(None, ge=0),
    turnout: Optional[float] = Query(None, ge=0, le=1),
):
    config = get_config(votes_needed=votes_needed, turnout=turnout)
    with campaign_repository(campaign_id) as repository:
        voters = repository.get_voters(campaign_id)
        contacts = repository.get_contacts(campaign_id)
        districts = repository.get_districts(campaign_id)

    breakdowns = aggregate_districts(voters, contacts, districts, config)
    win_probability = estimate_win_probability(
        breakdowns,
        derive_votes_needed(voters, districts, config),
        config,
        stance_distribution=compute_stance_distribution(
            voters, fallback_to_neutral=config.stance_fallback
        ),
        contact_stats=compute_contact_stats(voters, contacts, datetime.now()),
    )
    return win_probability.to_dict()


@app.get("/api/analysis/influence")
async def get_influence_analysis(campaign_id: str, limit: int = Query(20, ge=1, le=500)):
    """Key person report over the campaign's relationship graph."""
    config = get_config()
    with campaign_repository(campaign_id) as repository:
        voters = repository.get_voters(campaign_id)
        relationships = repository.get_relationships(campaign_id)

    result = build_influence_graph(
        voters, relationships, config.symmetric_relationships
    )
    report = build_key_person_report(result.graph, config, limit)
    return {
        **report.to_dict(),
        "warnings": [w.to_dict() for w in result.warnings],
    }


@app.get("/api/analysis/influence/{voter_id}")
async def get_voter_influence(voter_id: str, campaign_id: str):
    config = get_config()
    with campaign_repository(campaign_id) as repository:
        voters = repository.get_voters(campaign_id)
        relationships = repository.get_relationships(campaign_id)

    result = build_influence_graph(
        voters, relationships, config.symmetric_relationships
    )
    try:
        analysis = compute_influence(result.graph, voter_id, config)
    except VoterNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return analysis.to_dict()


@app.get("/api/analysis/heatmap")
async def get_heatmap(campaign_id: str):
    with campaign_repository(campaign_id) as repository:
        voters = repository.get_voters(campaign_id)
    return compute_heatmap(voters).to_dict()


@app.post("/api/analysis/report")
async def generate_report(request: ReportRequest):
    """Build a full analytics report with insights."""
    config = get_config(votes_needed=request.votes_needed, turnout=request.turnout)
    period = None
    if request.start is not None and request.end is not None:
        period = ReportPeriod(start=request.start, end=request.end)

    with campaign_repository(request.campaign_id) as repository:
        builder = ReportBuilder(repository, config)
        try:
            report = builder.build_analytics_report(
                request.campaign_id, request.report_type, period
            )
        except AggregationError as e:
            raise HTTPException(status_code=500, detail=f"Report generation failed: {e}")

    return report.to_dict()
