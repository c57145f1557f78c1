#!/usr/bin/env python3
"""
Build a campaign analytics report from a loaded database and print it as JSON.
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from analysis.config import AnalysisConfig  # noqa: E402
from analysis.errors import AggregationError  # noqa: E402
from analysis.models import ReportPeriod, ReportType  # noqa: E402
from analysis.report import ReportBuilder  # noqa: E402
from data.database import CampaignDatabase  # noqa: E402
from data.repository import CampaignRepository  # noqa: E402

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Build a campaign analytics report")
    parser.add_argument("--db", required=True, help="Path to DuckDB database file")
    parser.add_argument("--campaign", required=True, help="Campaign id")
    parser.add_argument(
        "--type",
        default=ReportType.WEEKLY.value,
        choices=[t.value for t in ReportType],
        help="Report type (default: WEEKLY)",
    )
    parser.add_argument("--start", help="Period start (ISO date), CUSTOM reports only")
    parser.add_argument("--end", help="Period end (ISO date), CUSTOM reports only")
    parser.add_argument("--output", help="Write JSON to this file instead of stdout")
    args = parser.parse_args()

    db_path = Path(args.db)
    if not db_path.exists():
        logger.error(f"Database file not found: {db_path}")
        sys.exit(1)

    report_type = ReportType(args.type)
    period = None
    if args.start or args.end:
        if not (args.start and args.end):
            logger.error("--start and --end must be given together")
            sys.exit(1)
        period = ReportPeriod(
            start=datetime.fromisoformat(args.start),
            end=datetime.fromisoformat(args.end),
        )
    elif report_type == ReportType.CUSTOM:
        logger.error("CUSTOM reports need --start and --end")
        sys.exit(1)

    config = AnalysisConfig.from_env()
    try:
        with CampaignDatabase(str(db_path), read_only=True) as db:
            builder = ReportBuilder(CampaignRepository(db), config)
            report = builder.build_analytics_report(args.campaign, report_type, period)
    except AggregationError as e:
        logger.error(str(e))
        sys.exit(1)

    output = json.dumps(report.to_dict(), indent=2)
    if args.output:
        Path(args.output).write_text(output)
        logger.info(f"Report written to {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
