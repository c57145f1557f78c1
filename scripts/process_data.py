#!/usr/bin/env python3
"""
Data loading pipeline for campaign exports.
Loads districts, voters, relationships and contacts CSVs into DuckDB.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from data.loader import CampaignDataLoader  # noqa: E402

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Load campaign CSV exports")
    parser.add_argument(
        "data_dir",
        help="Directory holding districts.csv, voters.csv, relationships.csv, contacts.csv",
    )
    parser.add_argument(
        "--db", help="Path to DuckDB database file (default: in-memory)"
    )
    args = parser.parse_args()

    data_dir = Path(args.data_dir)
    if not data_dir.is_dir():
        logger.error(f"Data directory not found: {data_dir}")
        sys.exit(1)

    try:
        with CampaignDataLoader(args.db) as loader:
            logger.info("=== Step 1: Loading CSV files ===")
            results = loader.load_directory(str(data_dir))
            if not results:
                logger.error(f"No campaign CSV files found in {data_dir}")
                sys.exit(1)

            for table, stats in results.items():
                print(f"✓ {table}: loaded {stats['loaded']} of {stats['total_rows']} rows")
                for key, value in stats.items():
                    if key not in ("loaded", "total_rows") and value:
                        print(f"  ⚠️  {key}: {value}")

            logger.info("=== Step 2: Summary Statistics ===")
            summary = loader.get_summary_statistics()
            print("\nSummary:")
            for _, row in summary.iterrows():
                print(f"  {row['metric']}: {row['value']}")

    except (OSError, ValueError) as e:
        logger.error(f"Error processing data: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
