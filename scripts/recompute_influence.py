#!/usr/bin/env python3
"""
Recompute voter influence scores from the relationship graph and store them.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from analysis.config import AnalysisConfig  # noqa: E402
from analysis.graph import build_influence_graph  # noqa: E402
from analysis.influence import recompute_influence_scores  # noqa: E402
from data.database import CampaignDatabase  # noqa: E402
from data.repository import CampaignRepository  # noqa: E402

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Recompute voter influence scores")
    parser.add_argument("--db", required=True, help="Path to DuckDB database file")
    parser.add_argument("--campaign", required=True, help="Campaign id")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print scores without writing them"
    )
    args = parser.parse_args()

    if not Path(args.db).exists():
        logger.error(f"Database file not found: {args.db}")
        sys.exit(1)

    config = AnalysisConfig.from_env()
    with CampaignDatabase(args.db, read_only=args.dry_run) as db:
        repository = CampaignRepository(db)
        voters = repository.get_voters(args.campaign)
        if not voters:
            logger.error(f"Campaign {args.campaign} has no voters")
            sys.exit(1)

        result = build_influence_graph(
            voters, repository.get_relationships(args.campaign),
            config.symmetric_relationships,
        )
        for warning in result.warnings:
            print(f"⚠️  {warning.message}")

        scores = recompute_influence_scores(result.graph, config)
        changed = {
            voter_id: score
            for voter_id, score in scores.items()
            if result.graph.get_voter(voter_id).influence_score != score
        }
        print(f"✓ {len(scores)} voters scored, {len(changed)} changed")

        if args.dry_run:
            for voter_id, score in sorted(changed.items()):
                print(f"  {voter_id}: {score}")
        else:
            repository.update_influence_scores(changed)


if __name__ == "__main__":
    main()
