#!/usr/bin/env python3
"""
Start the analytics API for a loaded campaign database.
"""

import argparse
import logging
import socket
import sys
from pathlib import Path

import uvicorn

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from analysis.config import AnalysisConfig  # noqa: E402
from data.database import CampaignDatabase  # noqa: E402
from data.repository import CampaignRepository  # noqa: E402
from web.main import set_database_path  # noqa: E402

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def first_free_port(host, port, attempts=10):
    """Return the first port from `port` upwards that can be bound, or None."""
    for candidate in range(port, port + attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((host, candidate))
            except OSError:
                continue
            return candidate
    return None


def main():
    parser = argparse.ArgumentParser(description="Start the campaign analytics API")
    parser.add_argument("--db", required=True, help="Path to DuckDB database file")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )
    parser.add_argument(
        "--auto-port",
        action="store_true",
        help="Move to the next free port if --port is taken",
    )
    args = parser.parse_args()

    db_path = Path(args.db).absolute()
    if not db_path.exists():
        logger.error(f"Database file not found: {db_path}")
        logger.error("Load campaign CSVs with scripts/process_data.py --db first")
        sys.exit(1)

    with CampaignDatabase(str(db_path), read_only=True) as db:
        repository = CampaignRepository(db)
        campaigns = repository.list_campaigns() if repository.has_data() else []
    if not campaigns:
        logger.warning("Database holds no campaigns; endpoints will return 400")
    else:
        logger.info(f"Serving {len(campaigns)} campaign(s): {', '.join(campaigns)}")

    # Fail fast on bad CAMPAIGN_* overrides instead of on the first request
    logger.info(f"Analysis config: {AnalysisConfig.from_env()}")

    set_database_path(str(db_path))

    port = args.port
    if args.auto_port:
        port = first_free_port(args.host, args.port)
        if port is None:
            logger.error(f"No free port found from {args.port}")
            sys.exit(1)
        if port != args.port:
            logger.info(f"Port {args.port} is taken, using {port}")

    logger.info(f"Listening on http://{args.host}:{port}")
    uvicorn.run("web.main:app", host=args.host, port=port, reload=args.reload)


if __name__ == "__main__":
    main()
