#!/usr/bin/env python3
"""
Full scan script for GitStarRanking.
Walks GitHub users in id order and refreshes their repositories' stars in PostgreSQL.
"""

import logging
import sys
import argparse

from infrastructure.github_client import GitHubClient
from infrastructure.db_client import DatabaseClient
from core.use_cases import UserFullScan

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Refresh star counts of GitHub users and their repositories"
    )
    parser.add_argument(
        "--max-batches",
        type=int,
        default=UserFullScan.MAX_BATCHES,
        help=f"Pages of users to process (default: {UserFullScan.MAX_BATCHES})",
    )
    parser.add_argument(
        "--min-remaining",
        type=int,
        default=UserFullScan.MIN_RATE_LIMIT_REMAINING,
        help="Stop when fewer API requests remain "
             f"(default: {UserFullScan.MIN_RATE_LIMIT_REMAINING})",
    )
    parser.add_argument(
        "--threshold-days",
        type=float,
        default=UserFullScan.THRESHOLD_DAYS,
        help="Skip users refreshed within this many days "
             f"(default: {UserFullScan.THRESHOLD_DAYS})",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=UserFullScan.UPDATE_INTERVAL,
        help=f"Seconds to pause after each user (default: {UserFullScan.UPDATE_INTERVAL})",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create database tables before scanning",
    )
    return parser


def main(argv=None):
    """Main full scan entry point."""
    args = build_parser().parse_args(argv)

    try:
        logger.info("=" * 60)
        logger.info("GitStarRanking - User Full Scan")
        logger.info("=" * 60)

        github = GitHubClient()
        db = DatabaseClient()

        with db:
            if args.create_schema:
                db.create_schema()

            use_case = UserFullScan(
                github,
                db,
                max_batches=args.max_batches,
                min_rate_limit_remaining=args.min_remaining,
                threshold_days=args.threshold_days,
                update_interval=args.interval,
            )
            result = use_case.execute()

            logger.info("=" * 60)
            logger.info("Scan Summary:")
            logger.info(f"  Users seen: {result.users_seen:,}")
            logger.info(f"  Users updated: {result.users_updated:,}")
            logger.info(f"  Users skipped: {result.users_skipped:,}")
            logger.info(f"  Cursor: {result.last_user_id}")
            logger.info(f"  Stopped: {result.stopped_reason or 'max batches'}")
            logger.info("=" * 60)

        return 0

    except KeyboardInterrupt:
        logger.info("\nScan interrupted by user. Cursor of finished batches has been saved.")
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        logger.error(f"Scan failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
