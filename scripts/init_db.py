#!/usr/bin/env python3
"""
Database Initialization Script
Create the chart sharing tables and indexes, optionally purging stale rate counters
"""

import argparse
import asyncio
import sys

from chartshare.db.session import init_db, close_db
from chartshare.core.logging import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


async def purge_rate_counters() -> int:
    """Delete rate counters whose window has closed"""
    from chartshare.db import session as db_session
    from chartshare.db.base import utcnow
    from chartshare.services.rate_limit import RateCounterStore

    async with db_session.async_session_maker() as session:
        return await RateCounterStore(session).purge_expired(utcnow())


async def main(purge: bool = False) -> int:
    """Main initialization function"""
    logger.info("Initializing database...")

    try:
        await init_db(create_tables=True)
        logger.info("Database initialized successfully!")

        if purge:
            purged = await purge_rate_counters()
            logger.info(f"Purged {purged} expired rate counters")
        return 0
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1
    finally:
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--purge-rate-limits",
        action="store_true",
        help="Also delete expired rate limit counters",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(main(purge=args.purge_rate_limits)))
