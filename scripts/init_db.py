"""Create the scheduling tables without Alembic, e.g. for a local sandbox.

Usage: python scripts/init_db.py [--reset]
"""

import asyncio
import sys

import structlog

from app.database import engine
from app.middleware.logging import configure_logging
from app.models import metadata

logger = structlog.get_logger()


async def init_db(reset: bool = False) -> None:
    """
    Create every table and index known to ``app.models``.

    Args:
        reset: Drop existing scheduling tables first
    """
    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(metadata.drop_all)
            logger.warning("tables_dropped", tables=sorted(metadata.tables))

        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    logger.info("database_initialized", tables=sorted(metadata.tables))


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_db(reset="--reset" in sys.argv[1:]))
