"""Script to create the database schema without starting the bot.

Creates the reports, admin_actions and user_timeouts tables (and their
indexes) if they do not exist yet, then prints the row count of each.
"""

import asyncio
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from sqlalchemy import func, select

from config import load_from_env
from models.tables import AdminAction, Report, UserTimeout
from utils.exceptions import DatabaseError
from utils.logging import init_logging
from utils.sqlalchemy_db import check_connection, create_engine, create_session_factory, init_database


async def main() -> int:
    """Create the schema and print results."""
    try:
        config = load_from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logger = init_logging(config.logging_level, None, config.log_format.value)
    logger.info("database_setup_started", host=config.host, database=config.database)

    engine = create_engine(config)
    try:
        await check_connection(engine)
        await init_database(engine)

        session_maker = create_session_factory(engine)
        async with session_maker() as session:
            for table in (Report, AdminAction, UserTimeout):
                total = await session.scalar(select(func.count()).select_from(table))
                logger.info("table_ready", table=table.__tablename__, rows=total)
    except DatabaseError as e:
        logger.error("database_setup_failed", error=str(e))
        return 1
    finally:
        await engine.dispose()

    logger.info("database_setup_complete")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
