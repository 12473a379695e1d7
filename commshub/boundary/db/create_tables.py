"""
Database table creation script.

Creates the comms tables defined in ORM models using SQLAlchemy metadata.

Dependencies: sqlalchemy, commshub.configs
System role: Database schema initialization

Usage:
    python -m commshub.boundary.db.create_tables
"""

import asyncio
import logging

from commshub.boundary.db.base import Base
from commshub.boundary.db.connection import dispose_engine, get_async_engine

# Import all models to register them with Base.metadata
from commshub.boundary.db import models  # noqa: F401
from commshub.observability.logger import configure_logging

logger = logging.getLogger(__name__)


async def create_all_tables() -> None:
    """
    Create all database tables from registered ORM models.

    Idempotent: calls CREATE TABLE IF NOT EXISTS for each model, so safe
    to run multiple times. Existing tables remain unchanged.

    Raises:
        SQLAlchemyError: If database connection fails or table creation fails
    """
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Comms tables created", extra={"tables": sorted(Base.metadata.tables)})


async def _main() -> None:
    try:
        await create_all_tables()
    finally:
        await dispose_engine()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(_main())
