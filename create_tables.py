"""
Script to create all database tables.

Local development shortcut for the Alembic migration.
Run this after starting PostgreSQL with Docker.
"""
import asyncio
from opshub.database import engine
from opshub.logging_config import logger
from opshub.models.base import Base
# Import all models to register them with Base
from opshub.models import crm, delivery, invoice, video  # noqa: F401


async def create_all_tables():
    """Create all tables in the database."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("tables_created", tables=sorted(Base.metadata.tables))


async def drop_all_tables():
    """Drop all tables in the database (for testing)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("tables_dropped")


if __name__ == "__main__":
    asyncio.run(create_all_tables())
