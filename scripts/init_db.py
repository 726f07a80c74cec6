# scripts/init_db.py
import asyncio
import logging

from backoffice.db import create_db_and_tables

log = logging.getLogger(__name__)


async def create_tables():
    await create_db_and_tables()
    log.info("All missing tables created.")

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(create_tables())
