import asyncio

from expert_interviews.core.logging import setup_logging
from expert_interviews.db.init_db import close_db, init_db


async def create_tables():
    """Create database tables."""
    setup_logging()
    await init_db()
    await close_db()


if __name__ == "__main__":
    asyncio.run(create_tables())
