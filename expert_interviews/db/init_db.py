from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine

from expert_interviews.db.base_class import Base
from expert_interviews.db.session import engine as default_engine
from expert_interviews.models import models  # noqa: F401  registers tables on Base.metadata


async def init_db(engine: AsyncEngine = default_engine) -> None:
    """
    Create database tables that don't exist yet.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables verified")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


async def close_db(engine: AsyncEngine = default_engine) -> None:
    """
    Dispose of the connection pool.
    """
    await engine.dispose()
    logger.info("Database connections closed")
