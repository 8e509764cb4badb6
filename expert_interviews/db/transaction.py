from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.core.exceptions import BaseAPIException, DatabaseError


@asynccontextmanager
async def transaction(db: AsyncSession):
    """
    Context manager for database transactions

    Usage:
        async with transaction(db):
            # database operations

    API exceptions raised inside the block (validation, not found) are
    re-raised unchanged after the rollback; anything else is wrapped.

    Raises:
        DatabaseError: If there's an error during the transaction
    """
    try:
        yield
        await db.commit()
    except BaseAPIException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Transaction error: {str(e)}")
        raise DatabaseError(f"Database operation failed: {str(e)}") from e
