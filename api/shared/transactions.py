"""Transaction helper shared by the feature services."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.shared.exceptions import PersistenceError

logger = logging.getLogger("chat.db")


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any error.

    Database errors are re-raised as ``PersistenceError``; domain errors pass
    through unchanged.
    """
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Database operation failed")
        raise PersistenceError("Database operation failed", {"reason": type(e).__name__}) from e
    except Exception:
        await session.rollback()
        raise
