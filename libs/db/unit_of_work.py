"""Transaction boundary for multi-step mutations.

Operations in ``services/*/services`` only flush; the caller wraps them::

    async with unit_of_work(db):
        await settle_commission(db, ...)
        await award_points(db, ...)

Commits when the block exits normally, rolls back on any exception.
Driver/ORM failures surface as ``PersistenceError``; domain errors pass
through untouched.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from libs.common.errors import PersistenceError
from libs.common.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Transaction rolled back after storage error: %s", exc)
        raise PersistenceError(str(exc)) from exc
    except BaseException:
        await db.rollback()
        raise
