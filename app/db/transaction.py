"""Unit-of-work commit helper shared by every mutating service."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConflictError, PersistenceError

logger = logging.getLogger(__name__)


async def commit_atomic(db: AsyncSession, *, operation: str) -> None:
    """Commit pending changes as one transaction.

    A version mismatch on a versioned row becomes ``ConflictError``; any other
    database failure is logged here and surfaced as ``PersistenceError`` with a
    generic message.
    """
    try:
        await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        logger.warning("Concurrent update rejected during %s", operation)
        raise ConflictError(
            message="The record was updated by another request. Please refresh and retry.",
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Transaction failed during %s", operation)
        raise PersistenceError(message="Unable to save changes. Please try again.") from exc
