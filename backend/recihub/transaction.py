"""
ReciHub Backend — Transaction Runner
=====================================

What:  Executes one unit of work against the store with commit/rollback
       semantics.
How:   Opens a session from the injected factory, begins a transaction and
       acquires its connection, awaits the unit of work, then commits.
       Any failure of the unit of work rolls the transaction back.
Who:   Used by RecipeRepository for insert and update of the aggregate.

Outcomes:
    begin fails                 → TransactionStartError
    work raises (or times out)  → rollback, TransactionFailedError(cause)
    commit fails                → CommitError
    otherwise                   → work's return value; every write is durable

A failed rollback is logged and never masks the original cause.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recihub.config import settings
from recihub.exceptions import (
    CommitError,
    StoreError,
    TransactionFailedError,
    TransactionStartError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Work = Callable[[AsyncSession], Awaitable[T]]

# Errors a driver may raise while talking to the store. asyncpg surfaces
# refused connections as OSError rather than a wrapped DBAPI error.
STORE_ERRORS = (SQLAlchemyError, OSError)


async def _rollback_quietly(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except STORE_ERRORS as e:
        logger.warning("Rollback failed (original error is kept): %s", str(e))


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Work[T],
    timeout: Optional[float] = None,
) -> T:
    """
    Run `work(session)` inside a single transaction.

    Args:
        session_factory: Factory producing AsyncSession instances.
        work:            Async callable receiving the transactional session.
        timeout:         Seconds before the unit of work is cancelled and
                         rolled back. None uses
                         settings.transaction_timeout_seconds; 0 disables.

    Returns:
        Whatever `work` returned, after a successful commit.

    Raises:
        TransactionStartError:  The transaction could not be started.
        TransactionFailedError: `work` raised; `.cause` holds its exception.
        CommitError:            `work` succeeded but the commit failed.
    """
    if timeout is None:
        timeout = settings.transaction_timeout_seconds

    async with session_factory() as session:
        try:
            await session.begin()
            # Acquire the connection now so an unreachable store is reported
            # as a start failure, not as a failure of the first statement.
            await session.connection()
        except STORE_ERRORS as e:
            logger.error("Unable to begin transaction: %s", str(e))
            raise TransactionStartError(
                context={"error_type": type(e).__name__},
            ) from e

        try:
            if timeout:
                result = await asyncio.wait_for(work(session), timeout)
            else:
                result = await work(session)
        except Exception as e:
            # StoreError was already logged where the statement failed
            level = logging.DEBUG if isinstance(e, StoreError) else logging.ERROR
            logger.log(level, "Transaction failed, rolling back: %s", str(e))
            await _rollback_quietly(session)
            raise TransactionFailedError(e) from e

        try:
            await session.commit()
        except STORE_ERRORS as e:
            logger.error("Failed to commit transaction: %s", str(e))
            await _rollback_quietly(session)
            raise CommitError(context={"error_type": type(e).__name__}) from e

        logger.debug("Transaction committed")
        return result
