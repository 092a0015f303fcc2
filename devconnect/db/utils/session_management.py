"""
Utilities for database session management and retry logic.
"""
import asyncio
import functools
import random
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar, Any

from loguru import logger
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devconnect.core.config import get_settings
from devconnect.core.errors import ConflictError

T = TypeVar('T')

DEFAULT_CONFLICT_MESSAGE = "Conflicting update, please retry"


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession],
    conflict_message: str = DEFAULT_CONFLICT_MESSAGE,
) -> AsyncIterator[AsyncSession]:
    """
    Open a session and run the block inside a single transaction.

    The transaction commits when the block exits normally and rolls back on
    any exception. A uniqueness violation raised by the store is surfaced as
    ConflictError so the loser of a race gets a domain error, not a driver one.
    A writer that times out waiting for the store lock gets the same treatment
    with the generic retry message, since mutations are never retried here.
    """
    async with session_factory() as session:
        try:
            async with session.begin():
                yield session
        except IntegrityError as e:
            logger.warning(f"Store rejected write as a conflict: {e.orig}")
            raise ConflictError(conflict_message) from e
        except OperationalError as e:
            logger.warning(f"Store could not complete write: {e.orig}")
            raise ConflictError(DEFAULT_CONFLICT_MESSAGE) from e


def with_retry(
    max_attempts: Optional[int] = None,
    base_delay: float = 0.1,
    max_delay: float = 2.0
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator to retry read-only async database operations with exponential backoff.

    Only OperationalError (dropped connections, lock timeouts) is retried.
    Never wrap a mutation with this: domain errors and integrity errors
    propagate on the first attempt.

    Args:
        max_attempts: Maximum number of attempts (defaults to DB_RETRY_ATTEMPTS)
        base_delay: Base delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            attempts = max_attempts or get_settings().db_retry_attempts
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except OperationalError as e:
                    if attempt >= attempts:
                        logger.error(f"Database operation {func.__name__} failed after {attempts} attempts: {e}")
                        raise

                    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
                    # Add some jitter (±10%)
                    delay += 0.1 * delay * (2 * random.random() - 1)

                    logger.warning(f"Database operation {func.__name__} failed (attempt {attempt}/{attempts}): {e}. Retrying in {delay:.2f}s")
                    await asyncio.sleep(delay)
            raise RuntimeError("Unexpected error in retry logic")

        return wrapper
    return decorator
