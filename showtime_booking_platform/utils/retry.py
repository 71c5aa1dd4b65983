"""
Retry mechanisms with exponential backoff for handling transient store failures.
"""

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional

from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as SQLTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..utils.exceptions import TransportError

logger = logging.getLogger(__name__)

# Errors that mean the store could not be reached or did not answer in time
STORE_TRANSPORT_ERRORS = (
    OperationalError,
    InterfaceError,
    SQLTimeoutError,
    asyncio.TimeoutError,
    ConnectionError,
)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    base_delay: float = 0.1
    max_delay: float = 2.0
    exponential_base: float = 2.0
    jitter: bool = True
    backoff_factor: float = 1.0

    def delay_for(self, attempt: int) -> float:
        """Backoff delay before the attempt following ``attempt`` (0-based)."""
        delay = min(
            self.base_delay * (self.exponential_base ** attempt) * self.backoff_factor,
            self.max_delay
        )

        # Add jitter to prevent thundering herd
        if self.jitter:
            delay = delay * (0.5 + random.random() * 0.5)
        return delay


async def retry_async(
    func: Callable,
    config: RetryConfig,
    *args,
    retryable_exceptions: tuple = (TransportError,),
    non_retryable_exceptions: tuple = (),
    **kwargs
) -> Any:
    """
    Retry an async function with exponential backoff.

    Args:
        func: The async function to retry
        config: Retry configuration
        retryable_exceptions: Exceptions that should trigger retries
        non_retryable_exceptions: Exceptions that should not trigger retries
        *args, **kwargs: Arguments to pass to the function

    Returns:
        The result of the function call

    Raises:
        The last exception if all retries are exhausted
    """
    last_exception: Optional[BaseException] = None

    for attempt in range(config.max_attempts):
        try:
            result = await func(*args, **kwargs)

            if attempt > 0:
                logger.info(f"Function {func.__name__} succeeded on attempt {attempt + 1}")

            return result

        except non_retryable_exceptions as e:
            logger.error(f"Non-retryable error in {func.__name__}: {e}")
            raise

        except retryable_exceptions as e:
            last_exception = e

            # Don't sleep after the last attempt
            if attempt == config.max_attempts - 1:
                break

            delay = config.delay_for(attempt)
            logger.warning(
                f"Attempt {attempt + 1} failed for {func.__name__}: {e}. "
                f"Retrying in {delay:.2f}s..."
            )

            await asyncio.sleep(delay)

    logger.error(f"All {config.max_attempts} attempts failed for {func.__name__}")
    raise last_exception


def retry_on_transport_error(
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    jitter: bool = True
):
    """Decorator for retrying idempotent store operations on transport failures.

    Never apply this to confirm: a retried confirm after an ambiguous failure
    could double-book.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            settings = get_settings()
            config = RetryConfig(
                max_attempts=max_attempts or settings.read_retry_attempts,
                base_delay=base_delay if base_delay is not None else settings.read_retry_base_delay,
                max_delay=max_delay if max_delay is not None else settings.read_retry_max_delay,
                jitter=jitter
            )
            return await retry_async(
                func,
                config,
                *args,
                retryable_exceptions=(TransportError,),
                non_retryable_exceptions=(ValueError, TypeError),
                **kwargs
            )
        return wrapper

    return decorator


@asynccontextmanager
async def transport_guard(session: AsyncSession, operation: str):
    """
    Translate store connectivity failures into TransportError.

    The session's transaction is rolled back so the session can be reused by
    a retry.

    Usage:
        async with transport_guard(self.session, "get_states"):
            result = await self.session.execute(query)
    """
    try:
        yield
    except STORE_TRANSPORT_ERRORS as e:
        logger.warning(f"Store transport failure during {operation}: {e}")
        try:
            await session.rollback()
        except Exception as rollback_error:
            logger.error(f"Rollback after transport failure in {operation} failed: {rollback_error}")
        raise TransportError(operation, str(e)) from e
