"""Bounded retry logic with fixed backoff"""

import asyncio
from typing import Callable, Optional, Tuple, Type

from loguru import logger
from playwright.async_api import Error as PlaywrightError

from .config import NAV_MAX_ATTEMPTS, NAV_RETRY_DELAY, NAVIGATION_TIMEOUT
from .exceptions import (
    AuthRequiredError,
    ChallengeTimeoutError,
    CircuitOpenError,
    ContentNotFoundError,
    LoginVerificationFailed,
    NavigationError,
    ScrapeTimeoutError,
)
from .models import ErrorType


async def retry_fixed(
    func: Callable,
    *args,
    max_attempts: int = NAV_MAX_ATTEMPTS,
    delay: float = NAV_RETRY_DELAY,
    retry_on: Tuple[Type[BaseException], ...] = (PlaywrightError,),
    on_retry: Optional[Callable] = None,
    **kwargs,
):
    """
    Execute function, retrying a fixed number of times with a fixed delay.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates immediately.

    Args:
        func: Async function to execute
        max_attempts: Total attempts including the first one
        delay: Seconds to wait between attempts
        retry_on: Exception types that warrant another attempt
        on_retry: Optional callback called on each retry: on_retry(attempt, error)
    """
    last_exception: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = await func(*args, **kwargs)

            if attempt > 1:
                logger.success(f"✓ Recovered on attempt {attempt}/{max_attempts}")

            return result

        except retry_on as e:
            last_exception = e

            if attempt >= max_attempts:
                logger.error(f"❌ Failed after {max_attempts} attempts: {e}")
                break

            logger.warning(f"⚠️ Attempt {attempt}/{max_attempts} failed: {e}")
            logger.info(f"   Retrying in {delay:.1f}s...")

            if on_retry:
                await on_retry(attempt, e)

            await asyncio.sleep(delay)

    raise last_exception


async def navigate(
    page,
    url: str,
    timeout: float = NAVIGATION_TIMEOUT,
    max_attempts: int = NAV_MAX_ATTEMPTS,
    delay: float = NAV_RETRY_DELAY,
):
    """
    Navigate a page with bounded retries.

    Raises:
        NavigationError: If every attempt failed
    """

    async def attempt_goto():
        return await page.goto(
            url, wait_until="domcontentloaded", timeout=int(timeout * 1000)
        )

    try:
        return await retry_fixed(attempt_goto, max_attempts=max_attempts, delay=delay)
    except PlaywrightError as e:
        raise NavigationError(f"Navigation failed: {e}", identifier=url) from e


def classify_error(error: BaseException) -> ErrorType:
    """Classify error for appropriate handling"""
    if isinstance(error, CircuitOpenError):
        return ErrorType.CIRCUIT_OPEN
    elif isinstance(error, (AuthRequiredError, LoginVerificationFailed)):
        return ErrorType.AUTH_FAILURE
    elif isinstance(error, ContentNotFoundError):
        return ErrorType.NOT_FOUND
    elif isinstance(
        error,
        (
            ChallengeTimeoutError,
            ScrapeTimeoutError,
            NavigationError,
            PlaywrightError,
            asyncio.TimeoutError,
        ),
    ):
        return ErrorType.TRANSIENT
    else:
        # Form / credential problems and anything unknown
        return ErrorType.PERMANENT
