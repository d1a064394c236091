"""
Retry with backoff for upstream HTTP calls.

Game data providers and the KV endpoint occasionally time out or answer
429/5xx. Calls decorated with api_retry are attempted again with
exponential backoff and jitter; a 429 waits for its Retry-After instead.
Client errors other than 408 and 429 fail immediately.
"""

import time
import random
import logging
from functools import wraps
from typing import Callable, Tuple, Type, Optional, Any
from dataclasses import dataclass
from enum import Enum

import requests

logger = logging.getLogger(__name__)


class RetryError(Exception):
    """Base retry error."""
    pass


class MaxRetriesExceeded(RetryError):
    """Every attempt failed; ``last_exception`` is the final failure."""

    def __init__(self, message: str, last_exception: Optional[Exception] = None):
        self.last_exception = last_exception
        super().__init__(message)


class BackoffStrategy(Enum):
    CONSTANT = "constant"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    requests.exceptions.Timeout,
    requests.exceptions.ConnectionError,
    requests.exceptions.HTTPError,
    ConnectionError,
    TimeoutError,
)

RETRYABLE_STATUS_CODES = (408, 429, 500, 502, 503, 504)


@dataclass
class RetryConfig:
    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 60.0  # seconds
    backoff_strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    backoff_factor: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.1
    # Wait used for a 429 without a usable Retry-After header
    rate_limit_delay: float = 60.0


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Seconds to wait before retry number ``attempt`` (0-indexed).
    """
    strategy = config.backoff_strategy
    if strategy == BackoffStrategy.EXPONENTIAL:
        delay = config.base_delay * config.backoff_factor ** attempt
    elif strategy == BackoffStrategy.LINEAR:
        delay = config.base_delay * (attempt + 1)
    else:
        delay = config.base_delay
    delay = min(delay, config.max_delay)

    if config.jitter:
        spread = delay * config.jitter_factor
        delay += random.uniform(-spread, spread)
    return max(0, delay)


def _status_code(error: Exception) -> Optional[int]:
    if not isinstance(error, requests.exceptions.HTTPError):
        return None
    response = getattr(error, 'response', None)
    return getattr(response, 'status_code', None)


def should_retry(error: Exception) -> bool:
    """HTTP errors are retried only for timeouts, throttling and server faults."""
    status = _status_code(error)
    return status is None or status in RETRYABLE_STATUS_CODES


def retry_after(error: Exception, config: RetryConfig) -> Optional[float]:
    """Wait requested by a 429 answer, or None for any other failure."""
    if _status_code(error) != 429:
        return None
    header = error.response.headers.get('Retry-After')
    try:
        return float(header) if header else config.rate_limit_delay
    except ValueError:
        return config.rate_limit_delay


def retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    backoff_strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL,
    retryable_exceptions: Tuple[Type[Exception], ...] = RETRYABLE_EXCEPTIONS,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
):
    """
    Decorator retrying a blocking call up to ``max_retries`` extra times.

    Raises:
        MaxRetriesExceeded: the last attempt failed with a retryable error

    Usage:
        @retry(max_retries=3, base_delay=1.0)
        def fetch_items():
            ...
    """
    config = RetryConfig(
        max_retries=max_retries,
        base_delay=base_delay,
        max_delay=max_delay,
        backoff_strategy=backoff_strategy,
    )

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    if not should_retry(e):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            f"{func.__name__} failed after {attempt + 1} attempts: {e}",
                            extra={"function": func.__name__, "attempts": attempt + 1},
                        )
                        raise MaxRetriesExceeded(
                            f"{func.__name__} failed after {attempt + 1} attempts: {e}",
                            last_exception=e,
                        ) from e

                    delay = retry_after(e, config)
                    if delay is None:
                        delay = calculate_delay(attempt, config)
                    attempt += 1
                    logger.warning(
                        f"{func.__name__} attempt {attempt} failed ({type(e).__name__}: {e}); "
                        f"retrying in {delay:.2f}s"
                    )
                    if on_retry:
                        on_retry(attempt, e, delay)
                    time.sleep(delay)

        return wrapper
    return decorator


def api_retry(max_retries: int = 3, base_delay: float = 1.0):
    """
    Retry decorator for the game data and KV endpoints.

    Usage:
        @api_retry()
        def fetch_globals():
            ...
    """
    return retry(max_retries=max_retries, base_delay=base_delay, max_delay=30.0)
