"""
Configuration utilities for fetch_retry
"""
import asyncio
import random
import time
from dataclasses import replace
from email.utils import parsedate_to_datetime
from typing import Any, Optional

from .types import BackoffStrategy, RetryConfig


# Default retry configuration
DEFAULT_RETRY_CONFIG = RetryConfig(
    max_retries=5,
    max_redirects=5,
    base_delay_seconds=0.05,
    max_delay_seconds=0.5,
    jitter_factor=0.0,
    retry_on_status=[429, 500, 502, 503, 504],
    respect_retry_after=True,
    backoff_strategy=BackoffStrategy.QUADRATIC,
)


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Calculate delay based on strategy.

    ``attempt`` is the failure count for the quadratic strategy (so the
    first retry waits ``base * 1``) and 0-indexed for the others.

    Args:
        attempt: The current attempt number
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    base = config.base_delay_seconds
    max_delay = config.max_delay_seconds
    jitter = config.jitter_factor

    if config.backoff_strategy == BackoffStrategy.CONSTANT:
        base_delay = base
    elif config.backoff_strategy == BackoffStrategy.LINEAR:
        base_delay = min(max_delay, base + config.linear_increment_seconds * attempt)
    elif config.backoff_strategy == BackoffStrategy.EXPONENTIAL:
        base_delay = min(max_delay, base * (2 ** attempt))
    else:  # QUADRATIC (default)
        base_delay = min(max_delay, base * (attempt ** 2))

    # Apply jitter
    jitter_amount = random.random() * jitter * base_delay
    delay = base_delay * (1 - jitter / 2) + jitter_amount

    return min(delay, max_delay)


def is_retryable_status(status: int, config: RetryConfig) -> bool:
    """
    Check if an HTTP status code should trigger a retry.

    Args:
        status: The HTTP status code
        config: Retry configuration

    Returns:
        Whether the status is retryable
    """
    return status in config.retry_on_status


def parse_retry_after(value: Optional[str]) -> float:
    """
    Parse Retry-After header value.

    The Retry-After header can contain either:
    - A number of seconds to wait
    - An HTTP-date indicating when to retry

    Args:
        value: Retry-After header value

    Returns:
        Wait time in seconds, or 0 if parsing fails
    """
    if not value:
        return 0

    # Try parsing as seconds
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    # Try parsing as HTTP-date
    try:
        dt = parsedate_to_datetime(value)
        return max(0, dt.timestamp() - time.time())
    except (ValueError, TypeError):
        pass

    return 0


def merge_config(config: Optional[RetryConfig] = None, **overrides: Any) -> RetryConfig:
    """
    Merge configuration with defaults.

    Args:
        config: User-provided configuration
        overrides: Individual fields to replace

    Returns:
        Complete configuration with defaults
    """
    base = config if config is not None else DEFAULT_RETRY_CONFIG
    return replace(base, **overrides) if overrides else base


def validate_config(config: RetryConfig) -> list[str]:
    """Validate configuration values"""
    errors = []

    if config.max_retries < 0:
        errors.append("max_retries must be non-negative")

    if config.max_redirects < 0:
        errors.append("max_redirects must be non-negative")

    if config.base_delay_seconds < 0:
        errors.append("base_delay_seconds must be non-negative")

    if config.max_delay_seconds < config.base_delay_seconds:
        errors.append("max_delay_seconds cannot be less than base_delay_seconds")

    if not 0 <= config.jitter_factor <= 1:
        errors.append("jitter_factor must be between 0 and 1")

    return errors


async def async_sleep(seconds: float) -> None:
    """
    Sleep for a specified duration (async).

    Args:
        seconds: Duration in seconds
    """
    await asyncio.sleep(seconds)


def sync_sleep(seconds: float) -> None:
    """
    Sleep for a specified duration (sync).

    Args:
        seconds: Duration in seconds
    """
    time.sleep(seconds)
