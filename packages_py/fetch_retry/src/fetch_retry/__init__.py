"""
fetch_retry - Retry and redirect handling for HTTP commands, plus retrying loaders.
"""
from .types import (
    RetryConfig,
    RetryResult,
    RetryEvent,
    RetryEventListener,
    BackoffStrategy,
    Sleeper,
)
from .config import (
    DEFAULT_RETRY_CONFIG,
    calculate_delay,
    is_retryable_status,
    parse_retry_after,
    merge_config,
    validate_config,
    async_sleep,
    sync_sleep,
)
from .handlers import (
    HttpRetryHandler,
    BackoffLimitedRetryHandler,
    RedirectionRetryHandler,
    DelegatingRetryHandler,
    create_retry_handler,
)
from .retrying import (
    RetryPolicy,
    RetryingLoader,
    AsyncRetryingLoader,
    retry_on,
    retrying,
    retrying_async,
)


__all__ = [
    # Types
    "RetryConfig",
    "RetryResult",
    "RetryEvent",
    "RetryEventListener",
    "BackoffStrategy",
    "Sleeper",
    # Config
    "DEFAULT_RETRY_CONFIG",
    "calculate_delay",
    "is_retryable_status",
    "parse_retry_after",
    "merge_config",
    "validate_config",
    "async_sleep",
    "sync_sleep",
    # Handlers
    "HttpRetryHandler",
    "BackoffLimitedRetryHandler",
    "RedirectionRetryHandler",
    "DelegatingRetryHandler",
    "create_retry_handler",
    # Retrying loaders
    "RetryPolicy",
    "RetryingLoader",
    "AsyncRetryingLoader",
    "retry_on",
    "retrying",
    "retrying_async",
]


__version__ = "1.0.0"
