"""
Type definitions for fetch_retry
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Literal, TypeVar


T = TypeVar("T")


class BackoffStrategy(str, Enum):
    """Backoff strategy type"""
    QUADRATIC = "quadratic"
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    CONSTANT = "constant"


@dataclass
class RetryConfig:
    """Retry configuration"""

    max_retries: int = 5
    """Maximum number of retries per command. Default: 5"""

    max_redirects: int = 5
    """Maximum number of redirects followed per command. Default: 5"""

    base_delay_seconds: float = 0.05
    """Delay the backoff starts from (seconds). Default: 0.05"""

    max_delay_seconds: float = 0.5
    """Maximum delay between retries (seconds). Default: 0.5"""

    jitter_factor: float = 0.0
    """Jitter factor (0-1). Default: 0 (deterministic)"""

    retry_on_status: list[int] = field(
        default_factory=lambda: [429, 500, 502, 503, 504]
    )
    """HTTP status codes that should trigger retry"""

    respect_retry_after: bool = True
    """Whether to respect Retry-After header on 429/503. Default: True"""

    backoff_strategy: BackoffStrategy = BackoffStrategy.QUADRATIC
    """Backoff strategy. Default: quadratic in the failure count"""

    linear_increment_seconds: float = 0.05
    """Linear increment for linear backoff (seconds). Default: 0.05"""


@dataclass
class RetryResult(Generic[T]):
    """Result of a retried operation"""

    result: T
    """The result of the operation"""

    retries: int
    """Number of retries attempted (0 if succeeded on first try)"""

    total_time_seconds: float
    """Total time spent including retries (seconds)"""

    delay_time_seconds: float
    """Time spent in backoff delays (seconds)"""


# Event types
EventType = Literal[
    "attempt:start",
    "attempt:success",
    "attempt:fail",
    "retry:wait",
    "retry:abort",
]


@dataclass
class RetryEvent:
    """Event emitted by a retrying loader"""

    type: EventType
    """Event type"""

    attempt: int
    """Current attempt number"""

    data: dict[str, Any] = field(default_factory=dict)
    """Event-specific data"""


# Event listener type
RetryEventListener = Callable[[RetryEvent], None]

# Sleep function used between attempts; replaced in tests
Sleeper = Callable[[float], None]
