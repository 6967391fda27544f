"""
fetch_connection_pool - Bounded connection pool with a producer loop and resubmit queue
"""

from .types import (
    CommandRendezvous,
    ConnectionHandle,
    ConnectionPoolConfig,
    ConnectionPoolEvent,
    ConnectionPoolEventListener,
    ConnectionPoolEventType,
    ConnectionPoolStats,
    ConnectionPoolTimeoutError,
)
from .config import (
    DEFAULT_CONNECTION_POOL_CONFIG,
    generate_connection_id,
    merge_config,
    validate_config,
)
from .pool import ConnectionPool

__all__ = [
    # Types
    "CommandRendezvous",
    "ConnectionHandle",
    "ConnectionPoolConfig",
    "ConnectionPoolEvent",
    "ConnectionPoolEventListener",
    "ConnectionPoolEventType",
    "ConnectionPoolStats",
    "ConnectionPoolTimeoutError",
    # Config
    "DEFAULT_CONNECTION_POOL_CONFIG",
    "generate_connection_id",
    "merge_config",
    "validate_config",
    # Pool
    "ConnectionPool",
]

__version__ = "1.0.0"
