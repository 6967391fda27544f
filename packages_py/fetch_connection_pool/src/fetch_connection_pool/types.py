"""
Type definitions for fetch_connection_pool
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol


@dataclass
class ConnectionPoolConfig:
    """Connection pool configuration"""

    id: str = "default-pool"
    max_connections: int = 12
    max_connection_reuse: int = 75
    connection_timeout_seconds: float = 5.0
    producer_poll_seconds: float = 0.1


@dataclass
class ConnectionPoolStats:
    """Point-in-time view of a pool"""

    max_connections: int
    live_connections: int
    idle_connections: int
    leased_connections: int
    free_permits: int
    pending_creations: int
    total_created: int
    total_destroyed: int
    total_acquired: int
    total_resubmitted: int
    saturated: bool


class ConnectionPoolEventType(str, Enum):
    """Pool event types"""

    CONNECTION_CREATED = "connection:created"
    CONNECTION_ACQUIRED = "connection:acquired"
    CONNECTION_RELEASED = "connection:released"
    CONNECTION_DESTROYED = "connection:destroyed"
    CONNECTION_TIMEOUT = "connection:timeout"
    POOL_SATURATED = "pool:saturated"
    COMMAND_RESUBMITTED = "command:resubmitted"
    POOL_FATAL = "pool:fatal"


@dataclass
class ConnectionPoolEvent:
    """Pool event"""

    type: ConnectionPoolEventType
    timestamp: float
    pool_id: str
    connection_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


# Type alias for event listeners
ConnectionPoolEventListener = Callable[[ConnectionPoolEvent], None]


class ConnectionPoolTimeoutError(TimeoutError):
    """Raised when no connection became available within the configured wait"""

    def __init__(self, pool_id: str, timeout_seconds: float) -> None:
        super().__init__(
            f"no connection available in pool {pool_id} after {timeout_seconds}s"
        )
        self.pool_id = pool_id
        self.timeout_seconds = timeout_seconds


class CommandRendezvous(Protocol):
    """The part of a command's completion point a pool needs"""

    def set_exception(self, error: BaseException) -> bool:
        ...


class ConnectionHandle(ABC):
    """A checked-out connection bound to one command"""

    @abstractmethod
    def start_connection(self) -> None:
        """Run the bound command over the bound connection."""
        ...
