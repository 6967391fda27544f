"""
Type definitions for fetch_lifecycle
"""

from enum import Enum
from typing import Protocol


class LifeCycleStatus(str, Enum):
    """Status of a managed worker, in the order it advances"""

    INACTIVE = "inactive"
    ACTIVE = "active"
    SHUTDOWN_REQUEST = "shutdown_request"
    SHUTTING_DOWN = "shutting_down"
    SHUT_DOWN = "shut_down"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def is_past(self, other: "LifeCycleStatus") -> bool:
        """Whether this status comes after ``other`` in the shutdown sequence."""
        return self.rank > other.rank


_STATUS_ORDER = [
    LifeCycleStatus.INACTIVE,
    LifeCycleStatus.ACTIVE,
    LifeCycleStatus.SHUTDOWN_REQUEST,
    LifeCycleStatus.SHUTTING_DOWN,
    LifeCycleStatus.SHUT_DOWN,
]


class LifeCycleStateError(RuntimeError):
    """Raised when a component is asked to do something its status forbids."""
    pass


class LifeCycle(Protocol):
    """Anything with a start/stop status that others may depend on"""

    @property
    def status(self) -> LifeCycleStatus:
        ...

    def start(self) -> None:
        ...

    def shutdown(self, wait_seconds: float = 0) -> bool:
        ...
