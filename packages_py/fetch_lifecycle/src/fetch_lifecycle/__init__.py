"""
fetch_lifecycle - Start/stop state machine for background workers
"""

from .types import LifeCycle, LifeCycleStateError, LifeCycleStatus
from .lifecycle import BaseLifeCycle
from .executors import WithinThreadExecutor, create_executor

__all__ = [
    # Types
    "LifeCycle",
    "LifeCycleStateError",
    "LifeCycleStatus",
    # Lifecycle
    "BaseLifeCycle",
    # Executors
    "WithinThreadExecutor",
    "create_executor",
]

__version__ = "1.0.0"
