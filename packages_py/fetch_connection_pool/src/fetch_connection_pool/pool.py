"""
Bounded connection pool run as a lifecycle worker

A permit from ``all_connections`` is held for every live connection. The
worker loop fills the idle queue while permits are free; callers check
connections out of that queue, creating one inline when a permit is free,
with a bounded wait, and hand them back through ``release_connection`` or
``destroy_connection``.
"""

import logging
import queue
import threading
import time
from abc import abstractmethod
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Set, TypeVar

from fetch_lifecycle import BaseLifeCycle, LifeCycle, LifeCycleStatus

from .config import generate_connection_id, validate_config
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

logger = logging.getLogger(__name__)

C = TypeVar("C")
R = TypeVar("R", bound=CommandRendezvous)


@dataclass
class _LiveConnection:
    """Bookkeeping for one live connection"""

    connection_id: str
    created_at: float
    uses: int = 0
    leased: bool = False
    rendezvous: Optional[Any] = None


class ConnectionPool(BaseLifeCycle, Generic[C, R]):
    """Fixed-size pool of connections to one endpoint"""

    def __init__(
        self,
        executor: Executor,
        config: ConnectionPoolConfig,
        resubmit_queue: "queue.Queue[R]",
        *dependencies: LifeCycle,
    ) -> None:
        errors = validate_config(config)
        if errors:
            raise ValueError(f"invalid connection pool config: {'; '.join(errors)}")
        super().__init__(executor, *dependencies, name=config.id)
        self._config = config
        self._resubmit_queue = resubmit_queue
        self._all_connections = threading.BoundedSemaphore(config.max_connections)
        self._available: "queue.Queue[C]" = queue.Queue()
        self._live: Dict[int, _LiveConnection] = {}
        self._live_lock = threading.Lock()
        self._permits_in_use = 0
        self._hit_bottom = False
        self._listeners: Dict[
            ConnectionPoolEventType, Set[ConnectionPoolEventListener]
        ] = {}

        # Statistics
        self._stats = {
            "total_created": 0,
            "total_destroyed": 0,
            "total_acquired": 0,
            "total_resubmitted": 0,
        }

    @property
    def id(self) -> str:
        """Get the pool ID"""
        return self._config.id

    @property
    def config(self) -> ConnectionPoolConfig:
        return self._config

    # ---- hooks -----------------------------------------------------------

    @abstractmethod
    def _create_connection(self) -> C:
        ...

    @abstractmethod
    def _is_connection_valid(self, connection: C) -> bool:
        ...

    @abstractmethod
    def _close_connection(self, connection: C) -> None:
        ...

    @abstractmethod
    def _create_handle(self, rendezvous: R, connection: C) -> ConnectionHandle:
        ...

    def _is_replayable(self, rendezvous: R, error: BaseException) -> bool:
        return True

    # ---- worker loop -----------------------------------------------------

    def do_work(self) -> None:
        """Create one idle connection if a permit frees up within the poll window."""
        if not self._all_connections.acquire(timeout=self._config.producer_poll_seconds):
            return
        self._available.put(self._open_connection())

    def do_shutdown(self) -> None:
        self._drain_available()
        logger.info(f"{self.id}: pool shut down; {self._live_count()} connections still leased")

    # ---- checkout --------------------------------------------------------

    def get_connection(self) -> C:
        """
        Check out a connection, waiting up to the configured timeout.

        Idle connections are handed out first. When none is idle and a permit
        is free, a connection is created in the calling thread, so checkout
        does not depend on the worker loop having been scheduled.

        Raises:
            LifeCycleStateError: If the pool is not active
            ConnectionPoolTimeoutError: If nothing became available in time
        """
        self.exception_if_not_active()
        timeout = self._config.connection_timeout_seconds
        deadline = time.monotonic() + timeout

        while True:
            self._check_saturation()
            connection = self._next_connection(deadline)
            if connection is None:
                logger.warning(f"{self.id}: timed out after {timeout}s waiting for a connection")
                self._emit(ConnectionPoolEventType.CONNECTION_TIMEOUT)
                raise ConnectionPoolTimeoutError(self.id, timeout)

            if not self._is_connection_valid(connection):
                logger.debug(f"{self.id}: discarding invalid idle connection")
                self.destroy_connection(connection)
                continue

            with self._live_lock:
                record = self._live.get(id(connection))
                if record is None:
                    continue
                record.leased = True
                record.uses += 1
                self._stats["total_acquired"] += 1
            self._emit(ConnectionPoolEventType.CONNECTION_ACQUIRED, record.connection_id)
            return connection

    def get_handle(self, rendezvous: R) -> ConnectionHandle:
        """Check out a connection and bind it to ``rendezvous``."""
        self.exception_if_not_active()
        connection = self.get_connection()
        with self._live_lock:
            record = self._live.get(id(connection))
            if record is not None:
                record.rendezvous = rendezvous
        return self._create_handle(rendezvous, connection)

    def get_rendezvous(self, connection: C) -> Optional[R]:
        """The command bound to ``connection``, if any."""
        with self._live_lock:
            record = self._live.get(id(connection))
            return record.rendezvous if record else None

    # ---- return ----------------------------------------------------------

    def release_connection(self, connection: C) -> None:
        """Return a connection, retiring it when it should not be reused."""
        valid = self._is_connection_valid(connection)
        with self._live_lock:
            record = self._live.get(id(connection))
            if record is None or not record.leased:
                logger.debug(f"{self.id}: ignoring release of a connection not checked out")
                return
            record.leased = False
            record.rendezvous = None
            uses = record.uses
            connection_id = record.connection_id
            worn_out = uses >= self._config.max_connection_reuse
            reusable = valid and not worn_out and self.status == LifeCycleStatus.ACTIVE
            if reusable:
                # leased flag and idle queue change together for stats()
                self._available.put(connection)

        if not reusable:
            if worn_out:
                logger.debug(f"{self.id}: retiring {connection_id} after {uses} uses")
            self.destroy_connection(connection)
            return

        self._emit(ConnectionPoolEventType.CONNECTION_RELEASED, connection_id)
        if self.status != LifeCycleStatus.ACTIVE:
            # shut down between the check and the put
            self._drain_available()

    def destroy_connection(self, connection: C) -> bool:
        """
        Close a connection and free its permit.

        Returns:
            False if the connection was already destroyed
        """
        with self._live_lock:
            record = self._live.pop(id(connection), None)
            if record is None:
                return False
            self._stats["total_destroyed"] += 1

        try:
            self._close_connection(connection)
        except Exception as e:
            logger.warning(f"{self.id}: error closing {record.connection_id}: {e}")
        finally:
            self._release_permit()
        logger.debug(f"{self.id}: destroyed connection {record.connection_id}")
        self._emit(ConnectionPoolEventType.CONNECTION_DESTROYED, record.connection_id)
        return True

    # ---- failures --------------------------------------------------------

    def resubmit_if_request_is_replayable(
        self, connection: C, error: BaseException
    ) -> bool:
        """
        Put the command bound to ``connection`` back on the resubmit queue.

        Returns:
            True if the command was resubmitted; otherwise ``error`` is set
            on the command
        """
        rendezvous = self.get_rendezvous(connection)
        if rendezvous is None:
            logger.warning(f"{self.id}: no command bound to failed connection: {error}")
            return False

        if self.should_do_work() and self._is_replayable(rendezvous, error):
            logger.info(f"{self.id}: resubmitting command after {type(error).__name__}: {error}")
            with self._live_lock:
                self._stats["total_resubmitted"] += 1
            self._emit(
                ConnectionPoolEventType.COMMAND_RESUBMITTED,
                data={"error": str(error)},
            )
            self._resubmit_queue.put(rendezvous)
            return True

        logger.warning(f"{self.id}: command not resubmitted: {error}")
        rendezvous.set_exception(error)
        return False

    def fatal_exception(self, error: BaseException, connection: Optional[C] = None) -> None:
        """Fail the bound command and shut the pool down."""
        logger.error(f"{self.id}: fatal error, shutting down pool: {error}")
        if connection is not None:
            rendezvous = self.get_rendezvous(connection)
            if rendezvous is not None:
                rendezvous.set_exception(error)
            self.destroy_connection(connection)
        self.record_exception(error)
        self._emit(ConnectionPoolEventType.POOL_FATAL, data={"error": str(error)})
        self.shutdown(0)

    # ---- stats and events ------------------------------------------------

    def stats(self) -> ConnectionPoolStats:
        """Get pool statistics"""
        with self._live_lock:
            live = len(self._live)
            leased = sum(1 for r in self._live.values() if r.leased)
            idle = self._available.qsize()
            permits_in_use = self._permits_in_use
            counters = dict(self._stats)

        return ConnectionPoolStats(
            max_connections=self._config.max_connections,
            live_connections=live,
            idle_connections=idle,
            leased_connections=leased,
            free_permits=self._config.max_connections - permits_in_use,
            pending_creations=permits_in_use - live,
            total_created=counters["total_created"],
            total_destroyed=counters["total_destroyed"],
            total_acquired=counters["total_acquired"],
            total_resubmitted=counters["total_resubmitted"],
            saturated=self._hit_bottom,
        )

    def on(
        self, event_type: ConnectionPoolEventType, listener: ConnectionPoolEventListener
    ) -> None:
        """Add an event listener"""
        if event_type not in self._listeners:
            self._listeners[event_type] = set()
        self._listeners[event_type].add(listener)

    def off(
        self, event_type: ConnectionPoolEventType, listener: ConnectionPoolEventListener
    ) -> None:
        """Remove an event listener"""
        if event_type in self._listeners:
            self._listeners[event_type].discard(listener)

    # ---- internals -------------------------------------------------------

    def _open_connection(self) -> C:
        """Create and register a connection; the caller holds a fresh permit."""
        with self._live_lock:
            self._permits_in_use += 1

        try:
            connection = self._create_connection()
        except Exception:
            self._release_permit()
            raise

        connection_id = generate_connection_id()
        with self._live_lock:
            self._live[id(connection)] = _LiveConnection(
                connection_id=connection_id, created_at=time.time()
            )
            self._stats["total_created"] += 1
        logger.debug(f"{self.id}: created connection {connection_id}")
        self._emit(ConnectionPoolEventType.CONNECTION_CREATED, connection_id)
        return connection

    def _next_connection(self, deadline: float) -> Optional[C]:
        """Idle connection, else a new one while a permit is free, else None at the deadline."""
        poll = self._config.producer_poll_seconds
        while True:
            try:
                return self._available.get_nowait()
            except queue.Empty:
                pass
            if self._all_connections.acquire(blocking=False):
                return self._open_connection()
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            # wake up periodically in case a destroy freed a permit
            try:
                return self._available.get(timeout=min(remaining, poll))
            except queue.Empty:
                continue

    def _check_saturation(self) -> None:
        if self._hit_bottom:
            return
        with self._live_lock:
            exhausted = self._permits_in_use >= self._config.max_connections
        if exhausted and self._available.empty():
            self._hit_bottom = True
            logger.warning(
                f"{self.id}: saturated, all {self._config.max_connections} connections in use"
            )
            self._emit(ConnectionPoolEventType.POOL_SATURATED)

    def _drain_available(self) -> None:
        while True:
            try:
                connection = self._available.get_nowait()
            except queue.Empty:
                return
            self.destroy_connection(connection)

    def _release_permit(self) -> None:
        with self._live_lock:
            self._permits_in_use -= 1
        self._all_connections.release()

    def _live_count(self) -> int:
        with self._live_lock:
            return len(self._live)

    def _emit(
        self,
        event_type: ConnectionPoolEventType,
        connection_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emit an event"""
        event = ConnectionPoolEvent(
            type=event_type,
            timestamp=time.time(),
            pool_id=self.id,
            connection_id=connection_id,
            data=data,
        )

        listeners = self._listeners.get(event_type, set())
        for listener in list(listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"{self.id}: listener for {event_type.value} failed: {e}")
