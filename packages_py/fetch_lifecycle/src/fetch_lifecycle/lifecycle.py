"""
Base start/stop state machine for background workers
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Optional, Tuple

from .types import LifeCycle, LifeCycleStateError, LifeCycleStatus

logger = logging.getLogger(__name__)


class BaseLifeCycle(ABC):
    """
    Worker loop with declared dependencies.

    ``start()`` schedules ``run()`` on the supplied executor. The loop calls
    ``do_work()`` until shutdown is requested, a dependency stops being
    active, or ``do_work()`` raises. ``do_shutdown()`` always runs once the
    loop has exited.

    Subclasses must keep ``do_work()`` bounded in time (block with a timeout)
    so that a shutdown request is noticed.
    """

    def __init__(
        self,
        executor: Executor,
        *dependencies: LifeCycle,
        name: Optional[str] = None,
    ) -> None:
        self._executor = executor
        self._dependencies: Tuple[LifeCycle, ...] = tuple(dependencies)
        self._name = name or type(self).__name__
        self._status = LifeCycleStatus.INACTIVE
        self._status_lock = threading.Condition()
        self._exception: Optional[BaseException] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def status(self) -> LifeCycleStatus:
        return self._status

    @property
    def exception(self) -> Optional[BaseException]:
        """The error that stopped the worker, if any"""
        return self._exception

    @property
    def dependencies(self) -> Tuple[LifeCycle, ...]:
        return self._dependencies

    @abstractmethod
    def do_work(self) -> None:
        """One bounded unit of work."""
        ...

    @abstractmethod
    def do_shutdown(self) -> None:
        """Release everything the worker holds."""
        ...

    def start(self) -> None:
        """Activate the worker and schedule its loop on the executor."""
        logger.info(f"starting {self}")
        with self._status_lock:
            if self._status == LifeCycleStatus.SHUTDOWN_REQUEST:
                # shutdown was requested before the loop ever ran
                self._run_shutdown()
                return
            if self._status.is_past(LifeCycleStatus.SHUTDOWN_REQUEST):
                return
            if self._status == LifeCycleStatus.ACTIVE:
                raise LifeCycleStateError(f"{self} is already active")
            self.exception_if_dependencies_not_active()
            self._set_status(LifeCycleStatus.ACTIVE)

        try:
            self._executor.submit(self.run)
        except RuntimeError as e:
            logger.error(f"{self} could not schedule its work loop: {e}")
            self.record_exception(e)
            self._run_shutdown()
            raise

    def run(self) -> None:
        """Work loop; always ends in SHUT_DOWN."""
        try:
            while self.should_do_work():
                self.do_work()
        except Exception as e:
            logger.error(f"{self} stopped after exception doing work: {e}", exc_info=True)
            self.record_exception(e)
        finally:
            self._run_shutdown()
        logger.info(f"{self} stopped")

    def should_do_work(self) -> bool:
        try:
            self.exception_if_dependencies_not_active()
        except LifeCycleStateError:
            return False
        return self._status == LifeCycleStatus.ACTIVE and self._exception is None

    def shutdown(self, wait_seconds: float = 0) -> bool:
        """
        Request shutdown and wait up to ``wait_seconds`` for it to finish.

        Returns:
            True if the worker reached SHUT_DOWN within the wait
        """
        with self._status_lock:
            if self._status == LifeCycleStatus.INACTIVE:
                self._run_shutdown()
                return True
            if self._status == LifeCycleStatus.ACTIVE:
                logger.debug(f"shutdown requested for {self}")
                self._set_status(LifeCycleStatus.SHUTDOWN_REQUEST)

        reached = self.wait_for(LifeCycleStatus.SHUT_DOWN, wait_seconds)
        if not reached and wait_seconds > 0:
            logger.warning(f"{self} did not shut down within {wait_seconds}s")
        return reached

    def wait_for(self, status: LifeCycleStatus, timeout: Optional[float]) -> bool:
        """Block until the status has reached ``status`` or the timeout passes."""
        with self._status_lock:
            return self._status_lock.wait_for(
                lambda: self._status.rank >= status.rank, timeout
            )

    def record_exception(self, error: BaseException) -> None:
        """Remember the first fatal error; it stops the work loop."""
        with self._status_lock:
            if self._exception is None:
                self._exception = error
            self._status_lock.notify_all()

    def exception_if_not_active(self) -> None:
        if self._status != LifeCycleStatus.ACTIVE:
            raise LifeCycleStateError(f"{self} is not active")

    def exception_if_dependencies_not_active(self) -> None:
        for dependency in self._dependencies:
            if dependency.status != LifeCycleStatus.ACTIVE:
                raise LifeCycleStateError(
                    f"dependency {dependency} of {self._name} is {dependency.status.value}"
                )

    def _run_shutdown(self) -> None:
        with self._status_lock:
            if self._status.rank >= LifeCycleStatus.SHUTTING_DOWN.rank:
                return
            self._set_status(LifeCycleStatus.SHUTTING_DOWN)
        try:
            self.do_shutdown()
        except Exception as e:
            logger.error(f"{self} failed during shutdown: {e}", exc_info=True)
            self.record_exception(e)
        finally:
            self._set_status(LifeCycleStatus.SHUT_DOWN)

    def _set_status(self, status: LifeCycleStatus) -> None:
        with self._status_lock:
            if status.rank < self._status.rank:
                raise LifeCycleStateError(
                    f"{self} cannot move from {self._status.value} back to {status.value}"
                )
            self._status = status
            self._status_lock.notify_all()

    def __repr__(self) -> str:
        return f"{self._name}(status={self._status.value})"
