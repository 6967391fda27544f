"""
Executor service that runs HTTP commands through per-endpoint pools

Commands wait on one FIFO queue. The service loop takes each command, finds
(or starts) the pool for its endpoint and runs it on the command executor.
The same queue is every pool's resubmit queue, so retried and redirected
commands go back through the loop and may land on a different pool.
"""

import logging
import queue
import threading
from concurrent.futures import Executor, Future
from typing import Callable, Dict, List, Optional

import httpx

from fetch_connection_pool import ConnectionPoolTimeoutError
from fetch_lifecycle import BaseLifeCycle, LifeCycle, LifeCycleStateError, LifeCycleStatus

from .command import HttpCommand
from .http_pool import HttpCommandConnectionPool
from .rendezvous import HttpCommandRendezvous
from .types import Endpoint, ErrorHandler, ResponseTransformer, RetryHandler

logger = logging.getLogger(__name__)

PoolFactory = Callable[..., HttpCommandConnectionPool]


class TransformingCommandExecutorService(BaseLifeCycle):
    """Dispatches queued commands to endpoint pools"""

    def __init__(
        self,
        executor: Executor,
        command_executor: Executor,
        pool_factory: PoolFactory,
        retry_handler: RetryHandler,
        error_handler: ErrorHandler,
        *dependencies: LifeCycle,
        command_queue: "Optional[queue.Queue[HttpCommandRendezvous]]" = None,
        poll_seconds: float = 0.1,
        pool_shutdown_seconds: float = 1.0,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(executor, *dependencies, name=name or "command-executor-service")
        self._command_executor = command_executor
        self._pool_factory = pool_factory
        self._retry_handler = retry_handler
        self._error_handler = error_handler
        self._command_queue: "queue.Queue[HttpCommandRendezvous]" = command_queue or queue.Queue()
        self._poll_seconds = poll_seconds
        self._pool_shutdown_seconds = pool_shutdown_seconds
        self._pools: Dict[str, HttpCommandConnectionPool] = {}
        self._pools_lock = threading.Lock()

    @property
    def command_queue(self) -> "queue.Queue[HttpCommandRendezvous]":
        return self._command_queue

    @property
    def pools(self) -> List[HttpCommandConnectionPool]:
        with self._pools_lock:
            return list(self._pools.values())

    def submit(
        self,
        command: HttpCommand,
        transformer: Optional[ResponseTransformer] = None,
    ) -> Future:
        """
        Queue a command for execution.

        Returns:
            Future completed with the transformed response, or with the
            error the command failed with
        """
        self.exception_if_not_active()
        rendezvous = HttpCommandRendezvous(command, transformer)
        self._command_queue.put(rendezvous)
        if self.status != LifeCycleStatus.ACTIVE:
            # raced with shutdown; nothing will take it off the queue
            self._fail_queued_commands()
        return rendezvous.future

    def do_work(self) -> None:
        try:
            rendezvous = self._command_queue.get(timeout=self._poll_seconds)
        except queue.Empty:
            return
        if rendezvous.is_done():
            return
        try:
            self._command_executor.submit(self._invoke, rendezvous)
        except RuntimeError as e:
            logger.error(f"command executor rejected {rendezvous.command}: {e}")
            rendezvous.set_exception(e)

    def do_shutdown(self) -> None:
        with self._pools_lock:
            pools = list(self._pools.values())
            self._pools.clear()
        for pool in pools:
            pool.shutdown(self._pool_shutdown_seconds)
        failed = self._fail_queued_commands()
        logger.info(f"{self.name}: shut down {len(pools)} pools, failed {failed} queued commands")

    def handle_response(self, rendezvous: HttpCommandRendezvous, response: httpx.Response) -> None:
        """Complete, retry or fail a command given the response it got."""
        command = rendezvous.command
        try:
            if response.status_code < 300:
                rendezvous.set_response(response)
                return
            if self._retry_handler.should_retry_request(command, response):
                if self.should_do_work():
                    logger.debug(f"retrying {command} after {response.status_code}")
                    self._command_queue.put(rendezvous)
                    return
                logger.warning(f"{self.name} is not active; not retrying {command}")
            rendezvous.set_exception(self._error_handler.handle_error(command, response))
        except Exception as e:
            logger.error(f"error handling response to {command}: {e}", exc_info=True)
            rendezvous.set_exception(e)

    def _invoke(self, rendezvous: HttpCommandRendezvous) -> None:
        command = rendezvous.command
        try:
            pool = self._get_pool(command.endpoint)
            handle = pool.get_handle(rendezvous)
        except ConnectionPoolTimeoutError as e:
            if self.should_do_work():
                logger.warning(f"{e}; requeueing {command}")
                self._command_queue.put(rendezvous)
            else:
                rendezvous.set_exception(e)
            return
        except Exception as e:
            logger.error(f"could not get a connection for {command}: {e}")
            rendezvous.set_exception(e)
            return
        handle.start_connection()

    def _get_pool(self, endpoint: Endpoint) -> HttpCommandConnectionPool:
        with self._pools_lock:
            pool = self._pools.get(endpoint.key)
            if pool is not None and pool.status == LifeCycleStatus.ACTIVE:
                return pool
            if pool is not None:
                logger.info(f"replacing {pool} after {pool.exception}")
            self.exception_if_not_active()
            pool = self._pool_factory(endpoint, self._command_queue, self.handle_response, self)
            pool.start()
            self._pools[endpoint.key] = pool
            return pool

    def _fail_queued_commands(self) -> int:
        failed = 0
        while True:
            try:
                rendezvous = self._command_queue.get_nowait()
            except queue.Empty:
                return failed
            if rendezvous.set_exception(LifeCycleStateError(f"{self} shut down before the command ran")):
                failed += 1
