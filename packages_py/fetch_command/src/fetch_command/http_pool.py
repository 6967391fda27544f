"""
Connection pool and handle that run HTTP commands
"""

import logging
import queue
from concurrent.futures import Executor
from dataclasses import replace
from typing import Callable, Optional

import httpx

from fetch_connection_pool import ConnectionHandle, ConnectionPool, ConnectionPoolConfig
from fetch_lifecycle import LifeCycle

from .command import HttpCommand
from .connection import HttpConnection
from .rendezvous import HttpCommandRendezvous
from .types import Endpoint, ResubmitHandler, TransportFactory
from .wire import WireLogger

logger = logging.getLogger(__name__)

ResponseCallback = Callable[[HttpCommandRendezvous, httpx.Response], None]

# Failures after which the same request may succeed on a fresh connection
RESUBMITTABLE_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    httpx.ProxyError,
)

DEFAULT_RESUBMIT_LIMIT = 5


class LimitedResubmitHandler:
    """Allows ``limit`` resubmissions per command, with no delay between them"""

    def __init__(self, limit: int = DEFAULT_RESUBMIT_LIMIT) -> None:
        self._limit = limit

    def should_resubmit(self, command: HttpCommand, error: BaseException) -> bool:
        failures = command.increment_failure_count()
        if failures > self._limit:
            logger.warning(f"{command} exceeded resubmit limit {self._limit} after {type(error).__name__}")
            return False
        return True


class HttpConnectionHandle(ConnectionHandle):
    """Runs one command over one checked-out connection"""

    def __init__(
        self,
        pool: "HttpCommandConnectionPool",
        rendezvous: HttpCommandRendezvous,
        connection: HttpConnection,
        response_callback: ResponseCallback,
        wire_logger: Optional[WireLogger] = None,
    ) -> None:
        self._pool = pool
        self._rendezvous = rendezvous
        self._connection = connection
        self._response_callback = response_callback
        self._wire_logger = wire_logger

    @property
    def connection(self) -> HttpConnection:
        return self._connection

    @property
    def rendezvous(self) -> HttpCommandRendezvous:
        return self._rendezvous

    def start_connection(self) -> None:
        command = self._rendezvous.command
        if self._rendezvous.is_done():
            logger.debug(f"{command} was completed or cancelled before it ran")
            self._pool.release_connection(self._connection)
            return

        try:
            request = command.apply_filters()
        except Exception as e:
            logger.error(f"filter failed for {command}: {e}")
            self._pool.release_connection(self._connection)
            self._rendezvous.set_exception(e)
            return

        if self._wire_logger:
            self._wire_logger.log_request(request)

        try:
            response = self._connection.send(request)
        except RESUBMITTABLE_ERRORS as e:
            logger.warning(f"{type(e).__name__} sending {command}: {e}")
            self._pool.resubmit_if_request_is_replayable(self._connection, e)
            self._pool.destroy_connection(self._connection)
            return
        except httpx.UnsupportedProtocol as e:
            self._pool.fatal_exception(e, self._connection)
            return
        except httpx.HTTPError as e:
            logger.warning(f"request error for {command}: {e}")
            self._pool.release_connection(self._connection)
            self._rendezvous.set_exception(e)
            return
        except Exception as e:
            self._pool.fatal_exception(e, self._connection)
            return

        if self._wire_logger:
            self._wire_logger.log_response(response)

        self._pool.release_connection(self._connection)
        self._response_callback(self._rendezvous, response)


class HttpCommandConnectionPool(ConnectionPool[HttpConnection, HttpCommandRendezvous]):
    """Pool of connections to one endpoint"""

    def __init__(
        self,
        executor: Executor,
        config: ConnectionPoolConfig,
        endpoint: Endpoint,
        transport_factory: TransportFactory,
        resubmit_queue: "queue.Queue[HttpCommandRendezvous]",
        response_callback: ResponseCallback,
        *dependencies: LifeCycle,
        wire_logger: Optional[WireLogger] = None,
        resubmit_handler: Optional[ResubmitHandler] = None,
    ) -> None:
        super().__init__(executor, config, resubmit_queue, *dependencies)
        self._endpoint = endpoint
        self._transport_factory = transport_factory
        self._response_callback = response_callback
        self._wire_logger = wire_logger
        self._resubmit_handler = resubmit_handler or LimitedResubmitHandler()

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    def _create_connection(self) -> HttpConnection:
        return HttpConnection(self._endpoint, self._transport_factory(self._endpoint))

    def _is_connection_valid(self, connection: HttpConnection) -> bool:
        return connection.is_open

    def _close_connection(self, connection: HttpConnection) -> None:
        connection.close()

    def _create_handle(
        self, rendezvous: HttpCommandRendezvous, connection: HttpConnection
    ) -> HttpConnectionHandle:
        return HttpConnectionHandle(
            self, rendezvous, connection, self._response_callback, self._wire_logger
        )

    def _is_replayable(self, rendezvous: HttpCommandRendezvous, error: BaseException) -> bool:
        command = rendezvous.command
        if not command.is_replayable():
            return False
        return self._resubmit_handler.should_resubmit(command, error)


class HttpCommandConnectionPoolFactory:
    """Builds a started-on-demand pool per endpoint"""

    def __init__(
        self,
        executor: Executor,
        config: ConnectionPoolConfig,
        transport_factory: TransportFactory,
        wire_logger: Optional[WireLogger] = None,
        resubmit_handler: Optional[ResubmitHandler] = None,
    ) -> None:
        self._executor = executor
        self._config = config
        self._transport_factory = transport_factory
        self._wire_logger = wire_logger
        self._resubmit_handler = resubmit_handler

    def __call__(
        self,
        endpoint: Endpoint,
        resubmit_queue: "queue.Queue[HttpCommandRendezvous]",
        response_callback: ResponseCallback,
        *dependencies: LifeCycle,
    ) -> HttpCommandConnectionPool:
        config = replace(self._config, id=f"{self._config.id}[{endpoint.key}]")
        logger.debug(f"creating pool {config.id}")
        return HttpCommandConnectionPool(
            self._executor,
            config,
            endpoint,
            self._transport_factory,
            resubmit_queue,
            response_callback,
            *dependencies,
            wire_logger=self._wire_logger,
            resubmit_handler=self._resubmit_handler,
        )
