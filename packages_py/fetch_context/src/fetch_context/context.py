"""
Composition root: builds the command stack by hand from a ContextConfig
"""

import asyncio
import logging
from concurrent.futures import Executor, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, List, Optional, Sequence, Tuple, Union

import httpx

from fetch_command import (
    Endpoint,
    HttpCommand,
    HttpCommandConnectionPoolFactory,
    ResponseTransformer,
    TransformingCommandExecutorService,
    TransportFactory,
    WireLogger,
)
from fetch_errors import ClassifyingErrorHandler
from fetch_lifecycle import LifeCycleStatus, create_executor
from fetch_request_signing import (
    AwsRequestAuthorizeSignature,
    BasicAuthentication,
    CachedTimestamp,
    FormSigner,
    RequestFilter,
    SharedKeyAuthentication,
    SharedKeyLiteAuthentication,
    http_date,
    iso8601_timestamp,
)
from fetch_retry import Sleeper, create_retry_handler, sync_sleep

from .loader import ConfigLoadError
from .transport import AsyncContextTransport, ContextTransport
from .types import ContextConfig, SigningScheme, SigningSettings

logger = logging.getLogger(__name__)


def default_transport_factory(endpoint: Endpoint) -> httpx.BaseTransport:
    """One socket per pooled connection; the pool does the pooling."""
    return httpx.HTTPTransport(
        limits=httpx.Limits(max_connections=1, max_keepalive_connections=1),
    )


def build_filters(settings: SigningSettings) -> List[RequestFilter]:
    """Request filters for the configured signing scheme."""
    if settings.scheme == SigningScheme.NONE:
        return []

    identity, credential = settings.resolve_credentials()
    if not identity or not credential:
        raise ConfigLoadError(f"signing scheme {settings.scheme.value} requires identity and credential")

    refresh = settings.timestamp_refresh_seconds
    if settings.scheme == SigningScheme.BASIC:
        return [BasicAuthentication(identity, credential)]
    if settings.scheme == SigningScheme.SHARED_KEY:
        return [SharedKeyAuthentication(identity, credential, CachedTimestamp(http_date, refresh))]
    if settings.scheme == SigningScheme.SHARED_KEY_LITE:
        return [SharedKeyLiteAuthentication(identity, credential, CachedTimestamp(http_date, refresh))]
    if settings.scheme == SigningScheme.AWS_S3:
        return [
            AwsRequestAuthorizeSignature(
                identity,
                credential,
                CachedTimestamp(http_date, refresh),
                service_host=settings.s3_service_host,
            )
        ]
    return [FormSigner(identity, credential, CachedTimestamp(iso8601_timestamp, refresh))]


class RestContext:
    """
    Entry point for running HTTP commands through the pooled stack.

    Use as a context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        config: ContextConfig,
        service: TransformingCommandExecutorService,
        filters: Sequence[RequestFilter],
        executors: Sequence[Executor] = (),
    ) -> None:
        self._config = config
        self._service = service
        self._filters = tuple(filters)
        self._executors = tuple(executors)
        self._base_url = httpx.URL(config.endpoint) if config.endpoint else None
        self._closed = False

    @property
    def config(self) -> ContextConfig:
        return self._config

    @property
    def service(self) -> TransformingCommandExecutorService:
        return self._service

    @property
    def filters(self) -> Tuple[RequestFilter, ...]:
        return self._filters

    @property
    def status(self) -> LifeCycleStatus:
        return self._service.status

    def command_for(self, request: httpx.Request) -> HttpCommand:
        return HttpCommand(request, self._filters)

    def build_request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        *,
        params: Any = None,
        headers: Any = None,
        content: Any = None,
        json: Any = None,
    ) -> HttpCommand:
        """Command for ``url``, resolved against the configured endpoint."""
        if self._base_url is not None:
            url = self._base_url.join(url)
        request = httpx.Request(method, url, params=params, headers=headers, content=content, json=json)
        return self.command_for(request)

    def _as_command(self, command: Union[HttpCommand, httpx.Request]) -> HttpCommand:
        if isinstance(command, httpx.Request):
            return self.command_for(command)
        return command

    def submit(
        self,
        command: Union[HttpCommand, httpx.Request],
        transformer: Optional[ResponseTransformer] = None,
    ) -> Future:
        return self._service.submit(self._as_command(command), transformer)

    def execute(
        self,
        command: Union[HttpCommand, httpx.Request],
        transformer: Optional[ResponseTransformer] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Run a command and wait for its result.

        Raises:
            The error the command failed with, or
            concurrent.futures.TimeoutError after ``timeout`` seconds
        """
        future = self.submit(command, transformer)
        timeout = timeout if timeout is not None else self._config.request_timeout_seconds
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            future.cancel()
            raise

    async def execute_async(
        self,
        command: Union[HttpCommand, httpx.Request],
        transformer: Optional[ResponseTransformer] = None,
    ) -> Any:
        return await asyncio.wrap_future(self.submit(command, transformer))

    def transport(self) -> ContextTransport:
        return ContextTransport(self)

    def async_transport(self) -> AsyncContextTransport:
        return AsyncContextTransport(self)

    def close(self, wait_seconds: float = 5.0) -> bool:
        """
        Shut the service and its pools down.

        Returns:
            True when everything stopped within ``wait_seconds``
        """
        if self._closed:
            return True
        self._closed = True
        stopped = self._service.shutdown(wait_seconds)
        if not stopped:
            logger.warning(f"{self._config.name}: service did not stop within {wait_seconds}s")
        for executor in self._executors:
            executor.shutdown(wait=stopped)
        return stopped

    def __enter__(self) -> "RestContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"RestContext(name={self._config.name!r}, status={self.status.value})"


def build_context(
    config: Optional[ContextConfig] = None,
    transport_factory: Optional[TransportFactory] = None,
    retry_sleep: Sleeper = sync_sleep,
) -> RestContext:
    """
    Wire executors, handlers, signer, pool factory and executor service.

    Args:
        config: Context configuration (defaults apply when omitted)
        transport_factory: Transport for each pooled connection
        retry_sleep: Sleep used by the backoff handler, for retries and
            for resubmits after transport errors

    Returns:
        A RestContext whose service is already ACTIVE
    """
    config = config or ContextConfig()
    executor_settings = config.executor

    filters = build_filters(config.signing)
    io_executor = create_executor(executor_settings.io_worker_threads, f"{config.name}-io")
    command_executor = create_executor(
        executor_settings.user_threads,
        f"{config.name}-user",
        within_thread=executor_settings.within_thread,
    )

    retry_handler = create_retry_handler(config.retry.to_retry_config(), sleep=retry_sleep)
    error_handler = ClassifyingErrorHandler()
    wire_logger = WireLogger() if config.wire_log else None
    pool_factory = HttpCommandConnectionPoolFactory(
        io_executor,
        config.pool.to_pool_config(config.name),
        transport_factory or default_transport_factory,
        wire_logger=wire_logger,
        resubmit_handler=retry_handler.backoff_handler,
    )
    service = TransformingCommandExecutorService(
        io_executor,
        command_executor,
        pool_factory,
        retry_handler,
        error_handler,
        poll_seconds=executor_settings.poll_seconds,
        pool_shutdown_seconds=executor_settings.pool_shutdown_seconds,
        name=f"{config.name}-commands",
    )
    service.start()
    logger.info(f"context {config.name} started with {len(filters)} request filters")
    return RestContext(config, service, filters, (command_executor, io_executor))
