"""
Shared fixtures for fetch_command tests.
"""
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from fetch_command import (
    HttpCommandConnectionPoolFactory,
    TransformingCommandExecutorService,
)
from fetch_connection_pool import ConnectionPoolConfig


class NeverRetry:
    """Retry handler that always gives up"""

    def should_retry_request(self, command, response):
        return False


class StatusError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"status {status_code}")
        self.status_code = status_code


class StatusErrorHandler:
    """Error handler that reports the status code"""

    def handle_error(self, command, response):
        error = StatusError(response.status_code)
        command.exception = error
        return error


@pytest.fixture
def io_executor():
    executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="test-io")
    yield executor
    executor.shutdown(wait=True)


@pytest.fixture
def pool_config():
    return ConnectionPoolConfig(
        id="test-pool",
        max_connections=2,
        connection_timeout_seconds=2.0,
        producer_poll_seconds=0.01,
    )


@pytest.fixture
def make_service(io_executor, pool_config):
    """Build and start a service whose connections use ``handler``."""
    services = []
    command_executors = []

    def factory(handler, retry_handler=None, error_handler=None, transport_factory=None, executor=None):
        executor = executor or io_executor
        command_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="test-cmd")
        command_executors.append(command_executor)
        pool_factory = HttpCommandConnectionPoolFactory(
            executor,
            pool_config,
            transport_factory or (lambda endpoint: httpx.MockTransport(handler)),
        )
        service = TransformingCommandExecutorService(
            executor,
            command_executor,
            pool_factory,
            retry_handler or NeverRetry(),
            error_handler or StatusErrorHandler(),
            poll_seconds=0.01,
        )
        services.append(service)
        service.start()
        return service

    yield factory
    for service in services:
        service.shutdown(wait_seconds=2)
    for command_executor in command_executors:
        command_executor.shutdown(wait=True)
