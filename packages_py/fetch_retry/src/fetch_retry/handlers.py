"""
Retry handlers that decide whether a failed HTTP command runs again
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from fetch_command import Endpoint, HttpCommand

from .config import DEFAULT_RETRY_CONFIG, calculate_delay, is_retryable_status, merge_config, parse_retry_after, sync_sleep
from .types import RetryConfig, Sleeper

logger = logging.getLogger(__name__)

SAFE_REDIRECT_METHODS = ("GET", "HEAD")


class HttpRetryHandler(ABC):
    """Decides whether a command that got ``response`` should be sent again"""

    @abstractmethod
    def should_retry_request(self, command: HttpCommand, response: httpx.Response) -> bool:
        ...


class BackoffLimitedRetryHandler(HttpRetryHandler):
    """
    Retries with a growing delay until the failure limit is passed.

    Each call counts one failure on the command. Once the count exceeds the
    limit the handler keeps answering False for that command.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Sleeper = sync_sleep,
    ) -> None:
        self._config = merge_config(config)
        self._sleep = sleep

    @property
    def retry_count_limit(self) -> int:
        return self._config.max_retries

    def should_retry_request(self, command: HttpCommand, response: httpx.Response) -> bool:
        if not command.is_replayable():
            logger.error(f"cannot retry after server error, command is not replayable: {command}")
            return False

        failures = command.increment_failure_count()
        if failures > self.retry_count_limit:
            logger.warning(
                f"cannot retry after server error, command has exceeded retry limit "
                f"{self.retry_count_limit}: {command}"
            )
            return False

        self.impose_backoff(failures, response)
        return True

    def should_resubmit(self, command: HttpCommand, error: BaseException) -> bool:
        """Count a transport failure on ``command`` and back off before it is resubmitted."""
        failures = command.increment_failure_count()
        if failures > self.retry_count_limit:
            logger.warning(
                f"cannot resubmit after {type(error).__name__}, command has exceeded retry limit "
                f"{self.retry_count_limit}: {command}"
            )
            return False

        self.impose_backoff(failures)
        return True

    def backoff_delay(self, failures: int, response: Optional[httpx.Response] = None) -> float:
        """Seconds to wait before the next attempt."""
        delay = calculate_delay(failures, self._config)
        if (
            response is not None
            and self._config.respect_retry_after
            and response.status_code in (429, 503)
        ):
            retry_after = parse_retry_after(response.headers.get("retry-after"))
            delay = max(delay, min(retry_after, self._config.max_delay_seconds))
        return delay

    def impose_backoff(self, failures: int, response: Optional[httpx.Response] = None) -> None:
        delay = self.backoff_delay(failures, response)
        logger.debug(f"backing off {delay:.3f}s after failure {failures}")
        if delay > 0:
            self._sleep(delay)


class RedirectionRetryHandler(HttpRetryHandler):
    """
    Follows 3xx responses by pointing the command at the Location host.

    A redirect to the scheme, host and port the request already targets is
    treated as a transient condition and handed to the backoff handler.
    """

    def __init__(
        self,
        backoff_handler: BackoffLimitedRetryHandler,
        config: Optional[RetryConfig] = None,
    ) -> None:
        self._backoff_handler = backoff_handler
        self._config = merge_config(config)

    @property
    def retry_count_limit(self) -> int:
        return self._config.max_redirects

    def should_retry_request(self, command: HttpCommand, response: httpx.Response) -> bool:
        if not command.is_replayable():
            logger.error(f"cannot follow redirect, command is not replayable: {command}")
            return False

        location = response.headers.get("location")
        redirects = command.increment_redirect_count()
        if redirects > self.retry_count_limit:
            logger.warning(
                f"cannot follow redirect, command has exceeded redirect limit "
                f"{self.retry_count_limit}: {command}"
            )
            return False
        if not location:
            logger.warning(f"{response.status_code} response without Location for {command}")
            return False

        request = command.current_request
        target = request.url.join(location)

        try:
            target_endpoint = Endpoint.from_url(target)
        except ValueError as e:
            logger.warning(f"cannot follow redirect for {command} to {target}: {e}")
            return False

        if response.status_code == 303 and request.method not in SAFE_REDIRECT_METHODS:
            command.change_to_get_request()

        if target_endpoint == Endpoint.from_url(request.url):
            return self._backoff_handler.should_retry_request(command, response)

        logger.debug(f"following {response.status_code} for {command} to {target}")
        command.set_host_and_port(target.host, target.port, scheme=target.scheme)
        return True


class DelegatingRetryHandler(HttpRetryHandler):
    """Routes redirects and retryable server errors to the matching handler"""

    def __init__(
        self,
        redirection_handler: RedirectionRetryHandler,
        backoff_handler: BackoffLimitedRetryHandler,
        config: Optional[RetryConfig] = None,
    ) -> None:
        self._redirection_handler = redirection_handler
        self._backoff_handler = backoff_handler
        self._config = merge_config(config)

    @property
    def backoff_handler(self) -> BackoffLimitedRetryHandler:
        return self._backoff_handler

    def should_retry_request(self, command: HttpCommand, response: httpx.Response) -> bool:
        status = response.status_code
        if 300 <= status < 400:
            return self._redirection_handler.should_retry_request(command, response)
        if is_retryable_status(status, self._config):
            return self._backoff_handler.should_retry_request(command, response)
        return False


def create_retry_handler(
    config: Optional[RetryConfig] = None,
    sleep: Sleeper = sync_sleep,
) -> DelegatingRetryHandler:
    """Wire backoff, redirection and delegating handlers from one config."""
    config = config or DEFAULT_RETRY_CONFIG
    backoff = BackoffLimitedRetryHandler(config, sleep=sleep)
    redirection = RedirectionRetryHandler(backoff, config)
    return DelegatingRetryHandler(redirection, backoff, config)
