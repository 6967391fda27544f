"""
Retrying wrappers for loaders (functions from a key to a value)

A ``RetryPolicy`` is an ordered list of predicates plus a backoff config.
Wrapping is explicit: ``retrying(load, policy)`` returns a loader that
retries ``load`` while the policy allows it.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Optional, Sequence, Type, TypeVar, Union

from .config import async_sleep, calculate_delay, sync_sleep
from .types import RetryConfig, RetryEvent, RetryEventListener, RetryResult, Sleeper


logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

RetryPredicate = Callable[[BaseException], bool]


def retry_on(*error_types: Type[BaseException]) -> RetryPredicate:
    """Predicate matching any of ``error_types``."""
    return lambda error: isinstance(error, error_types)


@dataclass
class RetryPolicy:
    """Which failures to retry, and how long to wait between attempts"""

    predicates: Sequence[Union[RetryPredicate, Type[BaseException]]]
    config: RetryConfig = field(default_factory=lambda: RetryConfig(max_retries=3))

    def matches(self, error: BaseException) -> bool:
        """Whether any predicate, checked in order, accepts ``error``."""
        for predicate in self.predicates:
            if isinstance(predicate, type):
                if isinstance(error, predicate):
                    return True
            elif predicate(error):
                return True
        return False

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        return attempt < self.config.max_retries and self.matches(error)

    def delay_for(self, attempt: int) -> float:
        return calculate_delay(attempt + 1, self.config)


class _RetryingBase:
    def __init__(self, policy: RetryPolicy, loader_id: Optional[str] = None):
        self._policy = policy
        self._id = loader_id or f"retry-{int(time.time() * 1000)}"
        self._listeners: list[RetryEventListener] = []

    def _emit(self, event: RetryEvent) -> None:
        """Emit an event to all listeners."""
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"{self._id}: retry listener failed: {e}")

    def on(self, listener: RetryEventListener) -> Callable[[], None]:
        """
        Add an event listener.

        Args:
            listener: Event listener function

        Returns:
            Function to remove the listener
        """
        self._listeners.append(listener)
        return lambda: self.off(listener)

    def off(self, listener: RetryEventListener) -> None:
        """Remove an event listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def id(self) -> str:
        return self._id

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def _after_failure(self, error: Exception, attempt: int, key: object) -> Optional[float]:
        """Emit failure events; the delay to wait, or None to give up."""
        will_retry = self._policy.should_retry(error, attempt)
        self._emit(RetryEvent(
            type="attempt:fail",
            attempt=attempt,
            data={"key": key, "error": str(error), "will_retry": will_retry},
        ))
        if not will_retry:
            if self._policy.matches(error):
                self._emit(RetryEvent(type="retry:abort", attempt=attempt, data={"key": key}))
                logger.warning(f"{self._id}: giving up on {key!r} after {attempt + 1} attempts: {error}")
            return None

        delay = self._policy.delay_for(attempt)
        self._emit(RetryEvent(type="retry:wait", attempt=attempt, data={"delay_seconds": delay}))
        logger.debug(f"{self._id}: retrying {key!r} in {delay:.3f}s after {type(error).__name__}")
        return delay


class RetryingLoader(_RetryingBase, Generic[K, V]):
    """
    Loader that retries the wrapped loader on matching failures.

    Example:
        load_bucket = retrying(client.get_bucket, RetryPolicy([ResourceNotFoundError]))
        bucket = load_bucket("logs")
    """

    def __init__(
        self,
        loader: Callable[[K], V],
        policy: RetryPolicy,
        loader_id: Optional[str] = None,
        sleep: Sleeper = sync_sleep,
    ):
        super().__init__(policy, loader_id)
        self._loader = loader
        self._sleep = sleep

    def __call__(self, key: K) -> V:
        return self.load_with_result(key).result

    def load(self, key: K) -> V:
        return self.load_with_result(key).result

    def load_with_result(self, key: K) -> RetryResult[V]:
        start_time = time.monotonic()
        delay_time = 0.0
        attempt = 0

        while True:
            self._emit(RetryEvent(type="attempt:start", attempt=attempt, data={"key": key}))
            try:
                value = self._loader(key)
            except Exception as error:
                delay = self._after_failure(error, attempt, key)
                if delay is None:
                    raise
                delay_time += delay
                self._sleep(delay)
                attempt += 1
                continue

            self._emit(RetryEvent(type="attempt:success", attempt=attempt, data={"key": key}))
            return RetryResult(
                result=value,
                retries=attempt,
                total_time_seconds=time.monotonic() - start_time,
                delay_time_seconds=delay_time,
            )


class AsyncRetryingLoader(_RetryingBase, Generic[K, V]):
    """Async counterpart of RetryingLoader"""

    def __init__(
        self,
        loader: Callable[[K], Awaitable[V]],
        policy: RetryPolicy,
        loader_id: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = async_sleep,
    ):
        super().__init__(policy, loader_id)
        self._loader = loader
        self._sleep = sleep

    async def __call__(self, key: K) -> V:
        return (await self.load_with_result(key)).result

    async def load_with_result(self, key: K) -> RetryResult[V]:
        start_time = time.monotonic()
        delay_time = 0.0
        attempt = 0

        while True:
            self._emit(RetryEvent(type="attempt:start", attempt=attempt, data={"key": key}))
            try:
                value = await self._loader(key)
            except Exception as error:
                delay = self._after_failure(error, attempt, key)
                if delay is None:
                    raise
                delay_time += delay
                await self._sleep(delay)
                attempt += 1
                continue

            self._emit(RetryEvent(type="attempt:success", attempt=attempt, data={"key": key}))
            return RetryResult(
                result=value,
                retries=attempt,
                total_time_seconds=time.monotonic() - start_time,
                delay_time_seconds=delay_time,
            )


def retrying(
    loader: Callable[[K], V],
    policy: RetryPolicy,
    loader_id: Optional[str] = None,
) -> RetryingLoader[K, V]:
    """Wrap ``loader`` so it retries according to ``policy``."""
    return RetryingLoader(loader, policy, loader_id)


def retrying_async(
    loader: Callable[[K], Awaitable[V]],
    policy: RetryPolicy,
    loader_id: Optional[str] = None,
) -> AsyncRetryingLoader[K, V]:
    """Wrap an async ``loader`` so it retries according to ``policy``."""
    return AsyncRetryingLoader(loader, policy, loader_id)
