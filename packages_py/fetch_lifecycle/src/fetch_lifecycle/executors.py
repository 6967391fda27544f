"""
Executors for worker loops and command execution
"""

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable

logger = logging.getLogger(__name__)


class WithinThreadExecutor(Executor):
    """
    Executor that runs each callable immediately in the submitting thread.

    Useful for synchronous and test contexts. Do not hand it to
    ``BaseLifeCycle.start()``: the worker loop would run inside ``start()``.
    """

    def __init__(self) -> None:
        self._shutdown = False
        self._lock = threading.Lock()

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot schedule new futures after shutdown")

        future: Future = Future()
        if not future.set_running_or_notify_cancel():
            return future
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        return future

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        with self._lock:
            self._shutdown = True


def create_executor(
    threads: int,
    name: str,
    within_thread: bool = False,
) -> Executor:
    """
    Create an executor for commands or worker loops.

    Args:
        threads: Maximum worker threads for the thread pool
        name: Thread name prefix
        within_thread: Run work in the caller's thread instead

    Returns:
        Executor instance
    """
    if within_thread:
        logger.debug(f"create_executor: {name} runs within the calling thread")
        return WithinThreadExecutor()
    if threads < 1:
        raise ValueError("threads must be at least 1")
    logger.debug(f"create_executor: {name} with {threads} threads")
    return ThreadPoolExecutor(max_workers=threads, thread_name_prefix=name)
