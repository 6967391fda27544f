"""
Completion point shared by a caller and the worker running its command
"""

import logging
import threading
from concurrent.futures import Future, InvalidStateError
from typing import Any, Optional

import httpx

from .command import HttpCommand
from .types import ResponseTransformer

logger = logging.getLogger(__name__)


class HttpCommandRendezvous:
    """
    Pairs a command with the future its caller waits on.

    The future completes at most once; later ``set_response`` or
    ``set_exception`` calls return False and change nothing.
    """

    def __init__(
        self,
        command: HttpCommand,
        transformer: Optional[ResponseTransformer] = None,
    ) -> None:
        self._command = command
        self._transformer = transformer
        self._future: Future = Future()
        self._lock = threading.Lock()

    @property
    def command(self) -> HttpCommand:
        return self._command

    @property
    def future(self) -> Future:
        return self._future

    def is_done(self) -> bool:
        return self._future.done()

    def is_cancelled(self) -> bool:
        return self._future.cancelled()

    def cancel(self) -> bool:
        return self._future.cancel()

    def set_response(self, response: httpx.Response) -> bool:
        """Complete with the transformed response."""
        if self._future.done():
            return False
        try:
            result: Any = self._transformer(response) if self._transformer else response
        except Exception as e:
            logger.debug(f"transformer failed for {self._command}: {e}")
            return self.set_exception(e)
        return self._complete(result=result)

    def set_exception(self, error: BaseException) -> bool:
        """Fail the command with ``error``."""
        if self._command.exception is None:
            self._command.exception = error
        return self._complete(error=error)

    def _complete(self, result: Any = None, error: Optional[BaseException] = None) -> bool:
        with self._lock:
            if self._future.done():
                return False
            try:
                if error is not None:
                    self._future.set_exception(error)
                else:
                    self._future.set_result(result)
            except InvalidStateError:
                # cancelled by the caller between the check and the set
                return False
        return True

    def __repr__(self) -> str:
        return f"HttpCommandRendezvous({self._command!r})"
