"""
One pooled HTTP connection backed by an httpx transport
"""

import logging
import threading

import httpx

from .types import Endpoint

logger = logging.getLogger(__name__)


class HttpConnection:
    """
    Sends requests to a single endpoint over its own transport.

    The transport should hold at most one socket so that a pool of these
    bounds the number of open connections.
    """

    def __init__(self, endpoint: Endpoint, transport: httpx.BaseTransport) -> None:
        self._endpoint = endpoint
        self._transport = transport
        self._open = True
        self._lock = threading.Lock()

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def is_open(self) -> bool:
        return self._open

    def send(self, request: httpx.Request) -> httpx.Response:
        """Send ``request`` and read the whole response body."""
        if not self._open:
            raise httpx.ConnectError(f"connection to {self._endpoint} is closed", request=request)
        response = self._transport.handle_request(request)
        try:
            response.read()
        finally:
            response.close()
        response.request = request
        return response

    def close(self) -> None:
        with self._lock:
            if not self._open:
                return
            self._open = False
        logger.debug(f"closing connection to {self._endpoint}")
        self._transport.close()

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return f"HttpConnection({self._endpoint}, {state})"
