"""
Type definitions for fetch_request_signing
"""

from abc import ABC, abstractmethod
from typing import Callable

import httpx


# Seconds since the epoch -> header value
TimestampFormatter = Callable[[float], str]

Clock = Callable[[], float]


class RequestFilter(ABC):
    """Mutates an outgoing request in place before each attempt"""

    @abstractmethod
    def filter(self, request: httpx.Request) -> None:
        ...
