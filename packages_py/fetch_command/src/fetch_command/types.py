"""
Type definitions for fetch_command
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Protocol

import httpx

if TYPE_CHECKING:
    from .command import HttpCommand


DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Endpoint:
    """Scheme, host and port a pool connects to"""

    scheme: str
    host: str
    port: int

    @classmethod
    def from_url(cls, url: "httpx.URL | str") -> "Endpoint":
        url = httpx.URL(url)
        if not url.host:
            raise ValueError(f"URL has no host: {url}")
        scheme = url.scheme or "https"
        port = url.port or DEFAULT_PORTS.get(scheme)
        if port is None:
            raise ValueError(f"no default port for scheme {scheme!r}")
        return cls(scheme=scheme, host=url.host, port=port)

    @property
    def key(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.key


class RequestFilter(Protocol):
    """Mutates an outgoing request, e.g. to sign it"""

    def filter(self, request: httpx.Request) -> None:
        ...


class RetryHandler(Protocol):
    def should_retry_request(self, command: "HttpCommand", response: httpx.Response) -> bool:
        ...


class ResubmitHandler(Protocol):
    """Counts a transport failure; False once the command should stop resubmitting"""

    def should_resubmit(self, command: "HttpCommand", error: BaseException) -> bool:
        ...


class ErrorHandler(Protocol):
    def handle_error(self, command: "HttpCommand", response: httpx.Response) -> BaseException:
        ...


# Turns a successful response into the caller's result
ResponseTransformer = Callable[[httpx.Response], Any]

# Builds the transport backing one pooled connection
TransportFactory = Callable[[Endpoint], httpx.BaseTransport]

