"""
A single HTTP request and its retry bookkeeping
"""

import logging
from typing import Optional, Sequence, Tuple

import httpx

from .types import Endpoint, RequestFilter

logger = logging.getLogger(__name__)

# Headers that describe a body and must go when the body does
_CONTENT_HEADERS = ("content-length", "content-type", "content-md5", "transfer-encoding")


class HttpCommand:
    """
    Mutable request state carried across attempts.

    Filters run before every attempt, so a retried or redirected request is
    signed again against its current method, URL and headers.
    """

    def __init__(
        self,
        request: httpx.Request,
        filters: Sequence[RequestFilter] = (),
    ) -> None:
        self._request = request
        self._filters: Tuple[RequestFilter, ...] = tuple(filters)
        self.failure_count = 0
        self.redirect_count = 0
        self.exception: Optional[BaseException] = None

    @property
    def current_request(self) -> httpx.Request:
        return self._request

    @current_request.setter
    def current_request(self, request: httpx.Request) -> None:
        self._request = request

    @property
    def filters(self) -> Tuple[RequestFilter, ...]:
        return self._filters

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint.from_url(self._request.url)

    def is_replayable(self) -> bool:
        """Whether the body can be sent again."""
        try:
            self._request.content
        except httpx.RequestNotRead:
            return False
        return True

    def increment_failure_count(self) -> int:
        self.failure_count += 1
        return self.failure_count

    def increment_redirect_count(self) -> int:
        self.redirect_count += 1
        return self.redirect_count

    def apply_filters(self) -> httpx.Request:
        """Run every filter over the current request."""
        for request_filter in self._filters:
            request_filter.filter(self._request)
        return self._request

    def set_host_and_port(self, host: str, port: Optional[int], scheme: Optional[str] = None) -> None:
        """Point the request at another host, keeping path and query."""
        url = self._request.url.copy_with(
            scheme=scheme or self._request.url.scheme,
            host=host,
            port=port,
        )
        logger.debug(f"redirecting {self._request.method} {self._request.url} to {url}")
        self._request.url = url
        self._request.headers["Host"] = url.netloc.decode("ascii")

    def change_to_get_request(self) -> None:
        """Turn the request into a bodiless GET (303 See Other)."""
        headers = self._request.headers.copy()
        for name in _CONTENT_HEADERS:
            headers.pop(name, None)
        self._request = httpx.Request(
            "GET",
            self._request.url,
            headers=headers,
            extensions=self._request.extensions,
        )

    def __repr__(self) -> str:
        return (
            f"HttpCommand({self._request.method} {self._request.url}, "
            f"failures={self.failure_count}, redirects={self.redirect_count})"
        )
