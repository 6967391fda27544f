"""
httpx transports that send requests through a RestContext

    with build_context(config) as context:
        client = httpx.Client(transport=context.transport(), base_url=...)
        client.get("/bucket/key").raise_for_status()

Error responses come back as ordinary responses so httpx callers can use
``raise_for_status``; transport failures surface as the httpx exceptions
the pool raised.
"""

import asyncio
from typing import TYPE_CHECKING

import httpx

from fetch_errors import HttpResponseError

if TYPE_CHECKING:
    from .context import RestContext

# The body below is already decoded and complete
_STALE_HEADERS = ("content-encoding", "content-length", "transfer-encoding")


def _copy_response(response: httpx.Response, request: httpx.Request) -> httpx.Response:
    headers = [
        (name, value)
        for name, value in response.headers.multi_items()
        if name.lower() not in _STALE_HEADERS
    ]
    return httpx.Response(
        response.status_code,
        headers=headers,
        content=response.content,
        request=request,
        extensions={"http_version": response.extensions.get("http_version", b"HTTP/1.1")},
    )


class ContextTransport(httpx.BaseTransport):
    """Synchronous transport backed by the context's executor service"""

    def __init__(self, context: "RestContext") -> None:
        self._context = context

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        request.read()
        try:
            response = self._context.execute(self._context.command_for(request))
        except HttpResponseError as error:
            if error.response is None:
                raise
            response = error.response
        return _copy_response(response, request)


class AsyncContextTransport(httpx.AsyncBaseTransport):
    """Async transport; the command still runs on the context's threads"""

    def __init__(self, context: "RestContext") -> None:
        self._context = context

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        future = self._context.submit(self._context.command_for(request))
        try:
            response = await asyncio.wrap_future(future)
        except HttpResponseError as error:
            if error.response is None:
                raise
            response = error.response
        return _copy_response(response, request)
