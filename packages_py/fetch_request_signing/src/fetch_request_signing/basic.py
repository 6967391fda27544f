import base64

import httpx

from .types import RequestFilter


def _base64_encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("utf-8")


def basic_auth_header(username: str, password: str) -> str:
    """
    Encodes credentials as an RFC 7617 Basic Authorization value.

    Raises:
        ValueError: when either part is missing
    """
    if not username or not password:
        raise ValueError("Basic auth requires username and password")
    return f"Basic {_base64_encode(f'{username}:{password}')}"


class BasicAuthentication(RequestFilter):
    """Sets a fixed Basic Authorization header"""

    def __init__(self, username: str, password: str) -> None:
        self._header = basic_auth_header(username, password)
        self._username = username

    def filter(self, request: httpx.Request) -> None:
        request.headers["Authorization"] = self._header

    def __repr__(self) -> str:
        return f"BasicAuthentication(username={self._username!r})"
