"""
Exceptions raised for HTTP error responses
"""

from typing import TYPE_CHECKING, Optional

import httpx

from .types import ErrorKind, ErrorPayload

if TYPE_CHECKING:
    from fetch_command import HttpCommand


class HttpResponseError(Exception):
    """An HTTP response the caller cannot use."""

    code = "HTTP_RESPONSE"
    kind = ErrorKind.HTTP_RESPONSE

    def __init__(
        self,
        message: str,
        command: Optional["HttpCommand"] = None,
        response: Optional[httpx.Response] = None,
        payload: Optional[ErrorPayload] = None,
    ) -> None:
        super().__init__(message)
        self.command = command
        self.response = response
        self.payload = payload

    @property
    def status(self) -> Optional[int]:
        return self.response.status_code if self.response is not None else None

    @property
    def content(self) -> Optional[str]:
        if self.response is None:
            return None
        return self.response.text

    @property
    def error_code(self) -> Optional[str]:
        """Provider error code, e.g. ``NoSuchKey``."""
        return self.payload.code if self.payload else None


class AuthorizationError(HttpResponseError):
    """Credentials were missing, wrong or not allowed to do this."""

    code = "AUTHORIZATION"
    kind = ErrorKind.AUTHORIZATION


class ResourceNotFoundError(HttpResponseError):
    """The addressed resource does not exist."""

    code = "NOT_FOUND"
    kind = ErrorKind.NOT_FOUND


class IllegalStateError(HttpResponseError):
    """The resource is in a state that does not allow the operation."""

    code = "ILLEGAL_STATE"
    kind = ErrorKind.ILLEGAL_STATE


ERROR_TYPES = {
    ErrorKind.AUTHORIZATION: AuthorizationError,
    ErrorKind.NOT_FOUND: ResourceNotFoundError,
    ErrorKind.ILLEGAL_STATE: IllegalStateError,
    ErrorKind.HTTP_RESPONSE: HttpResponseError,
}
