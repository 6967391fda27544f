"""
Map HTTP error responses onto ErrorKind and build the matching exception
"""

import logging
from typing import TYPE_CHECKING, Optional

import httpx

from .exceptions import ERROR_TYPES, HttpResponseError
from .payload import parse_error_payload
from .types import ErrorKind, ErrorPayload

if TYPE_CHECKING:
    from fetch_command import HttpCommand

logger = logging.getLogger(__name__)

AUTHORIZATION_CODES = frozenset({
    "AccessDenied",
    "AuthFailure",
    "AuthenticationFailed",
    "InvalidAccessKeyId",
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
    "UnauthorizedOperation",
})

NOT_FOUND_CODES = frozenset({
    "BlobNotFound",
    "ContainerNotFound",
    "NoSuchBucket",
    "NoSuchKey",
    "NoSuchUpload",
    "ResourceNotFound",
})

ILLEGAL_STATE_CODES = frozenset({
    "BucketAlreadyExists",
    "BucketNotEmpty",
    "ContainerAlreadyExists",
    "ContainerBeingDeleted",
    "IncorrectInstanceState",
    "IncorrectState",
    "InvalidState",
})

STATUS_KINDS = {
    401: ErrorKind.AUTHORIZATION,
    403: ErrorKind.AUTHORIZATION,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.ILLEGAL_STATE,
}


def classify_code(code: Optional[str]) -> Optional[ErrorKind]:
    """Kind implied by a provider error code, if any."""
    if not code:
        return None
    if code in AUTHORIZATION_CODES:
        return ErrorKind.AUTHORIZATION
    # EC2 style: InvalidInstanceID.NotFound, InvalidGroup.NotFound
    if code in NOT_FOUND_CODES or code.endswith(".NotFound"):
        return ErrorKind.NOT_FOUND
    if code in ILLEGAL_STATE_CODES:
        return ErrorKind.ILLEGAL_STATE
    return None


def classify_error(status: int, payload: Optional[ErrorPayload] = None) -> ErrorKind:
    """
    Pure mapping from status and parsed body to an ErrorKind.

    A recognised provider code wins over the status, since providers report
    e.g. a missing EC2 resource as 400 ``InvalidInstanceID.NotFound``.
    """
    by_code = classify_code(payload.code if payload else None)
    if by_code is not None:
        return by_code
    return STATUS_KINDS.get(status, ErrorKind.HTTP_RESPONSE)


def build_error(
    command: Optional["HttpCommand"],
    response: httpx.Response,
) -> HttpResponseError:
    """Exception describing ``response``, typed by its classification."""
    payload = parse_error_payload(response.headers.get("content-type"), response.content)
    kind = classify_error(response.status_code, payload)

    request = command.current_request if command is not None else response.request
    detail = (payload.message or payload.code) if payload else None
    message = f"{request.method} {request.url} -> {response.status_code} {response.reason_phrase}"
    if detail:
        message += f": {detail}"
    return ERROR_TYPES[kind](message, command=command, response=response, payload=payload)


class ClassifyingErrorHandler:
    """Turns a failed response into a typed exception recorded on the command"""

    def handle_error(self, command: "HttpCommand", response: httpx.Response) -> BaseException:
        error = build_error(command, response)
        command.exception = error
        logger.info(f"{type(error).__name__}: {error}")
        return error
