"""
Type definitions for fetch_errors
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds an HTTP error response maps to"""

    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    ILLEGAL_STATE = "illegal_state"
    HTTP_RESPONSE = "http_response"


@dataclass(frozen=True)
class ErrorPayload:
    """Provider error code and message parsed from a response body"""

    code: Optional[str] = None
    message: Optional[str] = None
    request_id: Optional[str] = None
