"""
fetch_errors - Typed exceptions and classification for HTTP error responses
"""

from .types import ErrorKind, ErrorPayload
from .exceptions import (
    ERROR_TYPES,
    AuthorizationError,
    HttpResponseError,
    IllegalStateError,
    ResourceNotFoundError,
)
from .payload import parse_error_payload
from .classifier import (
    AUTHORIZATION_CODES,
    ILLEGAL_STATE_CODES,
    NOT_FOUND_CODES,
    ClassifyingErrorHandler,
    build_error,
    classify_code,
    classify_error,
)
from .fallbacks import (
    false_on_not_found,
    is_not_found,
    none_on_not_found,
    value_on_not_found,
)

__all__ = [
    # Types
    "ErrorKind",
    "ErrorPayload",
    # Exceptions
    "ERROR_TYPES",
    "AuthorizationError",
    "HttpResponseError",
    "IllegalStateError",
    "ResourceNotFoundError",
    # Classification
    "parse_error_payload",
    "AUTHORIZATION_CODES",
    "ILLEGAL_STATE_CODES",
    "NOT_FOUND_CODES",
    "ClassifyingErrorHandler",
    "build_error",
    "classify_code",
    "classify_error",
    # Fallbacks
    "false_on_not_found",
    "is_not_found",
    "none_on_not_found",
    "value_on_not_found",
]

__version__ = "1.0.0"
