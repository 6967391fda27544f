"""
fetch_request_signing - Request filters that authenticate outgoing requests
"""

from .types import Clock, RequestFilter, TimestampFormatter
from .timestamp import CachedTimestamp, http_date, iso8601_timestamp
from .signers import (
    S3_SUB_RESOURCES,
    AwsRequestAuthorizeSignature,
    HmacRequestSigner,
    SharedKeyAuthentication,
    SharedKeyLiteAuthentication,
    encoded_path,
)
from .form import FormSigner, aws_quote
from .basic import BasicAuthentication, basic_auth_header

__all__ = [
    # Types
    "Clock",
    "RequestFilter",
    "TimestampFormatter",
    # Timestamps
    "CachedTimestamp",
    "http_date",
    "iso8601_timestamp",
    # Signers
    "S3_SUB_RESOURCES",
    "AwsRequestAuthorizeSignature",
    "HmacRequestSigner",
    "SharedKeyAuthentication",
    "SharedKeyLiteAuthentication",
    "encoded_path",
    "FormSigner",
    "aws_quote",
    "BasicAuthentication",
    "basic_auth_header",
]

__version__ = "1.0.0"
