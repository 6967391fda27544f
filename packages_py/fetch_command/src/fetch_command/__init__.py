"""
fetch_command - HTTP commands executed through pooled connections
"""

from .types import (
    DEFAULT_PORTS,
    Endpoint,
    ErrorHandler,
    RequestFilter,
    ResponseTransformer,
    ResubmitHandler,
    RetryHandler,
    TransportFactory,
)
from .command import HttpCommand
from .rendezvous import HttpCommandRendezvous
from .connection import HttpConnection
from .wire import WireLogger, mask_header_value, mask_headers
from .http_pool import (
    DEFAULT_RESUBMIT_LIMIT,
    RESUBMITTABLE_ERRORS,
    HttpCommandConnectionPool,
    HttpCommandConnectionPoolFactory,
    HttpConnectionHandle,
    LimitedResubmitHandler,
    ResponseCallback,
)
from .executor_service import PoolFactory, TransformingCommandExecutorService

__all__ = [
    # Types
    "DEFAULT_PORTS",
    "Endpoint",
    "ErrorHandler",
    "RequestFilter",
    "ResponseTransformer",
    "ResubmitHandler",
    "RetryHandler",
    "TransportFactory",
    # Command
    "HttpCommand",
    "HttpCommandRendezvous",
    "HttpConnection",
    # Wire logging
    "WireLogger",
    "mask_header_value",
    "mask_headers",
    # Pool
    "DEFAULT_RESUBMIT_LIMIT",
    "RESUBMITTABLE_ERRORS",
    "HttpCommandConnectionPool",
    "HttpCommandConnectionPoolFactory",
    "HttpConnectionHandle",
    "LimitedResubmitHandler",
    "ResponseCallback",
    # Service
    "PoolFactory",
    "TransformingCommandExecutorService",
]

__version__ = "1.0.0"
