"""Type definitions for the REST context configuration.

Provides Pydantic models for configuration validation and type safety.
"""

import os
from enum import Enum
from typing import List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

from fetch_connection_pool import ConnectionPoolConfig
from fetch_retry import RetryConfig


class SigningScheme(str, Enum):
    """How outgoing requests are authenticated."""
    NONE = "none"
    BASIC = "basic"
    SHARED_KEY = "shared_key"
    SHARED_KEY_LITE = "shared_key_lite"
    AWS_S3 = "aws_s3"
    AWS_QUERY = "aws_query"


class PoolSettings(BaseModel):
    """Per-endpoint connection pool limits."""
    max_connections: int = Field(default=12, ge=1)
    max_connection_reuse: int = Field(default=75, ge=1)
    connection_timeout_seconds: float = Field(default=5.0, gt=0)
    producer_poll_seconds: float = Field(default=0.1, gt=0)

    def to_pool_config(self, pool_id: str) -> ConnectionPoolConfig:
        return ConnectionPoolConfig(
            id=pool_id,
            max_connections=self.max_connections,
            max_connection_reuse=self.max_connection_reuse,
            connection_timeout_seconds=self.connection_timeout_seconds,
            producer_poll_seconds=self.producer_poll_seconds,
        )


class RetrySettings(BaseModel):
    """Retry and redirect limits with their backoff."""
    max_retries: int = Field(default=5, ge=0)
    max_redirects: int = Field(default=5, ge=0)
    base_delay_seconds: float = Field(default=0.05, ge=0)
    max_delay_seconds: float = Field(default=0.5, ge=0)
    retry_on_status: List[int] = Field(default_factory=lambda: [429, 500, 502, 503, 504])
    respect_retry_after: bool = True

    def to_retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_retries=self.max_retries,
            max_redirects=self.max_redirects,
            base_delay_seconds=self.base_delay_seconds,
            max_delay_seconds=self.max_delay_seconds,
            retry_on_status=list(self.retry_on_status),
            respect_retry_after=self.respect_retry_after,
        )


class SigningSettings(BaseModel):
    """Request signing scheme and where its credentials come from.

    Credentials can be given inline or by naming environment variables
    (``env_identity``, ``env_credential``); inline values win.
    """
    scheme: SigningScheme = SigningScheme.NONE
    identity: Optional[str] = None
    credential: Optional[str] = None
    env_identity: Optional[str] = None
    env_credential: Optional[str] = None
    timestamp_refresh_seconds: float = Field(default=1.0, ge=0)
    s3_service_host: str = "s3.amazonaws.com"

    def resolve_credentials(
        self,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Tuple[Optional[str], Optional[str]]:
        """Identity and credential, falling back to the named env vars."""
        environ = os.environ if environ is None else environ
        identity = self.identity or (environ.get(self.env_identity) if self.env_identity else None)
        credential = self.credential or (
            environ.get(self.env_credential) if self.env_credential else None
        )
        return identity, credential


class ExecutorSettings(BaseModel):
    """Thread pool sizes.

    ``io_worker_threads`` runs the service loop and the producer loop of each
    endpoint pool. Pools hand out connections created inline when their loop
    has no thread yet, so it only limits how many pools pre-open connections.
    """
    io_worker_threads: int = Field(default=20, ge=2)
    user_threads: int = Field(default=10, ge=1)
    within_thread: bool = False
    poll_seconds: float = Field(default=0.1, gt=0)
    pool_shutdown_seconds: float = Field(default=1.0, ge=0)


class ContextConfig(BaseModel):
    """Root configuration for a REST context."""
    name: str = "rest"
    endpoint: Optional[str] = None
    request_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    wire_log: bool = False
    pool: PoolSettings = Field(default_factory=PoolSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    signing: SigningSettings = Field(default_factory=SigningSettings)
    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)
