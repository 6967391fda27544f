"""
Configuration utilities for fetch_connection_pool
"""

import time
import uuid
from dataclasses import replace
from typing import Any

from .types import ConnectionPoolConfig


# Default connection pool configuration
DEFAULT_CONNECTION_POOL_CONFIG = ConnectionPoolConfig(
    id="default-pool",
    max_connections=12,
    max_connection_reuse=75,
    connection_timeout_seconds=5.0,
    producer_poll_seconds=0.1,
)


def merge_config(
    user_config: ConnectionPoolConfig, **overrides: Any
) -> ConnectionPoolConfig:
    """Copy a config with field overrides (overrides take precedence)"""
    return replace(user_config, **overrides)


def validate_config(config: ConnectionPoolConfig) -> list[str]:
    """Validate configuration values"""
    errors = []

    if not config.id:
        errors.append("id must not be empty")

    if config.max_connections < 1:
        errors.append("max_connections must be at least 1")

    if config.max_connection_reuse < 1:
        errors.append("max_connection_reuse must be at least 1")

    if config.connection_timeout_seconds < 0:
        errors.append("connection_timeout_seconds must be non-negative")

    if config.producer_poll_seconds <= 0:
        errors.append("producer_poll_seconds must be positive")

    return errors


def generate_connection_id() -> str:
    """Generate a unique connection ID"""
    return f"conn-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
