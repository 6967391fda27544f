"""
fetch_context - Configuration and composition root for the pooled HTTP stack
"""

from .types import (
    ContextConfig,
    ExecutorSettings,
    PoolSettings,
    RetrySettings,
    SigningScheme,
    SigningSettings,
)
from .loader import ConfigLoadError, find_config_path, load_yaml_config, parse_config
from .transport import AsyncContextTransport, ContextTransport
from .context import RestContext, build_context, build_filters, default_transport_factory

__all__ = [
    # Configuration
    "ContextConfig",
    "ExecutorSettings",
    "PoolSettings",
    "RetrySettings",
    "SigningScheme",
    "SigningSettings",
    "ConfigLoadError",
    "find_config_path",
    "load_yaml_config",
    "parse_config",
    # Context
    "AsyncContextTransport",
    "ContextTransport",
    "RestContext",
    "build_context",
    "build_filters",
    "default_transport_factory",
]

__version__ = "1.0.0"
