"""Load a ContextConfig from YAML.

Looks for ``context.<APP_ENV>.yaml`` in the config directory and falls back
to ``context.yaml``.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from .types import ContextConfig

logger = logging.getLogger(__name__)


class ConfigLoadError(Exception):
    """Raised when the context configuration cannot be found or parsed."""
    pass


def find_config_path(config_dir: Union[str, Path], app_env: str) -> Path:
    """Find the configuration file path based on APP_ENV."""
    base_path = Path(config_dir)
    env_specific = base_path / f"context.{app_env}.yaml"
    if env_specific.exists():
        logger.debug(f"Using environment-specific config: {env_specific}")
        return env_specific

    default = base_path / "context.yaml"
    if default.exists():
        logger.debug(f"Using default config: {default}")
        return default

    raise ConfigLoadError(f"No config file found. Tried: {env_specific}, {default}")


def parse_config(data: Dict[str, Any]) -> ContextConfig:
    try:
        return ContextConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid context config: {e}") from e


def load_yaml_config(
    config_dir: Union[str, Path],
    app_env: Optional[str] = None,
) -> ContextConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_dir: Path to the configuration directory
        app_env: Environment name (default: from APP_ENV env var or 'dev')

    Returns:
        Validated ContextConfig

    Raises:
        ConfigLoadError: when no file is found, or it is not valid YAML or
            not a valid configuration
    """
    env = app_env or os.environ.get("APP_ENV", "dev")
    logger.info(f"Loading context config for APP_ENV={env}")

    config_path = find_config_path(config_dir, env)
    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"YAML parsing error in {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigLoadError(f"{config_path} must contain a mapping")

    config = parse_config(data)
    logger.info(f"Successfully loaded config from: {config_path}")
    return config
