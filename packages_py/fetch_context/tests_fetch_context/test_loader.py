"""
Tests for fetch_context configuration models and YAML loading.

Test coverage includes:
- APP_ENV file selection and fallback
- Validation errors surfaced as ConfigLoadError
- Conversion to component configs
"""

import pytest

from fetch_context import (
    ConfigLoadError,
    ContextConfig,
    SigningScheme,
    SigningSettings,
    load_yaml_config,
)

CONTEXT_YAML = """
name: storage
endpoint: https://myaccount.blob.core.windows.net
pool:
  max_connections: 4
retry:
  max_retries: 2
signing:
  scheme: shared_key_lite
  identity: myaccount
  env_credential: STORAGE_KEY
"""


class TestLoadYamlConfig:
    """Tests for load_yaml_config."""

    def test_loads_default_file(self, tmp_path):
        """Should load context.yaml when no env-specific file exists."""
        (tmp_path / "context.yaml").write_text(CONTEXT_YAML)

        config = load_yaml_config(tmp_path, app_env="prod")

        assert config.name == "storage"
        assert config.pool.max_connections == 4
        assert config.pool.max_connection_reuse == 75
        assert config.retry.max_retries == 2
        assert config.signing.scheme is SigningScheme.SHARED_KEY_LITE

    def test_prefers_env_specific_file(self, tmp_path):
        """Should prefer context.<APP_ENV>.yaml."""
        (tmp_path / "context.yaml").write_text("name: default\n")
        (tmp_path / "context.test.yaml").write_text("name: test-env\n")

        assert load_yaml_config(tmp_path, app_env="test").name == "test-env"

    def test_reads_app_env(self, tmp_path, monkeypatch):
        """Should use APP_ENV when no env is passed."""
        (tmp_path / "context.qa.yaml").write_text("name: qa\n")
        monkeypatch.setenv("APP_ENV", "qa")

        assert load_yaml_config(tmp_path).name == "qa"

    def test_empty_file_gives_defaults(self, tmp_path):
        """Should treat an empty file as all defaults."""
        (tmp_path / "context.yaml").write_text("")

        assert load_yaml_config(tmp_path, app_env="dev") == ContextConfig()

    def test_missing_file(self, tmp_path):
        """Should raise when no file exists."""
        with pytest.raises(ConfigLoadError, match="No config file found"):
            load_yaml_config(tmp_path, app_env="dev")

    def test_invalid_yaml(self, tmp_path):
        """Should raise on YAML syntax errors."""
        (tmp_path / "context.yaml").write_text("pool: [unclosed\n")

        with pytest.raises(ConfigLoadError, match="YAML"):
            load_yaml_config(tmp_path, app_env="dev")

    def test_non_mapping(self, tmp_path):
        """Should raise when the document is not a mapping."""
        (tmp_path / "context.yaml").write_text("- a\n- b\n")

        with pytest.raises(ConfigLoadError, match="mapping"):
            load_yaml_config(tmp_path, app_env="dev")

    def test_invalid_values(self, tmp_path):
        """Should raise on values the models reject."""
        (tmp_path / "context.yaml").write_text("pool:\n  max_connections: 0\n")

        with pytest.raises(ConfigLoadError, match="Invalid context config"):
            load_yaml_config(tmp_path, app_env="dev")


class TestSettings:
    """Tests for the settings models."""

    def test_pool_config_conversion(self):
        """Should build a pool config with the given id."""
        pool_config = ContextConfig().pool.to_pool_config("storage")

        assert pool_config.id == "storage"
        assert pool_config.max_connections == 12
        assert pool_config.connection_timeout_seconds == 5.0

    def test_retry_config_conversion(self):
        """Should carry limits and backoff into RetryConfig."""
        retry_config = ContextConfig(retry={"max_redirects": 1}).retry.to_retry_config()

        assert retry_config.max_redirects == 1
        assert retry_config.max_retries == 5
        assert retry_config.retry_on_status == [429, 500, 502, 503, 504]

    def test_credentials_from_environment(self):
        """Should read credentials from the named variables."""
        settings = SigningSettings(env_identity="ID_VAR", env_credential="KEY_VAR")

        assert settings.resolve_credentials({"ID_VAR": "me", "KEY_VAR": "secret"}) == ("me", "secret")

    def test_inline_credentials_win(self):
        """Should prefer inline values over the environment."""
        settings = SigningSettings(identity="inline", env_identity="ID_VAR")

        assert settings.resolve_credentials({"ID_VAR": "env"}) == ("inline", None)

    def test_io_threads_minimum(self):
        """Should require room for the service loop and one pool."""
        with pytest.raises(ValueError):
            ContextConfig(executor={"io_worker_threads": 1})
