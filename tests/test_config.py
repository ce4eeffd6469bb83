"""Tests for configuration loading from environment variables and files."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from switchyard.core.config import (
    DEFAULT_DIRECTIVES,
    SwitchyardConfig,
    clear_config,
    get_config,
    load_config_from_file,
)


class TestSwitchyardConfig:
    """Test SwitchyardConfig settings."""

    def test_default_values(self) -> None:
        """Test default values."""
        config = SwitchyardConfig()
        assert config.http_listeners == ["http", "https"]
        assert config.ssl_listener == "ssl"
        assert config.rate_limit_backend == "RateLimit"
        assert config.rate_limit_rule_prefix == "WHT-"
        assert config.log_level == "info"
        assert config.log_json is False
        assert config.default_directives == DEFAULT_DIRECTIVES

    def test_all_listeners(self) -> None:
        """Test that the SSL listener follows the HTTP listeners."""
        config = SwitchyardConfig()
        assert config.all_listeners == ["http", "https", "ssl"]

    def test_default_directives_not_shared(self) -> None:
        """Test that each config gets its own directive defaults."""
        config = SwitchyardConfig()
        config.default_directives["check"] = "false"
        assert DEFAULT_DIRECTIVES["check"] == "true"
        assert SwitchyardConfig().default_directives["check"] == "true"

    def test_env_override_ssl_listener(self) -> None:
        """Test SWITCHYARD_SSL_LISTENER env var."""
        with patch.dict(os.environ, {"SWITCHYARD_SSL_LISTENER": "passthrough"}):
            config = SwitchyardConfig()
            assert config.ssl_listener == "passthrough"

    def test_env_override_http_listeners(self) -> None:
        """Test SWITCHYARD_HTTP_LISTENERS env var."""
        with patch.dict(os.environ, {"SWITCHYARD_HTTP_LISTENERS": '["web"]'}):
            config = SwitchyardConfig()
            assert config.http_listeners == ["web"]

    def test_env_override_log_json(self) -> None:
        """Test SWITCHYARD_LOG_JSON env var."""
        with patch.dict(os.environ, {"SWITCHYARD_LOG_JSON": "true"}):
            config = SwitchyardConfig()
            assert config.log_json is True


class TestDefaultDirectives:
    """Test the built-in directive defaults."""

    def test_timeouts_present(self) -> None:
        """Test that every default timeout has a built-in value."""
        for category in (
            "http-request",
            "connect",
            "client",
            "queue",
            "server",
            "tunnel",
            "http-keep-alive",
        ):
            assert f"timeout-{category}" in DEFAULT_DIRECTIVES

    def test_fields_with_implicit_default(self) -> None:
        """Test the backend and server defaults."""
        assert DEFAULT_DIRECTIVES["check"] == "true"
        assert DEFAULT_DIRECTIVES["forwarded-for"] == "true"
        assert DEFAULT_DIRECTIVES["load-balance"] == "roundrobin"
        assert DEFAULT_DIRECTIVES["ssl-passthrough"] == "false"


class TestLoadConfigFromFile:
    """Test loading configuration files."""

    def test_yaml(self, tmp_path) -> None:
        """Test loading a YAML file."""
        path = tmp_path / "config.yaml"
        path.write_text("ssl_listener: passthrough\n")
        assert load_config_from_file(path) == {"ssl_listener": "passthrough"}

    def test_empty_yaml(self, tmp_path) -> None:
        """Test that an empty YAML file gives an empty dict."""
        path = tmp_path / "config.yml"
        path.write_text("")
        assert load_config_from_file(path) == {}

    def test_toml(self, tmp_path) -> None:
        """Test loading a TOML file."""
        path = tmp_path / "config.toml"
        path.write_text('ssl_listener = "passthrough"\n')
        assert load_config_from_file(path) == {"ssl_listener": "passthrough"}

    def test_missing_file(self, tmp_path) -> None:
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config_from_file(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path) -> None:
        """Test that an unknown suffix is rejected."""
        path = tmp_path / "config.ini"
        path.write_text("[switchyard]\n")
        with pytest.raises(ValueError, match="Unsupported config format"):
            load_config_from_file(path)

    def test_invalid_yaml(self, tmp_path) -> None:
        """Test that broken YAML is reported as ValueError."""
        path = tmp_path / "config.yaml"
        path.write_text("listeners: [http\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config_from_file(path)

    def test_encoding_error(self, tmp_path) -> None:
        """Test that a non UTF-8 file is reported with its path."""
        path = tmp_path / "snapshot.yaml"
        path.write_bytes(b"listeners: \xff\xfe\n")
        with pytest.raises(ValueError, match="encoding error in .*snapshot.yaml"):
            load_config_from_file(path)

    def test_parse_error_names_file(self, tmp_path) -> None:
        """Test that parse errors carry the file path."""
        path = tmp_path / "broken.yaml"
        path.write_text("a: [1\n")
        with pytest.raises(ValueError, match="broken.yaml: Invalid YAML"):
            load_config_from_file(path)

    def test_invalid_toml(self, tmp_path) -> None:
        """Test that broken TOML is reported as ValueError."""
        path = tmp_path / "config.toml"
        path.write_text("ssl_listener = \n")
        with pytest.raises(ValueError, match="Invalid TOML"):
            load_config_from_file(path)


class TestConfigFromFile:
    """Test SwitchyardConfig.from_file."""

    def test_section(self, tmp_path) -> None:
        """Test reading the switchyard section."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "switchyard:\n"
            "  http_listeners: [web]\n"
            "  ssl_listener: passthrough\n"
        )
        config = SwitchyardConfig.from_file(path)
        assert config.http_listeners == ["web"]
        assert config.ssl_listener == "passthrough"

    def test_top_level(self, tmp_path) -> None:
        """Test reading settings from the top level."""
        path = tmp_path / "config.toml"
        path.write_text('rate_limit_backend = "Limiter"\n')
        config = SwitchyardConfig.from_file(path)
        assert config.rate_limit_backend == "Limiter"

    def test_directives_merged_over_builtins(self, tmp_path) -> None:
        """Test that file directives override only the keys they set."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "switchyard:\n"
            "  default_directives:\n"
            "    load-balance: leastconn\n"
            "    timeout-client: 30\n"
        )
        config = SwitchyardConfig.from_file(path)
        assert config.default_directives["load-balance"] == "leastconn"
        assert config.default_directives["timeout-client"] == "30"
        assert config.default_directives["timeout-server"] == "50s"


class TestGetConfig:
    """Test get_config and clear_config."""

    def test_cached(self) -> None:
        """Test that get_config returns the same instance."""
        clear_config()
        try:
            assert get_config() is get_config()
        finally:
            clear_config()

    def test_clear_reloads(self) -> None:
        """Test that clear_config picks up new environment values."""
        clear_config()
        try:
            with patch.dict(os.environ, {"SWITCHYARD_SSL_LISTENER": "tls"}):
                assert get_config().ssl_listener == "tls"
                clear_config()
            assert get_config().ssl_listener == "ssl"
        finally:
            clear_config()
