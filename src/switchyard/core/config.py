"""Configuration types with environment variable support.

All settings can be configured via environment variables with the SWITCHYARD_ prefix.
Example: SWITCHYARD_SSL_LISTENER=passthrough sets the listener that receives
SSL passthrough switching rules.
"""

from __future__ import annotations

import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Lowest-priority directive source. Keys listed here have an implicit default
# and therefore never resolve as deleted.
DEFAULT_DIRECTIVES: dict[str, str] = {
    "check": "true",
    "forwarded-for": "true",
    "load-balance": "roundrobin",
    "ssl-passthrough": "false",
    "timeout-http-request": "5s",
    "timeout-connect": "5s",
    "timeout-client": "50s",
    "timeout-queue": "5s",
    "timeout-server": "50s",
    "timeout-tunnel": "1h",
    "timeout-http-keep-alive": "1m",
}


def _parse_yaml(content: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML: {e}") from e
    return data or {}


def _parse_toml(content: str) -> dict[str, Any]:
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML: {e}") from e


_PARSERS: dict[str, Callable[[str], dict[str, Any]]] = {
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
    ".toml": _parse_toml,
}


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load a settings file or proxy model snapshot.

    The format is picked by suffix: ``.yaml``/``.yml`` or ``.toml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the suffix is unknown, the file is not UTF-8 or it
            does not parse. The message names the file.
    """
    path = Path(path)
    parser = _PARSERS.get(path.suffix)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    if parser is None:
        raise ValueError(f"Unsupported config format: {path.suffix} ({path})")

    try:
        return parser(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e
    except ValueError as e:
        raise ValueError(f"{path}: {e}") from e


class SwitchyardConfig(BaseSettings):
    """Reconciler configuration.

    Example:
        config = get_config()
        print(config.http_listeners)
        print(config.default_directives["load-balance"])
    """

    model_config = SettingsConfigDict(
        env_prefix="SWITCHYARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    http_listeners: list[str] = Field(
        default_factory=lambda: ["http", "https"],
        description="Listeners that receive host/path switching rules.",
    )
    ssl_listener: str = Field(
        default="ssl",
        description="TCP listener that receives SNI rules for SSL passthrough paths.",
    )
    rate_limit_backend: str = Field(
        default="RateLimit",
        description="Reserved backend used by rate limiting; never garbage collected.",
    )
    rate_limit_rule_prefix: str = Field(
        default="WHT-",
        description="Prefix of the per-path whitelist rule set keys.",
    )
    log_level: str = Field(
        default="info",
        description="Log level (debug, info, warning, error).",
    )
    log_json: bool = Field(
        default=False,
        description="Render log events as JSON instead of console output.",
    )
    default_directives: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_DIRECTIVES),
        description="Directive values used when no workload, route or global source sets a key.",
    )

    @property
    def all_listeners(self) -> list[str]:
        """HTTP listeners followed by the SSL passthrough listener."""
        return [*self.http_listeners, self.ssl_listener]

    @classmethod
    def from_file(cls, path: str | Path) -> SwitchyardConfig:
        """Create configuration from a YAML or TOML file.

        Values given in the file take precedence over environment variables.
        Directive defaults from the file are merged over the built-in ones.
        """
        data = load_config_from_file(path)
        section = data.get("switchyard", data)
        overrides = dict(section)
        if "default_directives" in overrides:
            overrides["default_directives"] = {
                **DEFAULT_DIRECTIVES,
                **{str(k): str(v) for k, v in overrides["default_directives"].items()},
            }
        return cls(**overrides)


_config: SwitchyardConfig | None = None


def get_config() -> SwitchyardConfig:
    """Get the global configuration instance.

    Returns a cached instance of SwitchyardConfig that reads from environment variables.
    To reload config (e.g., in tests), call clear_config() first.
    """
    global _config
    if _config is None:
        _config = SwitchyardConfig()
    return _config


def clear_config() -> None:
    """Clear the cached configuration."""
    global _config
    _config = None
