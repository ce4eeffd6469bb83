"""Core types: configuration, logging setup, errors and value parsers."""

from switchyard.core.config import (
    DEFAULT_DIRECTIVES,
    SwitchyardConfig,
    clear_config,
    get_config,
    load_config_from_file,
)
from switchyard.core.errors import (
    EntityNotFound,
    MissingRequiredDirective,
    ParseError,
    PassInProgress,
    StructuralError,
    SwitchyardError,
    ValidationError,
)
from switchyard.core.logs import configure_logging
from switchyard.core.values import parse_bool, parse_int, parse_time

__all__ = [
    "DEFAULT_DIRECTIVES",
    "SwitchyardConfig",
    "clear_config",
    "get_config",
    "load_config_from_file",
    "configure_logging",
    "SwitchyardError",
    "ValidationError",
    "ParseError",
    "MissingRequiredDirective",
    "EntityNotFound",
    "StructuralError",
    "PassInProgress",
    "parse_bool",
    "parse_int",
    "parse_time",
]
