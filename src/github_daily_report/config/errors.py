"""Configuration errors."""

from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import DailyReportError


class ConfigurationError(DailyReportError):
    """Configuration is missing, unreadable or invalid."""

    def __init__(self, message: str, config_path: Optional[Path] = None) -> None:
        self.config_path = config_path
        if config_path is not None:
            message = f"{message} (in {config_path})"
        super().__init__(message)


class InvalidValueError(ConfigurationError):
    """A configuration field has a value of the wrong type or range."""

    def __init__(self, field_name: str, value: Any, expected: str, config_path: Optional[Path] = None):
        self.field_name = field_name
        self.value = value
        super().__init__(f"Invalid value for '{field_name}': {value!r} (expected {expected})", config_path)


def handle_yaml_error(error: yaml.YAMLError, config_path: Path) -> ConfigurationError:
    """Turn a PyYAML error into a ConfigurationError pointing at the bad line."""
    mark = getattr(error, "problem_mark", None)
    if mark is not None:
        location = f"line {mark.line + 1}, column {mark.column + 1}"
        return ConfigurationError(f"Invalid YAML at {location}: {getattr(error, 'problem', error)}", config_path)
    return ConfigurationError(f"Invalid YAML: {error}", config_path)
