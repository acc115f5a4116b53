"""Configuration management for GitHub Daily Report."""

from .errors import ConfigurationError, InvalidValueError
from .loader import ConfigLoader
from .schema import Config, GitHubConfig, LinearConfig, ReportConfig

__all__ = [
    "Config",
    "ConfigLoader",
    "ConfigurationError",
    "GitHubConfig",
    "InvalidValueError",
    "LinearConfig",
    "ReportConfig",
]
