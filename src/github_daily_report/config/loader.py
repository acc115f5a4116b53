"""YAML configuration loading and environment variable expansion.

Values are taken, in order of precedence, from the YAML file (with
``${VAR}`` references expanded), then from the environment variables the
report has always honoured (``GITHUB_TOKEN``, ``GITHUB_REPOS``,
``LOOKBACK_DAYS``, ``LINEAR_API_KEY`` ...), then from the schema defaults.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from dotenv import load_dotenv

from ..extractors.tickets import TicketExtractor
from ..reports.daily_report_writer import FORMATS
from .errors import ConfigurationError, InvalidValueError, handle_yaml_error
from .schema import Config, GitHubConfig, LinearConfig, ReportConfig

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Load and validate configuration from YAML files and the environment."""

    HOME_ENV_FILE = ".github-daily-report.env"

    @classmethod
    def load(cls, config_path: Optional[Union[Path, str]] = None) -> Config:
        """Load configuration.

        Args:
            config_path: Optional path to a YAML configuration file. Without
                one, configuration comes from the environment alone.

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        path = Path(config_path) if config_path is not None else None

        cls._load_environment(path)

        data = cls._load_yaml(path) if path is not None else {}
        data = cls._resolve_config_dict(data)

        config = Config(
            github=cls._process_github_config(data.get("github") or {}, path),
            linear=cls._process_linear_config(data.get("linear") or {}, path),
            report=cls._process_report_config(data.get("report") or {}, path),
        )

        if not config.github.repositories:
            logger.warning("No repositories configured; searches are not restricted and commits are skipped")
        return config

    @classmethod
    def _load_environment(cls, config_path: Optional[Path]) -> None:
        """Load environment variables from .env and .env.local files if present."""
        loaded_any = False
        for env_file in cls._find_env_files(config_path):
            if env_file.exists():
                load_dotenv(env_file, override=True)
                logger.debug(f"Loaded environment variables from {env_file}")
                loaded_any = True

        if not loaded_any:
            logger.debug("No .env file found in any of the standard locations")

    @classmethod
    def _find_env_files(cls, config_path: Optional[Path]) -> list[Path]:
        """Find potential .env file locations in load order.

        Base ``.env`` files load first and ``.env.local`` files after them, so
        local overrides win; the per-user file in the home directory loads last.
        """
        search_dirs: list[Path] = []
        if config_path is not None:
            search_dirs.append(config_path.parent)
        cwd = Path.cwd()
        if cwd not in search_dirs:
            search_dirs.append(cwd)

        base_files = [directory / ".env" for directory in search_dirs]
        local_files = [directory / ".env.local" for directory in search_dirs]
        return base_files + local_files + [Path.home() / cls.HOME_ENV_FILE]

    @classmethod
    def _load_yaml(cls, config_path: Path) -> dict[str, Any]:
        if not config_path.exists():
            raise ConfigurationError("Configuration file not found", config_path)

        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise handle_yaml_error(e, config_path) from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {e}", config_path) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration file must contain a mapping", config_path)
        return data

    @classmethod
    def _process_github_config(cls, github_data: dict[str, Any], config_path: Optional[Path]) -> GitHubConfig:
        defaults = GitHubConfig()

        repositories = github_data.get("repositories")
        if repositories is None:
            repositories = os.environ.get("GITHUB_REPOS", "").split()
        if isinstance(repositories, str):
            repositories = repositories.split()
        if not isinstance(repositories, list):
            raise InvalidValueError("github.repositories", repositories, "a list of owner/name", config_path)
        for repo in repositories:
            if not isinstance(repo, str) or repo.count("/") != 1:
                raise InvalidValueError("github.repositories", repo, "owner/name", config_path)

        lookback = github_data.get("lookback_days", os.environ.get("LOOKBACK_DAYS"))

        return GitHubConfig(
            token=github_data.get("token") or os.environ.get("GITHUB_TOKEN") or os.environ.get("GH_TOKEN"),
            base_url=github_data.get("base_url") or defaults.base_url,
            repositories=repositories,
            lookback_days=cls._int_value("github.lookback_days", lookback, defaults.lookback_days, config_path, minimum=0),
            search_limit=cls._int_value("github.search_limit", github_data.get("search_limit"), defaults.search_limit, config_path),
            max_branches=cls._int_value("github.max_branches", github_data.get("max_branches"), defaults.max_branches, config_path),
            max_retries=cls._int_value("github.max_retries", github_data.get("max_retries"), defaults.max_retries, config_path),
            backoff_factor=cls._int_value("github.backoff_factor", github_data.get("backoff_factor"), defaults.backoff_factor, config_path),
        )

    @classmethod
    def _process_linear_config(cls, linear_data: dict[str, Any], config_path: Optional[Path]) -> LinearConfig:
        defaults = LinearConfig()

        prefix = linear_data.get("project_prefix") or os.environ.get("TICKET_PREFIX") or defaults.project_prefix
        try:
            TicketExtractor(prefix)
        except ValueError as e:
            raise InvalidValueError("linear.project_prefix", prefix, "uppercase project code", config_path) from e

        timeout = linear_data.get("timeout_seconds", defaults.timeout_seconds)
        try:
            timeout = float(timeout)
        except (TypeError, ValueError) as e:
            raise InvalidValueError("linear.timeout_seconds", timeout, "a number", config_path) from e

        return LinearConfig(
            api_key=linear_data.get("api_key") or os.environ.get("LINEAR_API_KEY"),
            api_url=linear_data.get("api_url") or defaults.api_url,
            workspace=linear_data.get("workspace") or os.environ.get("LINEAR_WORKSPACE"),
            project_prefix=prefix,
            timeout_seconds=timeout,
        )

    @classmethod
    def _process_report_config(cls, report_data: dict[str, Any], config_path: Optional[Path]) -> ReportConfig:
        fmt = report_data.get("format") or ReportConfig.format
        if fmt not in FORMATS:
            raise InvalidValueError("report.format", fmt, " or ".join(FORMATS), config_path)

        copy = report_data.get("copy_to_clipboard", ReportConfig.copy_to_clipboard)
        if not isinstance(copy, bool):
            raise InvalidValueError("report.copy_to_clipboard", copy, "true or false", config_path)

        return ReportConfig(format=fmt, copy_to_clipboard=copy)

    @staticmethod
    def _int_value(
        field_name: str,
        value: Any,
        default: int,
        config_path: Optional[Path],
        minimum: int = 1,
    ) -> int:
        if value is None or value == "":
            return default
        try:
            number = int(value)
        except (TypeError, ValueError) as e:
            raise InvalidValueError(field_name, value, "an integer", config_path) from e
        if isinstance(value, bool) or number < minimum:
            raise InvalidValueError(field_name, value, f"an integer >= {minimum}", config_path)
        return number

    @staticmethod
    def _resolve_env_var(value: Optional[str]) -> Optional[str]:
        """Resolve a ``${VAR}`` reference; unset variables resolve to None."""
        if not value:
            return None

        if value.startswith("${") and value.endswith("}"):
            return os.environ.get(value[2:-1]) or None

        return value

    @classmethod
    def _resolve_config_dict(cls, config_dict: dict[str, Any]) -> dict[str, Any]:
        """Recursively resolve environment variables in a configuration dictionary."""
        resolved: dict[str, Any] = {}
        for key, value in config_dict.items():
            if isinstance(value, str):
                resolved[key] = cls._resolve_env_var(value)
            elif isinstance(value, dict):
                resolved[key] = cls._resolve_config_dict(value)
            elif isinstance(value, list):
                resolved[key] = [
                    (
                        cls._resolve_env_var(item)
                        if isinstance(item, str)
                        else cls._resolve_config_dict(item)
                        if isinstance(item, dict)
                        else item
                    )
                    for item in value
                ]
            else:
                resolved[key] = value
        return resolved
