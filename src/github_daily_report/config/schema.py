"""Configuration dataclasses for GitHub Daily Report."""

from dataclasses import dataclass, field
from typing import Optional

from ..extractors.tickets import DEFAULT_PROJECT_PREFIX


@dataclass
class GitHubConfig:
    """GitHub API configuration."""

    token: Optional[str] = None
    base_url: str = "https://api.github.com"
    repositories: list[str] = field(default_factory=list)
    lookback_days: int = 3
    search_limit: int = 100
    max_branches: int = 100
    max_retries: int = 3
    backoff_factor: int = 2

    def repository_filter(self) -> str:
        """Search qualifier restricting results to the configured repositories."""
        return " ".join(f"repo:{repo}" for repo in self.repositories)


@dataclass
class LinearConfig:
    """Linear ticket tracker configuration.

    Only issue titles are read; without an API key tickets are shown by id.
    """

    api_key: Optional[str] = None
    api_url: str = "https://api.linear.app/graphql"
    workspace: Optional[str] = None
    project_prefix: str = DEFAULT_PROJECT_PREFIX
    timeout_seconds: float = 10.0

    def issue_url(self, ticket_id: str) -> Optional[str]:
        if not self.workspace:
            return None
        return f"https://linear.app/{self.workspace}/issue/{ticket_id}"


@dataclass
class ReportConfig:
    """Report output configuration."""

    format: str = "markdown"
    copy_to_clipboard: bool = True


@dataclass
class Config:
    """Root configuration object."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    linear: LinearConfig = field(default_factory=LinearConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
