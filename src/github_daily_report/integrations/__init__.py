"""External service integrations: GitHub activity and Linear ticket titles."""

from .github_activity import GitHubActivityFetcher
from .linear_client import LinearClient

__all__ = ["GitHubActivityFetcher", "LinearClient"]
