"""Version information for github-daily-report."""

__version__ = "1.0.0"
