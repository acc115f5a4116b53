"""GitHub Daily Report - a personal digest of one day's GitHub activity."""

from ._version import __version__

__all__ = ["__version__"]
