"""Report rendering for GitHub Daily Report."""

from .daily_report_writer import DailyReportWriter, build_report_entries, copy_to_clipboard

__all__ = ["DailyReportWriter", "build_report_entries", "copy_to_clipboard"]
