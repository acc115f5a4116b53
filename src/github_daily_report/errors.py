"""Exception hierarchy for the daily report.

Fatal errors (date problems, configuration problems) propagate to the CLI and
stop the run before any API call is made. Recoverable errors are raised close
to where a single record, category or ticket lookup fails and are absorbed by
the caller, which logs them and carries on with reduced coverage.
"""


class DailyReportError(Exception):
    """Base class for every error raised by github-daily-report."""


class DateResolutionError(DailyReportError):
    """The target date could not be resolved. Always fatal."""


class InvalidDateFormat(DateResolutionError):
    """The raw date argument matches none of the supported formats."""

    SUPPORTED_FORMATS = "YYYY-MM-DD, DD-MM-YYYY, 'today', 'yesterday'"

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(
            f"Invalid date format: {raw!r}. Supported formats: {self.SUPPORTED_FORMATS}"
        )


class CalendarValidationFailure(DateResolutionError):
    """The date has the right shape but is not a real calendar date."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid date: {value}")


class RecordShapeError(DailyReportError):
    """A fetched record is missing a required field. The record is skipped."""


class ExternalFetchFailure(DailyReportError):
    """A whole activity category could not be fetched. It is treated as empty."""

    def __init__(self, category: str, reason: str) -> None:
        self.category = category
        super().__init__(f"Failed to fetch {category}: {reason}")


class TicketLookupFailure(DailyReportError):
    """A ticket title could not be retrieved. The bare ticket id is shown."""
