"""Shared dataclasses passed between the fetch, classify and render stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


def _never_confirmed(number: int, repository: str) -> bool:
    return False


@dataclass
class ActivityCandidates:
    """Everything the fetch stage collected for one target date.

    Candidate lists hold raw mappings (or already built records); they are
    coerced and de-duplicated by the classifier.
    """

    target_date: str
    current_user: str
    authored: list[Any] = field(default_factory=list)
    reviewed: list[Any] = field(default_factory=list)
    commented: list[Any] = field(default_factory=list)
    commits: list[Any] = field(default_factory=list)
    review_confirmed: Callable[[int, str], bool] = _never_confirmed
    comment_confirmed: Callable[[int, str], bool] = _never_confirmed
    failed_categories: list[str] = field(default_factory=list)


class EntryCategory(Enum):
    """What kind of activity a report line describes."""

    AUTHORED = "authored"
    REVIEWED = "reviewed"
    COMMENTED = "commented"
    BRANCH = "branch"
    COMMIT = "commit"


@dataclass(frozen=True)
class TicketReference:
    """A ticket id with its tracker link and title, when known."""

    ticket_id: str
    url: Optional[str] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class ReportEntry:
    """One line of the report, kept structured until rendering."""

    category: EntryCategory
    title: str
    link: Optional[str] = None
    repository: Optional[str] = None
    pr_number: Optional[int] = None
    author: Optional[str] = None
    branch_name: Optional[str] = None
    short_oid: Optional[str] = None
    commit_count: Optional[int] = None
    ticket: Optional[TicketReference] = None


@dataclass
class DailyReport:
    """The three report sections for one date."""

    date: str
    day_name: str
    authored: list[ReportEntry] = field(default_factory=list)
    reviewed: list[ReportEntry] = field(default_factory=list)
    commits: list[ReportEntry] = field(default_factory=list)
    formal_review_count: int = 0
    comment_only_count: int = 0
    commit_count: int = 0
    failed_categories: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.authored or self.reviewed or self.commits)
