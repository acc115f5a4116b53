"""Daily report rendering in Markdown and Slack flavours."""

import logging
import shutil
import subprocess
from io import StringIO
from typing import Callable, Optional

from rich.console import Console

from ..core.branch_aggregator import AggregationResult
from ..core.classifier import ClassificationResult
from ..core.models import BranchGroup, PullRequestRecord, UnattributedCommit
from ..extractors.tickets import TicketExtractor
from ..pipeline_types import DailyReport, EntryCategory, ReportEntry, TicketReference

# Get logger for this module
logger = logging.getLogger(__name__)

FORMATS = ("markdown", "slack")

SECTION_TITLES = {
    "authored": "Opened PRs",
    "reviewed": "Code Reviews & Comments",
    "commits": "Commits, Merges, Resolutions",
}

CLIPBOARD_COMMANDS = (
    ("pbcopy",),
    ("wl-copy",),
    ("xclip", "-selection", "clipboard"),
    ("xsel", "--clipboard", "--input"),
)


def build_report_entries(
    classification: ClassificationResult,
    aggregation: AggregationResult,
    ticket_extractor: TicketExtractor,
    ticket_resolver: Optional[Callable[[str], TicketReference]] = None,
) -> tuple[list[ReportEntry], list[ReportEntry], list[ReportEntry]]:
    """Convert the classified partition into report entries.

    Ticket ids come from PR head branches, branch group names, or (for
    commits without a branch) the commit subject. Each distinct id is
    resolved at most once per report.

    Returns:
        Tuple of (authored, reviewed, commits) entry lists
    """
    resolved: dict[str, TicketReference] = {}

    def ticket_for(ticket_id: Optional[str]) -> Optional[TicketReference]:
        if not ticket_id:
            return None
        if ticket_id not in resolved:
            resolved[ticket_id] = (
                ticket_resolver(ticket_id) if ticket_resolver else TicketReference(ticket_id)
            )
        return resolved[ticket_id]

    def pr_entry(pr: PullRequestRecord, category: EntryCategory) -> ReportEntry:
        return ReportEntry(
            category=category,
            title=pr.title,
            link=pr.url,
            repository=pr.repository,
            pr_number=pr.number,
            author=pr.author_login,
            branch_name=pr.branch_name,
            ticket=ticket_for(ticket_extractor.extract_ticket_id(pr.branch_name)),
        )

    def group_entry(group: BranchGroup) -> ReportEntry:
        pr = group.representative_pr
        return ReportEntry(
            category=EntryCategory.BRANCH,
            title=(pr.title if pr and pr.title else group.branch_name),
            link=pr.url if pr else None,
            repository=group.repository,
            pr_number=pr.number if pr else None,
            branch_name=group.branch_name,
            commit_count=group.commit_count,
            ticket=ticket_for(group.ticket_id),
        )

    def commit_entry(item: UnattributedCommit) -> ReportEntry:
        commit = item.commit
        pr = commit.associated_pr
        return ReportEntry(
            category=EntryCategory.COMMIT,
            title=commit.message_first_line,
            link=pr.url if pr else None,
            repository=commit.repository,
            pr_number=pr.number if pr else None,
            author=commit.author_identity,
            short_oid=commit.short_oid,
            commit_count=1,
            ticket=ticket_for(item.ticket_id),
        )

    authored = [pr_entry(pr, EntryCategory.AUTHORED) for pr in classification.authored]
    reviewed = [
        pr_entry(
            pr,
            EntryCategory.COMMENTED
            if classification.reviews.is_comment_only(pr)
            else EntryCategory.REVIEWED,
        )
        for pr in classification.reviews.entries
    ]
    # Stand-alone commits are listed before branch groups
    commits = [commit_entry(item) for item in aggregation.unattributed]
    commits.extend(group_entry(group) for group in aggregation.groups)

    return authored, reviewed, commits


class DailyReportWriter:
    """Render a DailyReport as text for the terminal and the clipboard."""

    def __init__(self, fmt: str = "markdown") -> None:
        """Initialize the writer.

        Args:
            fmt: Output flavour, ``markdown`` or ``slack``

        Raises:
            ValueError: If the format is unknown
        """
        if fmt not in FORMATS:
            raise ValueError(f"Unknown report format {fmt!r}; expected one of {', '.join(FORMATS)}")
        self.fmt = fmt

    @property
    def is_slack(self) -> bool:
        return self.fmt == "slack"

    def render(self, report: DailyReport) -> str:
        """Render the report sections; empty sections are omitted entirely.

        Returns:
            Section text, or an empty string when there is no activity
        """
        output = StringIO()
        sections = (
            ("authored", report.authored),
            ("reviewed", report.reviewed),
            ("commits", report.commits),
        )
        for key, entries in sections:
            if not entries:
                continue
            output.write(self._format_header(SECTION_TITLES[key]) + "\n")
            for entry in entries:
                output.write(f"{self._bullet()} {self.format_entry(entry)}\n")
            output.write("\n")
        return output.getvalue().rstrip("\n")

    def render_summary(self, report: DailyReport) -> str:
        """One or two summary lines, or the explicit no-activity message."""
        if report.is_empty():
            return f"No GitHub activity found for {report.date}"

        summary = (
            f"Total: {len(report.authored)} PRs authored, "
            f"{len(report.reviewed)} PRs reviewed/commented, "
            f"{report.commit_count} commits"
        )
        if report.formal_review_count and report.comment_only_count:
            summary += (
                f"\n  ({report.formal_review_count} formal reviews, "
                f"{report.comment_only_count} comment-only interactions)"
            )
        return summary

    def print_report(self, report: DailyReport, console: Optional[Console] = None) -> str:
        """Print the full report to the terminal.

        Returns:
            The rendered section text (what gets copied to the clipboard)
        """
        console = console or Console()
        body = self.render(report)

        console.print(f"GitHub Activity Report for {report.date} ({report.day_name})", style="bold blue")
        console.print("=" * 48, style="blue")

        for category in report.failed_categories:
            console.print(f"Warning: could not fetch {category}; section may be incomplete", style="yellow", soft_wrap=True)

        if report.is_empty():
            console.print(self.render_summary(report), style="yellow")
            return body

        console.print("\n## Daily GitHub Activity Summary", style="bold green", markup=False)
        console.print(f"Date: {report.date}\n", style="green")
        for line in body.splitlines():
            style = "bold blue" if self._is_header(line) else None
            # Entries contain "[...]" link text, which must not be read as rich markup
            console.print(line, style=style, markup=False, highlight=False, soft_wrap=True)
        console.print()
        console.print(self.render_summary(report), style="green", markup=False, soft_wrap=True)
        return body

    def format_entry(self, entry: ReportEntry) -> str:
        if entry.category is EntryCategory.BRANCH:
            return self._format_branch(entry)
        if entry.category is EntryCategory.COMMIT:
            return self._format_commit(entry)
        return self._format_pr(entry)

    def _format_header(self, title: str) -> str:
        return f"*{title}*" if self.is_slack else f"### {title}"

    def _is_header(self, line: str) -> bool:
        if self.is_slack:
            return line.startswith("*") and line.endswith("*")
        return line.startswith("### ")

    def _bullet(self) -> str:
        return "•" if self.is_slack else "-"

    def _link(self, text: str, url: Optional[str]) -> str:
        if not url:
            return text
        return f"{text} ({url})" if self.is_slack else f"[{text}]({url})"

    def _format_ticket(self, ticket: TicketReference) -> str:
        reference = self._link(ticket.ticket_id, ticket.url)
        return f"{ticket.title} {reference}" if ticket.title else reference

    def _format_pr(self, entry: ReportEntry) -> str:
        if entry.ticket:
            pr_ref = self._link(f"PR #{entry.pr_number}", entry.link)
            separator = " - " if self.is_slack else " "
            return f"{self._format_ticket(entry.ticket)} - {entry.title}{separator}{pr_ref}"

        line = self._link(f"PR #{entry.pr_number}: {entry.title}", entry.link)
        if entry.category is not EntryCategory.AUTHORED and entry.author:
            line += f" by @{entry.author}"
        return line

    def _format_branch(self, entry: ReportEntry) -> str:
        if entry.ticket:
            line = f"{self._format_ticket(entry.ticket)} - development on `{entry.branch_name}`"
        else:
            line = f"Development on `{entry.branch_name}`"

        if entry.commit_count and entry.commit_count > 1:
            line += f" ({entry.commit_count} commits)"

        if entry.pr_number is not None:
            separator = " - " if self.is_slack else " "
            line += separator + self._link(f"PR #{entry.pr_number}", entry.link)
        return line

    def _format_commit(self, entry: ReportEntry) -> str:
        line = f"{entry.title} ({entry.short_oid})"
        if entry.ticket:
            line = f"{self._format_ticket(entry.ticket)} - {line}"
        return line


def copy_to_clipboard(text: str) -> bool:
    """Copy text with the first available platform clipboard command.

    Returns:
        True if a clipboard command accepted the text
    """
    if not text:
        return False

    for command in CLIPBOARD_COMMANDS:
        if shutil.which(command[0]) is None:
            continue
        try:
            subprocess.run(list(command), input=text.encode("utf-8"), check=True, timeout=5)
            logger.debug(f"Copied report to clipboard with {command[0]}")
            return True
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Clipboard command {command[0]} failed: {e}")

    logger.info("No clipboard command available; report not copied")
    return False
