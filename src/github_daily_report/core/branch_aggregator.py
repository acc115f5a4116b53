"""Group the day's surviving commits by branch."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from ..extractors.tickets import TicketExtractor
from .models import BranchGroup, CommitRecord, SeenSet, UnattributedCommit

logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    """Branch groups and stand-alone commits, both in encounter order."""

    groups: list[BranchGroup] = field(default_factory=list)
    unattributed: list[UnattributedCommit] = field(default_factory=list)
    seen: SeenSet = field(default_factory=SeenSet)

    @property
    def commit_count(self) -> int:
        return sum(group.commit_count for group in self.groups) + len(self.unattributed)

    def is_empty(self) -> bool:
        return not self.groups and not self.unattributed


class BranchAggregator:
    """Collapse commits into one entry per branch.

    WHY: Ten "fix review comments" commits on one feature branch are one line
    of work in a daily report, not ten.

    Rules:
    - The grouping branch is the associated PR's head branch, falling back to
      the ref the commit was discovered on.
    - ``ticket_id`` and ``representative_pr`` are first-wins and never
      overwritten by later commits.
    - A group whose branch or representative PR is already in the SeenSet is
      dropped as a whole; otherwise its keys are marked as seen.
    - Commits without any branch are reported one by one.
    """

    def __init__(self, ticket_extractor: Optional[TicketExtractor] = None) -> None:
        self.ticket_extractor = ticket_extractor or TicketExtractor()

    def group(self, commits: Iterable[CommitRecord], seen: SeenSet) -> AggregationResult:
        """Group commits and apply the cascading exclusion.

        Args:
            commits: Commits that survived classification, in fetch order
            seen: Keys already reported by earlier sections

        Returns:
            AggregationResult with the SeenSet extended by every emitted group
        """
        groups: dict[str, BranchGroup] = {}
        loose: list[CommitRecord] = []

        for commit in commits:
            branch = commit.grouping_branch
            if branch is None:
                loose.append(commit)
                continue

            group = groups.get(branch)
            if group is None:
                group = BranchGroup(branch_name=branch, repository=commit.repository)
                groups[branch] = group

            group.commits.append(commit)
            group.commit_count += 1

            if group.ticket_id is None:
                for name in (branch, commit.branch_name):
                    ticket_id = self.ticket_extractor.extract_ticket_id(name)
                    if ticket_id:
                        group.ticket_id = ticket_id
                        break

            if group.representative_pr is None and commit.associated_pr is not None:
                group.representative_pr = commit.associated_pr
                group.representative_repository = commit.repository

        result = AggregationResult(seen=seen)
        for group in groups.values():
            keys = group.identity_keys()
            if result.seen.contains_any(keys):
                logger.debug(f"Dropping branch group {group.branch_name!r}: already reported")
                continue
            result.seen = result.seen.with_keys(keys)
            result.groups.append(group)

        # Loose commits are checked only after every group has been emitted.
        for commit in loose:
            keys = commit.pr_identity_keys()
            if result.seen.contains_any(keys):
                logger.debug(f"Skipping commit {commit.short_oid}: its PR is already reported")
                continue
            result.seen = result.seen.with_keys(keys)
            result.unattributed.append(
                UnattributedCommit(
                    commit=commit,
                    ticket_id=self.ticket_extractor.extract_ticket_id(commit.message_first_line),
                )
            )

        logger.debug(
            f"Aggregated {len(result.groups)} branch groups and "
            f"{len(result.unattributed)} unattributed commits"
        )
        return result
