"""Resolve overlapping activity candidates into disjoint report sections.

The same piece of work is usually fetched several times: a PR opened today
also shows up in the "reviewed-by" search once somebody asks for changes,
its commits show up in the commit history, and so on. Each stage below takes
the ``SeenSet`` produced by the previous stage, drops whatever is already
reported, and returns a larger ``SeenSet`` for the next one:

    authored -> reviewed/commented -> commits -> branch groups
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from .models import CommitRecord, IdentityKey, PullRequestRecord, SeenSet, coerce_records

logger = logging.getLogger(__name__)

# (pr_number, repository) -> did the current user act on the PR on the target date
ConfirmationPredicate = Callable[[int, str], bool]

RawPullRequests = Iterable[Union[PullRequestRecord, Mapping[str, Any]]]
RawCommits = Iterable[Union[CommitRecord, Mapping[str, Any]]]


@dataclass
class ReviewSelection:
    """Outcome of the reviewed/commented stage."""

    entries: list[PullRequestRecord] = field(default_factory=list)
    comment_only_keys: frozenset[IdentityKey] = frozenset()

    @property
    def comment_only_count(self) -> int:
        return sum(1 for pr in self.entries if pr.number_key in self.comment_only_keys)

    @property
    def formal_review_count(self) -> int:
        return len(self.entries) - self.comment_only_count

    def is_comment_only(self, pr: PullRequestRecord) -> bool:
        return pr.number_key in self.comment_only_keys


@dataclass
class ClassificationResult:
    """The authored and reviewed sections plus the commits left for aggregation."""

    authored: list[PullRequestRecord]
    reviews: ReviewSelection
    commits: list[CommitRecord]
    seen: SeenSet


def _same_user(login: Optional[str], current_user: str) -> bool:
    # GitHub logins are case-insensitive
    return login is not None and login.casefold() == current_user.casefold()


def mark_authored(
    authored: RawPullRequests, seen: SeenSet
) -> tuple[list[PullRequestRecord], SeenSet]:
    """Authored section: every authored PR, unchanged, all of its keys marked seen."""
    records = coerce_records(authored, PullRequestRecord, "authored")
    for pr in records:
        seen = seen.with_keys(pr.identity_keys())
    logger.debug(f"Authored section: {len(records)} PRs, {len(seen)} keys seen")
    return records, seen


def confirm_candidates(
    candidates: Iterable[PullRequestRecord],
    confirmed: ConfirmationPredicate,
    current_user: str,
) -> list[PullRequestRecord]:
    """Keep candidates authored by someone else that the predicate confirms.

    The author check runs first so the predicate (usually an API lookup) is
    never called for the user's own PRs.
    """
    result = []
    for pr in candidates:
        if _same_user(pr.author_login, current_user):
            continue
        if confirmed(pr.number, pr.repository):
            result.append(pr)
    return result


def select_reviewed_or_commented(
    reviewed_candidates: RawPullRequests,
    commented_candidates: RawPullRequests,
    *,
    review_confirmed: ConfirmationPredicate,
    comment_confirmed: ConfirmationPredicate,
    current_user: str,
    seen: SeenSet,
) -> tuple[ReviewSelection, SeenSet]:
    """Build the "Code Reviews & Comments" section.

    Formal reviews win over comments for the same PR; the merged list is unique
    by PR (number within repository) and sorted by PR number. Entries sharing
    any identity key with something already seen are dropped, and the
    survivors' keys are marked so later stages skip them.
    """
    reviewed = confirm_candidates(
        coerce_records(reviewed_candidates, PullRequestRecord, "reviewed"),
        review_confirmed,
        current_user,
    )
    reviewed_numbers = {pr.number_key for pr in reviewed}

    commented = [
        pr
        for pr in confirm_candidates(
            coerce_records(commented_candidates, PullRequestRecord, "commented"),
            comment_confirmed,
            current_user,
        )
        if pr.number_key not in reviewed_numbers
    ]

    merged: dict[IdentityKey, PullRequestRecord] = {}
    for pr in reviewed + commented:
        merged.setdefault(pr.number_key, pr)
    ordered = sorted(merged.values(), key=lambda pr: (pr.number, pr.repository))

    comment_only = {pr.number_key for pr in commented}
    entries = []
    for pr in ordered:
        keys = pr.identity_keys()
        if seen.contains_any(keys):
            logger.debug(f"Skipping {pr.repository}#{pr.number}: already reported")
            continue
        seen = seen.with_keys(keys)
        entries.append(pr)

    selection = ReviewSelection(
        entries=entries,
        comment_only_keys=frozenset(pr.number_key for pr in entries if pr.number_key in comment_only),
    )
    return selection, seen


def filter_commits(commits: RawCommits, seen: SeenSet) -> list[CommitRecord]:
    """Commit section candidates: unique by oid, minus commits of already reported PRs.

    The SeenSet is only read here; commits are marked per branch group by the
    aggregator.
    """
    result = []
    oids: set[str] = set()
    for commit in coerce_records(commits, CommitRecord, "commit"):
        if commit.oid in oids:
            continue
        oids.add(commit.oid)
        if seen.contains_any(commit.pr_identity_keys()):
            logger.debug(f"Skipping commit {commit.short_oid}: its PR is already reported")
            continue
        result.append(commit)
    return result


class ActivityClassifier:
    """Partition one day's candidates into authored, reviewed/commented and commit sets."""

    def __init__(
        self,
        current_user: str,
        review_confirmed: ConfirmationPredicate,
        comment_confirmed: ConfirmationPredicate,
    ) -> None:
        """Initialize the classifier.

        Args:
            current_user: Login of the user the report is for
            review_confirmed: True iff the user submitted a review on the PR on the target date
            comment_confirmed: True iff the user commented on the PR on the target date
        """
        self.current_user = current_user
        self.review_confirmed = review_confirmed
        self.comment_confirmed = comment_confirmed

    def classify(
        self,
        authored: RawPullRequests,
        reviewed_candidates: RawPullRequests,
        commented_candidates: RawPullRequests,
        commits: RawCommits,
        seen: Optional[SeenSet] = None,
    ) -> ClassificationResult:
        seen = seen if seen is not None else SeenSet()

        authored_prs, seen = mark_authored(authored, seen)
        reviews, seen = select_reviewed_or_commented(
            reviewed_candidates,
            commented_candidates,
            review_confirmed=self.review_confirmed,
            comment_confirmed=self.comment_confirmed,
            current_user=self.current_user,
            seen=seen,
        )
        remaining_commits = filter_commits(commits, seen)

        logger.info(
            f"Classified {len(authored_prs)} authored PRs, {len(reviews.entries)} "
            f"reviewed/commented PRs, {len(remaining_commits)} commits"
        )
        return ClassificationResult(
            authored=authored_prs,
            reviews=reviews,
            commits=remaining_commits,
            seen=seen,
        )
