"""Record types and identity tracking for the daily report pipeline.

Raw activity arrives from the fetch stage as loosely shaped mappings (GitHub
search results, GraphQL nodes, dicts built from PyGithub objects). The
``*.from_dict`` constructors normalize them into frozen records and raise
``RecordShapeError`` when a required field is missing, so the classification
stages can skip a bad record without aborting the run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, TypeVar, Union

from ..errors import RecordShapeError

logger = logging.getLogger(__name__)

_NULL_MARKERS = {"", "null", "none"}


def _optional_text(value: Any) -> Optional[str]:
    """Normalize upstream "empty" sentinels ('' / 'null' / None) to None."""
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in _NULL_MARKERS:
        return None
    return text


def _required_text(data: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = _optional_text(data.get(key))
        if value is not None:
            return value
    raise RecordShapeError(f"missing required field {keys[0]!r}")


def _nested_login(value: Any) -> Optional[str]:
    """Read a login from either ``"octocat"`` or ``{"login": "octocat"}``."""
    if isinstance(value, Mapping):
        return _optional_text(value.get("login"))
    return _optional_text(value)


def _repository_name(value: Any) -> Optional[str]:
    """Read ``owner/name`` from a string or a ``{"nameWithOwner": ...}`` node."""
    if isinstance(value, Mapping):
        return _optional_text(value.get("nameWithOwner") or value.get("full_name"))
    return _optional_text(value)


def _pr_number(value: Any) -> int:
    if isinstance(value, bool):
        raise RecordShapeError(f"invalid pull request number {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise RecordShapeError(f"invalid pull request number {value!r}") from e
    if number <= 0:
        raise RecordShapeError(f"invalid pull request number {value!r}")
    return number


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = _optional_text(value)
    if text is None:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise RecordShapeError(f"invalid timestamp {value!r}") from e


class IdentityKind(Enum):
    """The three ways two activity records can be recognised as the same work."""

    PR_NUMBER = "pr_number"
    PR_URL = "pr_url"
    BRANCH = "branch"


@dataclass(frozen=True)
class IdentityKey:
    """One identity of an activity record.

    PR numbers are only unique within a repository, so ``PR_NUMBER`` keys carry
    the repository; URL and branch keys compare on value alone.
    """

    kind: IdentityKind
    value: str
    repository: Optional[str] = None

    @classmethod
    def for_pr_number(cls, number: int, repository: str) -> IdentityKey:
        return cls(IdentityKind.PR_NUMBER, str(number), repository)

    @classmethod
    def for_url(cls, url: str) -> IdentityKey:
        return cls(IdentityKind.PR_URL, url)

    @classmethod
    def for_branch(cls, branch_name: str) -> IdentityKey:
        return cls(IdentityKind.BRANCH, branch_name)

    def __str__(self) -> str:
        if self.kind is IdentityKind.PR_NUMBER:
            return f"{self.repository}#{self.value}"
        return f"{self.kind.value}:{self.value}"


@dataclass(frozen=True)
class SeenSet:
    """Identity keys already assigned to an earlier report section.

    The set is a value: ``with_keys`` returns a new, larger set and never
    removes anything, so each pipeline stage takes a SeenSet and hands the
    next stage a superset of it.
    """

    keys: frozenset[IdentityKey] = field(default_factory=frozenset)

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[IdentityKey]:
        return iter(self.keys)

    def contains_any(self, keys: Iterable[IdentityKey]) -> bool:
        """True if any of ``keys`` is already seen (identity is an OR across key kinds)."""
        return any(key in self.keys for key in keys)

    def with_keys(self, keys: Iterable[IdentityKey]) -> SeenSet:
        return SeenSet(self.keys.union(keys))


@dataclass(frozen=True)
class PullRequestRecord:
    """A pull request candidate for the authored or reviewed/commented sections."""

    number: int
    title: str
    url: str
    repository: str
    author_login: Optional[str] = None
    branch_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def number_key(self) -> IdentityKey:
        return IdentityKey.for_pr_number(self.number, self.repository)

    def identity_keys(self) -> list[IdentityKey]:
        keys = [self.number_key, IdentityKey.for_url(self.url)]
        if self.branch_name:
            keys.append(IdentityKey.for_branch(self.branch_name))
        return keys

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PullRequestRecord:
        """Build a record from a GitHub-style PR mapping.

        Raises:
            RecordShapeError: If number, url or repository is missing
        """
        if not isinstance(data, Mapping):
            raise RecordShapeError(f"expected a mapping, got {type(data).__name__}")

        repository = _repository_name(data.get("repository")) or _optional_text(
            data.get("repository_id")
        )
        if repository is None:
            raise RecordShapeError("missing required field 'repository'")

        return cls(
            number=_pr_number(data.get("number")),
            title=_optional_text(data.get("title")) or "",
            url=_required_text(data, "url", "html_url"),
            repository=repository,
            author_login=_nested_login(data.get("author")) or _optional_text(data.get("author_login")),
            branch_name=_optional_text(data.get("headRefName")) or _optional_text(data.get("branch_name")),
            created_at=_timestamp(data.get("createdAt", data.get("created_at"))),
        )


@dataclass(frozen=True)
class AssociatedPullRequest:
    """The pull request a commit belongs to, as reported alongside the commit."""

    number: int
    url: str
    branch_name: Optional[str] = None
    title: Optional[str] = None

    def identity_keys(self, repository: str) -> list[IdentityKey]:
        """Number and URL keys; the head branch is not included."""
        return [IdentityKey.for_pr_number(self.number, repository), IdentityKey.for_url(self.url)]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AssociatedPullRequest:
        if not isinstance(data, Mapping):
            raise RecordShapeError(f"expected a mapping, got {type(data).__name__}")
        return cls(
            number=_pr_number(data.get("number")),
            url=_required_text(data, "url", "html_url"),
            branch_name=_optional_text(data.get("headRefName")) or _optional_text(data.get("branch_name")),
            title=_optional_text(data.get("title")),
        )


@dataclass(frozen=True)
class CommitRecord:
    """A commit authored by the current user on the target date."""

    oid: str
    message_first_line: str
    repository: str
    author_identity: Optional[str] = None
    branch_name: Optional[str] = None
    associated_pr: Optional[AssociatedPullRequest] = None

    @property
    def short_oid(self) -> str:
        return self.oid[:7]

    @property
    def grouping_branch(self) -> Optional[str]:
        """Branch used to group this commit: the PR's head branch, else the ref it was found on."""
        if self.associated_pr and self.associated_pr.branch_name:
            return self.associated_pr.branch_name
        return self.branch_name

    def pr_identity_keys(self) -> list[IdentityKey]:
        """Number and URL keys of the associated pull request, if any."""
        if self.associated_pr is None:
            return []
        return self.associated_pr.identity_keys(self.repository)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CommitRecord:
        """Build a record from a commit mapping.

        Accepts both ``associatedPullRequest`` (a single node) and the GraphQL
        ``associatedPullRequests.nodes`` list, of which the first node is used.

        Raises:
            RecordShapeError: If oid or repository is missing
        """
        if not isinstance(data, Mapping):
            raise RecordShapeError(f"expected a mapping, got {type(data).__name__}")

        oid = _required_text(data, "oid", "sha")
        repository = _repository_name(data.get("repository"))
        if repository is None:
            raise RecordShapeError("missing required field 'repository'")

        message = data.get("message") or data.get("message_first_line") or ""
        first_line = str(message).splitlines()[0].strip() if str(message).strip() else ""

        author = data.get("author")
        if isinstance(author, Mapping):
            author_identity = _nested_login(author.get("user")) or _optional_text(author.get("name"))
        else:
            author_identity = _optional_text(author) or _optional_text(data.get("author_identity"))

        pr_data = data.get("associatedPullRequest") or data.get("associated_pr")
        if pr_data is None:
            connection = data.get("associatedPullRequests")
            nodes = connection.get("nodes") if isinstance(connection, Mapping) else connection
            pr_data = nodes[0] if nodes else None

        associated_pr = None
        if pr_data:
            try:
                associated_pr = AssociatedPullRequest.from_dict(pr_data)
            except RecordShapeError as e:
                # The commit itself is still valid activity.
                logger.debug(f"Ignoring malformed associated PR on commit {oid[:7]}: {e}")

        return cls(
            oid=oid,
            message_first_line=first_line,
            repository=repository,
            author_identity=author_identity,
            branch_name=_optional_text(data.get("branchName")) or _optional_text(data.get("branch_name")),
            associated_pr=associated_pr,
        )


@dataclass
class BranchGroup:
    """All surviving commits that share one branch."""

    branch_name: str
    repository: str
    commit_count: int = 0
    ticket_id: Optional[str] = None
    representative_pr: Optional[AssociatedPullRequest] = None
    representative_repository: Optional[str] = None
    commits: list[CommitRecord] = field(default_factory=list)

    def identity_keys(self) -> list[IdentityKey]:
        keys = [IdentityKey.for_branch(self.branch_name)]
        if self.representative_pr is not None:
            repository = self.representative_repository or self.repository
            keys.extend(self.representative_pr.identity_keys(repository))
        return keys


@dataclass(frozen=True)
class UnattributedCommit:
    """A commit with no resolvable branch; reported on its own."""

    commit: CommitRecord
    ticket_id: Optional[str] = None


RecordT = TypeVar("RecordT", PullRequestRecord, CommitRecord)


def coerce_records(
    items: Iterable[Union[RecordT, Mapping[str, Any]]],
    record_type: type[RecordT],
    category: str,
) -> list[RecordT]:
    """Normalize raw candidates into records, skipping malformed ones.

    Args:
        items: Records or raw mappings from the fetch stage
        record_type: ``PullRequestRecord`` or ``CommitRecord``
        category: Category name used in log messages

    Returns:
        Valid records in encounter order
    """
    records: list[RecordT] = []
    for index, item in enumerate(items or []):
        if isinstance(item, record_type):
            records.append(item)
            continue
        try:
            records.append(record_type.from_dict(item))
        except RecordShapeError as e:
            logger.warning(f"Skipping malformed {category} record #{index}: {e}")
    return records
