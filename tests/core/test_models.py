"""Tests for record coercion and identity keys."""

from datetime import datetime, timezone

import pytest

from github_daily_report.core.models import (
    AssociatedPullRequest,
    BranchGroup,
    CommitRecord,
    IdentityKey,
    IdentityKind,
    PullRequestRecord,
    SeenSet,
    coerce_records,
)
from github_daily_report.errors import RecordShapeError

REPO = "acme/api"


class TestIdentityKey:
    """Tests for IdentityKey equality semantics."""

    def test_pr_number_keys_are_repository_scoped(self):
        assert IdentityKey.for_pr_number(12, REPO) == IdentityKey.for_pr_number(12, REPO)
        assert IdentityKey.for_pr_number(12, REPO) != IdentityKey.for_pr_number(12, "acme/web")

    def test_no_partial_number_match(self):
        seen = SeenSet().with_keys([IdentityKey.for_pr_number(123, REPO)])

        assert IdentityKey.for_pr_number(12, REPO) not in seen
        assert IdentityKey.for_pr_number(123, REPO) in seen

    def test_kinds_never_collide(self):
        assert IdentityKey.for_branch("12") != IdentityKey(IdentityKind.PR_NUMBER, "12")


class TestSeenSet:
    """Tests for the immutable SeenSet."""

    def test_with_keys_returns_new_superset(self):
        original = SeenSet()
        key = IdentityKey.for_branch("feature/x")

        extended = original.with_keys([key])

        assert key not in original
        assert key in extended
        assert len(original) == 0
        assert len(extended) == 1

    def test_contains_any(self):
        seen = SeenSet().with_keys([IdentityKey.for_url("https://github.com/acme/api/pull/1")])

        assert seen.contains_any(
            [IdentityKey.for_branch("x"), IdentityKey.for_url("https://github.com/acme/api/pull/1")]
        )
        assert not seen.contains_any([IdentityKey.for_branch("x")])
        assert not seen.contains_any([])


class TestPullRequestRecord:
    """Tests for PullRequestRecord.from_dict()."""

    def test_graphql_style_mapping(self):
        pr = PullRequestRecord.from_dict(
            {
                "number": 5,
                "title": "Add totals",
                "url": "https://github.com/acme/api/pull/5",
                "repository": {"nameWithOwner": REPO},
                "author": {"login": "octocat"},
                "headRefName": "feature/CHE-1",
                "createdAt": "2025-06-16T09:30:00Z",
            }
        )

        assert pr.number == 5
        assert pr.repository == REPO
        assert pr.author_login == "octocat"
        assert pr.branch_name == "feature/CHE-1"
        assert pr.created_at == datetime(2025, 6, 16, 9, 30, tzinfo=timezone.utc)

    def test_flat_mapping(self):
        pr = PullRequestRecord.from_dict(
            {
                "number": "7",
                "title": "Fix",
                "html_url": "https://github.com/acme/api/pull/7",
                "repository_id": REPO,
                "author_login": "hubot",
                "branch_name": "null",
            }
        )

        assert pr.number == 7
        assert pr.author_login == "hubot"
        assert pr.branch_name is None

    def test_identity_keys_include_branch_only_when_known(self):
        pr = PullRequestRecord(1, "t", "https://github.com/acme/api/pull/1", REPO)
        with_branch = PullRequestRecord(1, "t", "https://github.com/acme/api/pull/1", REPO, branch_name="b")

        assert len(pr.identity_keys()) == 2
        assert IdentityKey.for_branch("b") in with_branch.identity_keys()

    @pytest.mark.parametrize(
        "data",
        [
            {"title": "no number", "url": "u", "repository": REPO},
            {"number": 0, "url": "u", "repository": REPO},
            {"number": "abc", "url": "u", "repository": REPO},
            {"number": 1, "repository": REPO},
            {"number": 1, "url": "u"},
            "not a mapping",
        ],
    )
    def test_malformed_records_raise(self, data):
        with pytest.raises(RecordShapeError):
            PullRequestRecord.from_dict(data)


class TestCommitRecord:
    """Tests for CommitRecord.from_dict()."""

    def test_graphql_commit_node(self):
        commit = CommitRecord.from_dict(
            {
                "oid": "abcdef1234567",
                "message": "CHE-3: fix totals\n\nLonger body",
                "repository": REPO,
                "author": {"name": "Octo Cat", "user": {"login": "octocat"}},
                "branchName": "main",
                "associatedPullRequests": {
                    "nodes": [
                        {"number": 9, "url": "https://github.com/acme/api/pull/9", "headRefName": "feature/x"}
                    ]
                },
            }
        )

        assert commit.short_oid == "abcdef1"
        assert commit.message_first_line == "CHE-3: fix totals"
        assert commit.author_identity == "octocat"
        assert commit.associated_pr.number == 9
        assert commit.grouping_branch == "feature/x"

    def test_grouping_branch_falls_back_to_ref(self):
        commit = CommitRecord.from_dict({"sha": "abc1234", "message": "x", "repository": REPO, "branch_name": "dev"})

        assert commit.associated_pr is None
        assert commit.grouping_branch == "dev"
        assert commit.pr_identity_keys() == []

    def test_author_name_used_without_login(self):
        commit = CommitRecord.from_dict(
            {"oid": "abc1234", "message": "x", "repository": REPO, "author": {"name": "Octo", "user": None}}
        )

        assert commit.author_identity == "Octo"

    def test_malformed_associated_pr_is_ignored(self):
        commit = CommitRecord.from_dict(
            {"oid": "abc1234", "message": "x", "repository": REPO, "associatedPullRequest": {"number": "?"}}
        )

        assert commit.associated_pr is None

    def test_pr_identity_keys_exclude_branch(self):
        commit = CommitRecord(
            oid="abc1234",
            message_first_line="x",
            repository=REPO,
            associated_pr=AssociatedPullRequest(9, "https://github.com/acme/api/pull/9", "feature/x"),
        )

        keys = commit.pr_identity_keys()

        assert IdentityKey.for_pr_number(9, REPO) in keys
        assert IdentityKey.for_url("https://github.com/acme/api/pull/9") in keys
        assert IdentityKey.for_branch("feature/x") not in keys

    def test_missing_oid_raises(self):
        with pytest.raises(RecordShapeError):
            CommitRecord.from_dict({"message": "x", "repository": REPO})


class TestBranchGroup:
    """Tests for BranchGroup identity keys."""

    def test_keys_without_pr(self):
        group = BranchGroup(branch_name="feature/x", repository=REPO)

        assert group.identity_keys() == [IdentityKey.for_branch("feature/x")]

    def test_keys_with_representative_pr(self):
        group = BranchGroup(
            branch_name="feature/x",
            repository=REPO,
            representative_pr=AssociatedPullRequest(9, "https://github.com/acme/web/pull/9"),
            representative_repository="acme/web",
        )

        assert IdentityKey.for_pr_number(9, "acme/web") in group.identity_keys()


class TestCoerceRecords:
    """Tests for coerce_records()."""

    def test_skips_malformed_and_keeps_order(self):
        good = {"number": 1, "title": "a", "url": "u1", "repository": REPO}
        existing = PullRequestRecord(2, "b", "u2", REPO)

        records = coerce_records([good, {"title": "broken"}, existing], PullRequestRecord, "authored")

        assert [pr.number for pr in records] == [1, 2]

    def test_none_is_empty(self):
        assert coerce_records(None, CommitRecord, "commit") == []
