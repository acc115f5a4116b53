"""Tests for the classify -> aggregate -> report pipeline."""

import random
from unittest.mock import Mock

import pytest

from github_daily_report.core.models import CommitRecord, IdentityKey, PullRequestRecord
from github_daily_report.extractors.tickets import TicketExtractor
from github_daily_report.pipeline import build_daily_report, classify_day
from github_daily_report.pipeline_types import ActivityCandidates, EntryCategory, TicketReference

ME = "octocat"
REPOS = ("acme/api", "acme/web")
BRANCHES = (None, "main", "feature/CHE-1-a", "feature/CHE-2-b", "fix/c")


def _pr(number, author="alice", branch=None, repo="acme/api"):
    return {
        "number": number,
        "title": f"PR {number}",
        "url": f"https://github.com/{repo}/pull/{number}",
        "repository": repo,
        "author": author,
        "headRefName": branch,
    }


def _commit(oid, branch=None, pr_number=None, pr_branch=None, repo="acme/api", message=None):
    data = {"oid": oid, "message": message or f"commit {oid}", "repository": repo, "branchName": branch}
    if pr_number is not None:
        data["associatedPullRequest"] = {
            "number": pr_number,
            "url": f"https://github.com/{repo}/pull/{pr_number}",
            "headRefName": pr_branch,
            "title": f"PR {pr_number}",
        }
    return data


def _random_candidates(rng):
    def pr():
        return _pr(rng.randint(1, 8), rng.choice([ME, "alice", "bob"]), rng.choice(BRANCHES), rng.choice(REPOS))

    def commit(index):
        pr_number = rng.choice([None, None, rng.randint(1, 8)])
        return _commit(
            f"{rng.randint(0, 12):07x}",
            rng.choice(BRANCHES),
            pr_number,
            rng.choice(BRANCHES) if pr_number else None,
            rng.choice(REPOS),
        )

    confirmed = {(rng.randint(1, 8), rng.choice(REPOS)) for _ in range(6)}

    return ActivityCandidates(
        target_date="2025-06-16",
        current_user=ME,
        authored=[pr() for _ in range(rng.randint(0, 3))],
        reviewed=[pr() for _ in range(rng.randint(0, 5))],
        commented=[pr() for _ in range(rng.randint(0, 5))],
        commits=[commit(i) for i in range(rng.randint(0, 10))],
        review_confirmed=lambda number, repo: (number, repo) in confirmed,
        comment_confirmed=lambda number, repo: (number + 1, repo) in confirmed,
    )


def _group_keys(commits):
    """Identity keys of every branch group the given commits would form."""
    keys = {}
    for commit in commits:
        branch = commit.grouping_branch
        if branch is None:
            continue
        group_keys = keys.setdefault(branch, [IdentityKey.for_branch(branch)])
        if len(group_keys) == 1 and commit.associated_pr is not None:
            group_keys.extend(commit.pr_identity_keys())
    return keys


class TestPartitionProperty:
    """The three sections never overlap and account for every accepted record."""

    @pytest.mark.parametrize("seed", range(200))
    def test_sections_are_disjoint_and_complete(self, seed):
        rng = random.Random(seed)
        candidates = _random_candidates(rng)

        classification, aggregation = classify_day(candidates)

        authored_keys = {key for pr in classification.authored for key in pr.identity_keys()}
        reviewed_keys = {key for pr in classification.reviews.entries for key in pr.identity_keys()}
        commit_keys = {key for group in aggregation.groups for key in group.identity_keys()}
        commit_keys |= {key for item in aggregation.unattributed for key in item.commit.pr_identity_keys()}

        assert not authored_keys & reviewed_keys
        assert not authored_keys & commit_keys
        assert not reviewed_keys & commit_keys

        final_seen = aggregation.seen
        for raw in candidates.reviewed:
            pr = PullRequestRecord.from_dict(raw)
            if pr.author_login != ME and candidates.review_confirmed(pr.number, pr.repository):
                assert final_seen.contains_any(pr.identity_keys())

        emitted_oids = {c.oid for group in aggregation.groups for c in group.commits}
        emitted_oids |= {item.commit.oid for item in aggregation.unattributed}
        first_occurrences = {}
        for raw in candidates.commits:
            commit = CommitRecord.from_dict(raw)
            first_occurrences.setdefault(commit.oid, commit)
        surviving = {commit.oid for commit in classification.commits}
        group_keys = _group_keys(classification.commits)
        for commit in first_occurrences.values():
            if commit.oid in emitted_oids:
                continue
            if commit.oid not in surviving or commit.grouping_branch is None:
                # Dropped with its already reported PR
                assert final_seen.contains_any(commit.pr_identity_keys())
            else:
                # Dropped together with its whole branch group
                assert final_seen.contains_any(group_keys[commit.grouping_branch])

    @pytest.mark.parametrize("seed", range(20))
    def test_deterministic(self, seed):
        first = build_daily_report(_random_candidates(random.Random(seed)))
        second = build_daily_report(_random_candidates(random.Random(seed)))

        assert first == second


class TestClassifyDay:
    """Worked examples through the whole pipeline."""

    def test_authored_pr_suppresses_its_review(self):
        candidates = ActivityCandidates(
            target_date="2025-07-08",
            current_user=ME,
            authored=[_pr(123, ME)],
            reviewed=[_pr(123, "alice"), _pr(125, "alice")],
            review_confirmed=lambda number, repo: True,
        )

        classification, aggregation = classify_day(candidates)

        assert [pr.number for pr in classification.authored] == [123]
        assert [pr.number for pr in classification.reviews.entries] == [125]
        assert aggregation.is_empty()

    def test_branch_group_of_reported_pr_is_dropped(self):
        candidates = ActivityCandidates(
            target_date="2025-07-08",
            current_user=ME,
            authored=[_pr(42, ME, "feature/CHE-10-x")],
            commits=[
                _commit("aaa0001", "feature/CHE-10-x"),
                _commit("aaa0002", "feature/CHE-10-x"),
            ],
        )

        _, aggregation = classify_day(candidates)

        assert aggregation.groups == []


class TestBuildDailyReport:
    """Tests for build_daily_report()."""

    def _candidates(self, **overrides):
        defaults = dict(
            target_date="2025-06-16",
            current_user=ME,
            authored=[_pr(1, ME, "feature/CHE-5-totals")],
            reviewed=[_pr(2, "alice")],
            commented=[_pr(3, "bob")],
            commits=[
                _commit("bbb0001", "feature/x", 9, "feature/x"),
                _commit("bbb0002", "feature/x", 9, "feature/x"),
                _commit("bbb0003", None, message="CHE-6: hotfix"),
            ],
            review_confirmed=lambda number, repo: number == 2,
            comment_confirmed=lambda number, repo: number == 3,
        )
        defaults.update(overrides)
        return ActivityCandidates(**defaults)

    def test_sections_and_counts(self):
        report = build_daily_report(self._candidates())

        assert report.day_name == "Monday"
        assert [e.pr_number for e in report.authored] == [1]
        assert [(e.pr_number, e.category) for e in report.reviewed] == [
            (2, EntryCategory.REVIEWED),
            (3, EntryCategory.COMMENTED),
        ]
        assert [e.category for e in report.commits] == [EntryCategory.COMMIT, EntryCategory.BRANCH]
        assert report.formal_review_count == 1
        assert report.comment_only_count == 1
        assert report.commit_count == 3
        assert not report.is_empty()

    def test_tickets_resolved_once_each(self):
        resolver = Mock(side_effect=lambda ticket_id: TicketReference(ticket_id, title=f"Title {ticket_id}"))

        report = build_daily_report(self._candidates(), TicketExtractor(), resolver)

        assert report.authored[0].ticket == TicketReference("CHE-5", title="Title CHE-5")
        assert report.commits[0].ticket.ticket_id == "CHE-6"
        assert sorted(call.args[0] for call in resolver.call_args_list) == ["CHE-5", "CHE-6"]

    def test_reviewed_pr_gets_ticket_from_branch(self):
        candidates = self._candidates(reviewed=[_pr(2, "alice", "feature/CHE-7-review")])

        report = build_daily_report(candidates, TicketExtractor(), lambda ticket_id: TicketReference(ticket_id))

        reviewed = report.reviewed[0]
        assert reviewed.category == EntryCategory.REVIEWED
        assert reviewed.ticket == TicketReference("CHE-7")

    def test_reviewed_branch_suppresses_its_commits(self):
        candidates = self._candidates(
            reviewed=[_pr(2, "alice", "feature/shared")],
            commits=[_commit("ccc0001", "feature/shared")],
        )

        report = build_daily_report(candidates)

        assert report.commits == []

    def test_failed_categories_carried(self):
        report = build_daily_report(self._candidates(failed_categories=["reviewed pull requests"]))

        assert report.failed_categories == ["reviewed pull requests"]

    def test_empty_report(self):
        report = build_daily_report(ActivityCandidates(target_date="2025-06-15", current_user=ME))

        assert report.is_empty()
        assert report.day_name == "Sunday"
        assert report.commit_count == 0
