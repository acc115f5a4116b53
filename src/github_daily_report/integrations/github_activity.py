"""GitHub API integration that collects one day's candidate activity."""

import logging
import time
from itertools import islice
from typing import Any, Callable, Optional, TypeVar

from github import Auth, Github
from github.GithubException import GithubException, RateLimitExceededException
from requests.exceptions import RequestException

from ..config.schema import GitHubConfig
from ..errors import ExternalFetchFailure
from ..pipeline_types import ActivityCandidates
from ..utils.date_utils import day_bounds, lookback_date, utc_date_of

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that make one category (or one predicate lookup) unavailable
FETCH_ERRORS = (GithubException, RequestException)


def _repo_name_from_url(url: Optional[str]) -> Optional[str]:
    """``https://api.github.com/repos/owner/name`` -> ``owner/name``."""
    if not url or "/repos/" not in url:
        return None
    return url.split("/repos/", 1)[1].strip("/") or None


def _login(user: Any) -> Optional[str]:
    return getattr(user, "login", None) if user is not None else None


class GitHubActivityFetcher:
    """Fetch the raw candidate sets for the daily report.

    Candidate searches are deliberately broad (the review and comment
    searches look back ``lookback_days``); the confirmation predicates then
    check the actual review/comment timestamps against the target date.
    Pull request objects and their review lists are memoized for the run.
    """

    def __init__(self, config: GitHubConfig, github: Optional[Github] = None) -> None:
        """Initialize the fetcher.

        Args:
            config: GitHub configuration (token, repositories, limits)
            github: Optional pre-built client, mainly for tests
        """
        self.config = config
        self.github = github or Github(auth=Auth.Token(config.token or ""), base_url=config.base_url)
        self._login: Optional[str] = None
        self._repos: dict[str, Any] = {}
        self._pulls: dict[tuple[str, int], Any] = {}
        self._reviews: dict[tuple[str, int], list[Any]] = {}

    def current_user(self) -> str:
        """Login of the authenticated user."""
        if self._login is None:
            self._login = self._with_rate_limit_retry(lambda: self.github.get_user().login)
        return self._login

    def collect(self, target_date: str) -> ActivityCandidates:
        """Collect every candidate category for ``target_date``.

        A category that fails is logged, recorded in ``failed_categories`` and
        left empty; the other categories are still collected.

        Raises:
            ExternalFetchFailure: If the current user cannot be determined
        """
        try:
            login = self.current_user()
        except FETCH_ERRORS as e:
            raise ExternalFetchFailure("current user", str(e)) from e

        since = lookback_date(target_date, self.config.lookback_days)
        candidates = ActivityCandidates(
            target_date=target_date,
            current_user=login,
            review_confirmed=lambda number, repo: self.has_review_on(number, repo, target_date),
            comment_confirmed=lambda number, repo: self.has_comment_on(number, repo, target_date),
        )

        categories: list[tuple[str, str, Callable[[], list[dict[str, Any]]]]] = [
            ("authored", "authored pull requests",
             lambda: self.search_pull_requests(f"author:{login} created:{target_date}", with_branch=True)),
            ("reviewed", "reviewed pull requests",
             lambda: self.search_pull_requests(f"reviewed-by:{login} updated:>={since}", with_branch=True)),
            ("commented", "commented pull requests",
             lambda: self.search_pull_requests(f"commenter:{login} updated:>={since}", with_branch=True)),
        ]
        for attribute, label, fetch in categories:
            try:
                setattr(candidates, attribute, self._fetch_category(label, fetch))
            except ExternalFetchFailure as e:
                logger.warning(f"{e}; continuing without {label}")
                candidates.failed_categories.append(label)

        candidates.commits = self._collect_commits(login, target_date, candidates.failed_categories)

        logger.info(
            f"Collected {len(candidates.authored)} authored, {len(candidates.reviewed)} reviewed, "
            f"{len(candidates.commented)} commented candidates and {len(candidates.commits)} commits"
        )
        return candidates

    def search_pull_requests(self, qualifiers: str, with_branch: bool = False) -> list[dict[str, Any]]:
        """Run an issue search restricted to PRs in the configured repositories.

        Args:
            qualifiers: Search qualifiers (author/reviewed-by/commenter and dates)
            with_branch: Resolve each PR's head branch (one extra call per PR)

        Returns:
            PR mappings in search order
        """
        query = " ".join(part for part in ("is:pr", qualifiers, self.config.repository_filter()) if part)
        logger.debug(f"Searching pull requests: {query}")

        def run() -> list[Any]:
            results = self.github.search_issues(query, sort="created", order="asc")
            return list(islice(results, self.config.search_limit))

        issues = self._with_rate_limit_retry(run)
        return [self._issue_to_dict(issue, with_branch) for issue in issues]

    def has_review_on(self, number: int, repository: str, target_date: str) -> bool:
        """True if the current user submitted a review on the PR on ``target_date``."""
        login = self.current_user()
        try:
            reviews = self._get_reviews(repository, number)
        except FETCH_ERRORS as e:
            logger.warning(f"Could not load reviews for {repository}#{number}: {e}")
            return False
        return any(
            _login(review.user) == login and utc_date_of(review.submitted_at) == target_date
            for review in reviews
        )

    def has_comment_on(self, number: int, repository: str, target_date: str) -> bool:
        """True if the current user commented (or reviewed) on the PR on ``target_date``.

        Issue comments, inline review comments and reviews all count.
        """
        if self.has_review_on(number, repository, target_date):
            return True

        login = self.current_user()
        try:
            pull = self._get_pull(repository, number)

            def commented() -> bool:
                comments = list(pull.get_issue_comments()) + list(pull.get_review_comments())
                return any(
                    _login(comment.user) == login and utc_date_of(comment.created_at) == target_date
                    for comment in comments
                )

            return self._with_rate_limit_retry(commented)
        except FETCH_ERRORS as e:
            logger.warning(f"Could not load comments for {repository}#{number}: {e}")
            return False

    def fetch_commits(self, repository: str, login: str, target_date: str) -> list[dict[str, Any]]:
        """Commits by ``login`` on ``target_date`` across the repository's branches.

        The same commit is usually reachable from several branches; every
        occurrence is returned with the branch it was found on and the
        classifier keeps the first.
        """
        start, end = day_bounds(target_date)
        repo = self._get_repo(repository)

        def run() -> list[dict[str, Any]]:
            commits = []
            for branch in islice(repo.get_branches(), self.config.max_branches):
                for commit in repo.get_commits(sha=branch.name, since=start, until=end, author=login):
                    commits.append(self._commit_to_dict(commit, repository, branch.name))
            return commits

        return self._with_rate_limit_retry(run)

    def _collect_commits(self, login: str, target_date: str, failed: list[str]) -> list[dict[str, Any]]:
        if not self.config.repositories:
            logger.info("No repositories configured; skipping commit collection")
            return []

        commits: list[dict[str, Any]] = []
        for repository in self.config.repositories:
            label = f"commits in {repository}"
            try:
                commits.extend(
                    self._fetch_category(label, lambda: self.fetch_commits(repository, login, target_date))
                )
            except ExternalFetchFailure as e:
                logger.warning(f"{e}; continuing without them")
                failed.append(label)
        return commits

    def _fetch_category(self, label: str, fetch: Callable[[], T]) -> T:
        try:
            return fetch()
        except FETCH_ERRORS as e:
            raise ExternalFetchFailure(label, str(e)) from e

    def _with_rate_limit_retry(self, func: Callable[[], T]) -> T:
        """Call ``func``, backing off exponentially on GitHub rate limiting."""
        for attempt in range(self.config.max_retries):
            try:
                return func()
            except RateLimitExceededException:
                if attempt >= self.config.max_retries - 1:
                    raise
                wait_time = self.config.backoff_factor**attempt
                logger.warning(f"GitHub rate limit hit, waiting {wait_time}s...")
                time.sleep(wait_time)
        return func()

    def _get_repo(self, repository: str) -> Any:
        if repository not in self._repos:
            self._repos[repository] = self._with_rate_limit_retry(lambda: self.github.get_repo(repository))
        return self._repos[repository]

    def _get_pull(self, repository: str, number: int) -> Any:
        key = (repository, number)
        if key not in self._pulls:
            repo = self._get_repo(repository)
            self._pulls[key] = self._with_rate_limit_retry(lambda: repo.get_pull(number))
        return self._pulls[key]

    def _get_reviews(self, repository: str, number: int) -> list[Any]:
        key = (repository, number)
        if key not in self._reviews:
            pull = self._get_pull(repository, number)
            self._reviews[key] = self._with_rate_limit_retry(lambda: list(pull.get_reviews()))
        return self._reviews[key]

    def _issue_to_dict(self, issue: Any, with_branch: bool) -> dict[str, Any]:
        repository = _repo_name_from_url(getattr(issue, "repository_url", None))
        data = {
            "number": issue.number,
            "title": issue.title,
            "url": issue.html_url,
            "repository": repository,
            "author": _login(issue.user),
            "createdAt": issue.created_at,
            "headRefName": None,
        }
        if with_branch and repository:
            data["headRefName"] = self._head_branch(issue, repository)
        return data

    def _head_branch(self, issue: Any, repository: str) -> Optional[str]:
        """Head branch of the PR behind a search result; None if it cannot be loaded."""
        key = (repository, issue.number)
        try:
            if key not in self._pulls:
                self._pulls[key] = self._with_rate_limit_retry(issue.as_pull_request)
            return self._pulls[key].head.ref
        except FETCH_ERRORS as e:
            logger.warning(f"Could not resolve branch of {repository}#{issue.number}: {e}")
            return None

    def _commit_to_dict(self, commit: Any, repository: str, branch_name: str) -> dict[str, Any]:
        git_commit = commit.commit
        associated = None
        pulls = list(islice(commit.get_pulls(), 1))
        if pulls:
            pull = pulls[0]
            associated = {
                "number": pull.number,
                "url": pull.html_url,
                "headRefName": pull.head.ref,
                "title": pull.title,
            }
            self._pulls.setdefault((repository, pull.number), pull)

        return {
            "oid": commit.sha,
            "message": git_commit.message,
            "author": {
                "name": getattr(git_commit.author, "name", None),
                "user": {"login": _login(commit.author)},
            },
            "repository": repository,
            "branchName": branch_name,
            "associatedPullRequest": associated,
        }
