"""Linear ticket title lookup.

Only one query is ever made: the title of an issue by its identifier. The
identifier is validated against the configured ticket prefix and passed as a
GraphQL variable, never spliced into the query text.
"""

import logging
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from urllib3.util.retry import Retry

from .._version import __version__
from ..config.schema import LinearConfig
from ..errors import TicketLookupFailure
from ..extractors.tickets import TicketExtractor
from ..pipeline_types import TicketReference

logger = logging.getLogger(__name__)

ISSUE_TITLE_QUERY = "query IssueTitle($id: String!) { issue(id: $id) { title } }"


class LinearClient:
    """Resolve ticket ids to Linear issue titles and links.

    Lookups are memoized for the lifetime of the client (one report run), and
    every failure degrades to "no title" so the report still shows the bare id.
    """

    def __init__(self, config: LinearConfig, session: Optional[requests.Session] = None) -> None:
        """Initialize the client.

        Args:
            config: Linear configuration (API key, endpoint, workspace, ticket prefix)
            session: Optional pre-built session, mainly for tests
        """
        self.config = config
        self.ticket_extractor = TicketExtractor(config.project_prefix)
        self._session = session
        self._titles: dict[str, Optional[str]] = {}

    @property
    def enabled(self) -> bool:
        return bool(self.config.api_key)

    def _ensure_session(self) -> requests.Session:
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> requests.Session:
        """Create HTTP session with retry strategy and authentication."""
        session = requests.Session()

        # The title query is read-only, so POST is safe to retry
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update(
            {
                "Authorization": self.config.api_key or "",
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": f"github-daily-report/{__version__}",
            }
        )
        return session

    def get_issue_title(self, ticket_id: str) -> Optional[str]:
        """Return the issue title, or None if it is unknown or cannot be fetched."""
        if not self.ticket_extractor.validate_ticket_id(ticket_id):
            logger.warning(f"Refusing to look up malformed ticket id {ticket_id!r}")
            return None
        if not self.enabled:
            return None

        if ticket_id not in self._titles:
            try:
                self._titles[ticket_id] = self._fetch_issue_title(ticket_id)
            except TicketLookupFailure as e:
                logger.warning(f"{e}; showing {ticket_id} without a title")
                self._titles[ticket_id] = None
        return self._titles[ticket_id]

    def ticket_url(self, ticket_id: str) -> Optional[str]:
        return self.config.issue_url(ticket_id)

    def resolve(self, ticket_id: str) -> TicketReference:
        """Build the full ticket reference (id, link, title) used by the report."""
        return TicketReference(
            ticket_id=ticket_id,
            url=self.ticket_url(ticket_id),
            title=self.get_issue_title(ticket_id),
        )

    def _fetch_issue_title(self, ticket_id: str) -> Optional[str]:
        session = self._ensure_session()
        try:
            response = session.post(
                self.config.api_url,
                json={"query": ISSUE_TITLE_QUERY, "variables": {"id": ticket_id}},
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
            payload: Any = response.json()
        except RequestException as e:
            raise TicketLookupFailure(f"Linear request for {ticket_id} failed: {e}") from e
        except ValueError as e:
            raise TicketLookupFailure(f"Linear returned invalid JSON for {ticket_id}") from e

        if not isinstance(payload, dict):
            raise TicketLookupFailure(f"Unexpected Linear response for {ticket_id}")
        errors = payload.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            message = first.get("message", "unknown error") if isinstance(first, dict) else str(first)
            raise TicketLookupFailure(f"Linear lookup for {ticket_id} failed: {message}")

        issue = (payload.get("data") or {}).get("issue") or {}
        title = issue.get("title")
        if not isinstance(title, str) or not title.strip():
            return None
        return title.strip()
