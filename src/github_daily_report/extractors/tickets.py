"""Ticket reference extraction for the configured project tracker."""

import re
from typing import Optional

DEFAULT_PROJECT_PREFIX = "CHE"

_PREFIX_PATTERN = re.compile(r"^[A-Z][A-Z0-9]*$")


class TicketExtractor:
    """Extract and validate ``<PREFIX>-<digits>`` ticket identifiers.

    A single project prefix is configured per run (e.g. ``CHE`` for Linear
    team ``CHE``). Branch names such as ``feature/CHE-42-improve-foo`` and
    commit subjects such as ``CHE-42: fix totals`` both yield ``CHE-42``.
    """

    def __init__(self, project_prefix: str = DEFAULT_PROJECT_PREFIX) -> None:
        """Initialize with the project prefix.

        Args:
            project_prefix: Uppercase project code that prefixes ticket numbers.

        Raises:
            ValueError: If the prefix is not an uppercase alphanumeric code.
        """
        if not _PREFIX_PATTERN.match(project_prefix or ""):
            raise ValueError(f"Invalid ticket project prefix: {project_prefix!r}")

        self.project_prefix = project_prefix
        self.pattern = re.compile(rf"{re.escape(project_prefix)}-[0-9]+")

    def extract_ticket_id(self, text: Optional[str]) -> Optional[str]:
        """Return the leftmost ticket id found in ``text``, or None."""
        if not text:
            return None
        match = self.pattern.search(text)
        return match.group(0) if match else None

    def validate_ticket_id(self, ticket_id: Optional[str]) -> bool:
        """Check that ``ticket_id`` is exactly one well-formed ticket id.

        WHY: Ticket ids are embedded into outbound tracker queries, so anything
        that is not a full-string match (``CHE-42x``, ``CHE-42 OR 1=1``) must be
        rejected before it gets near a request.
        """
        if not ticket_id:
            return False
        return self.pattern.fullmatch(ticket_id) is not None


_default_extractor = TicketExtractor()


def extract_ticket_id(text: Optional[str]) -> Optional[str]:
    """Extract a ticket id using the default project prefix."""
    return _default_extractor.extract_ticket_id(text)


def validate_ticket_id(ticket_id: Optional[str]) -> bool:
    """Validate a ticket id against the default project prefix."""
    return _default_extractor.validate_ticket_id(ticket_id)
