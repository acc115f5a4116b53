"""Extractors for ticket references embedded in branch names and commits."""

from .tickets import DEFAULT_PROJECT_PREFIX, TicketExtractor, extract_ticket_id, validate_ticket_id

__all__ = [
    "DEFAULT_PROJECT_PREFIX",
    "TicketExtractor",
    "extract_ticket_id",
    "validate_ticket_id",
]
