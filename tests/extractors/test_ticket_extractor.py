"""Tests for ticket id extraction and validation."""

import pytest

from github_daily_report.extractors.tickets import TicketExtractor, extract_ticket_id, validate_ticket_id


class TestExtractTicketId:
    """Tests for extract_ticket_id()."""

    def test_branch_name(self):
        assert extract_ticket_id("feature/CHE-42-improve-totals") == "CHE-42"

    def test_commit_subject(self):
        assert extract_ticket_id("CHE-7: fix rounding") == "CHE-7"

    def test_leftmost_match_wins(self):
        assert extract_ticket_id("CHE-1 and CHE-2") == "CHE-1"

    def test_no_ticket(self):
        assert extract_ticket_id("main") is None
        assert extract_ticket_id("") is None
        assert extract_ticket_id(None) is None

    def test_prefix_is_case_sensitive(self):
        assert extract_ticket_id("che-42") is None

    def test_other_prefix_ignored(self):
        assert extract_ticket_id("feature/ENG-42") is None

    def test_custom_prefix(self):
        extractor = TicketExtractor("ENG")

        assert extractor.extract_ticket_id("feature/ENG-42-x") == "ENG-42"
        assert extractor.extract_ticket_id("feature/CHE-42-x") is None


class TestValidateTicketId:
    """Tests for validate_ticket_id()."""

    def test_valid(self):
        assert validate_ticket_id("CHE-42") is True

    @pytest.mark.parametrize(
        "ticket_id",
        ["CHE-", "CHE-42x", "xCHE-42", "CHE-42 OR 1=1", "che-42", "CHE42", "", None],
    )
    def test_invalid(self, ticket_id):
        assert validate_ticket_id(ticket_id) is False

    def test_non_ascii_digits_rejected(self):
        assert validate_ticket_id("CHE-٤٢") is False


class TestTicketExtractorInit:
    """Tests for prefix validation."""

    @pytest.mark.parametrize("prefix", ["", "che", "C-HE", "1CHE", "CHE.*"])
    def test_invalid_prefix_rejected(self, prefix):
        with pytest.raises(ValueError):
            TicketExtractor(prefix)

    def test_alphanumeric_prefix_allowed(self):
        assert TicketExtractor("OPS2").validate_ticket_id("OPS2-9") is True
