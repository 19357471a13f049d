"""Unit tests for the urgency classifier."""
import pytest

from roofing_ivr.services.call_session.models import Priority
from roofing_ivr.services.flow.urgency import classify_urgency


class TestUrgencyClassifier:
    """Test keyword urgency detection."""

    def test_leak_is_urgent(self):
        assert classify_urgency("There is a leak in my ceiling") == Priority.URGENT

    def test_quote_request_is_normal(self):
        assert classify_urgency("I want a new roof quote") == Priority.NORMAL

    def test_case_insensitive(self):
        assert classify_urgency("STORM DAMAGE") == Priority.URGENT

    @pytest.mark.parametrize(
        "text",
        [
            "we need a tarp on the house",
            "Emergency please call back",
            "water coming in through the skylight",
            "part of the porch roof might collapse",
            "we have a sagging roof over the garage",
        ],
    )
    def test_other_keywords(self, text):
        assert classify_urgency(text) == Priority.URGENT

    def test_empty_and_missing_text_is_normal(self):
        assert classify_urgency("") == Priority.NORMAL
        assert classify_urgency(None) == Priority.NORMAL

    def test_substring_match_has_no_negation(self):
        """Any keyword hit is enough, even when negated."""
        assert classify_urgency("no leak, just want an inspection") == Priority.URGENT
