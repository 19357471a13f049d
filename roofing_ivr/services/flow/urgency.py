"""Keyword urgency classifier."""
from typing import Optional

from roofing_ivr.services.call_session.models import Priority
from roofing_ivr.services.flow.constants import URGENT_INDICATORS


def classify_urgency(text: Optional[str]) -> Priority:
    """Return Urgent if the text mentions any urgent keyword, else Normal."""
    if not text:
        return Priority.NORMAL
    text_lower = text.lower()
    if any(indicator in text_lower for indicator in URGENT_INDICATORS):
        return Priority.URGENT
    return Priority.NORMAL
