"""Main menu routing."""
from typing import Optional

from roofing_ivr.services.call_session.models import Department
from roofing_ivr.services.flow.constants import (
    SALES_DIGIT,
    SALES_INDICATORS,
    SERVICE_DIGIT,
    SERVICE_INDICATORS,
)


def route_department(
    digits: Optional[str] = None, speech: Optional[str] = None
) -> Department:
    """
    Pick the department for a caller's menu choice.

    Keypad digits win over speech. Unmatched or missing input goes to Billing.
    """
    digits = (digits or "").strip()
    if digits:
        if digits == SALES_DIGIT:
            return Department.SALES
        if digits == SERVICE_DIGIT:
            return Department.SERVICE
        return Department.BILLING

    speech_lower = (speech or "").strip().lower()
    if speech_lower:
        if any(indicator in speech_lower for indicator in SALES_INDICATORS):
            return Department.SALES
        if any(indicator in speech_lower for indicator in SERVICE_INDICATORS):
            return Department.SERVICE

    return Department.BILLING


def has_menu_input(digits: Optional[str], speech: Optional[str]) -> bool:
    return bool((digits or "").strip() or (speech or "").strip())
