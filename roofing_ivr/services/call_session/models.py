"""Call session models."""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Department(str, Enum):
    """Routing category chosen for a call."""

    SALES = "sales"
    SERVICE = "service"
    BILLING = "billing"
    AFTER_HOURS = "afterhours"

    @property
    def label(self) -> str:
        return _DEPARTMENT_LABELS[self]

    def __str__(self) -> str:
        return self.value


_DEPARTMENT_LABELS = {
    Department.SALES: "Sales",
    Department.SERVICE: "Service",
    Department.BILLING: "Billing",
    Department.AFTER_HOURS: "AfterHours",
}


class Priority(str, Enum):
    """Call priority, only meaningful for Service and AfterHours calls."""

    NORMAL = "Normal"
    URGENT = "Urgent"

    def __str__(self) -> str:
        return self.value


class SessionField(str, Enum):
    """Caller data fields a step can write."""

    NAME = "name"
    ADDRESS = "address"
    PHONE = "phone"
    DESCRIPTION = "description"
    ISSUE = "issue"
    REASON = "reason"
    MESSAGE = "message"
    CALLBACK_TIME = "callback_time"


class CallSession(BaseModel):
    """Everything collected so far for one call."""

    call_sid: str
    department: Optional[Department] = None

    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    description: Optional[str] = None  # Sales
    issue: Optional[str] = None  # Service
    reason: Optional[str] = None  # Billing
    message: Optional[str] = None  # AfterHours
    callback_time: Optional[str] = None  # Sales

    priority: Priority = Priority.NORMAL
    pending_recording_id: Optional[str] = None

    # Re-prompts issued per step, keyed by "<department>/<step>"
    reprompts: Dict[str, int] = {}

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def assign_department(self, department: Department) -> bool:
        """Set the department unless one is already set.

        Returns True when the department was assigned by this call.
        """
        if self.department is not None:
            return False
        self.department = department
        return True

    def get_field(self, field: SessionField) -> Optional[str]:
        return getattr(self, field.value)

    def set_field(self, field: SessionField, value: Optional[str]) -> None:
        setattr(self, field.value, value)

    def touch(self) -> None:
        self.updated_at = _utcnow()


class PendingRecording(BaseModel):
    """A recording waiting for its transcription callback."""

    recording_sid: str
    call_sid: str
    field: SessionField
    created_at: datetime = Field(default_factory=_utcnow)
