"""Call summary records."""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from roofing_ivr.services.call_session.models import CallSession, Department
from roofing_ivr.services.flow.business_hours import local_time

summary_logger = logging.getLogger("roofing_ivr.summary")

UNKNOWN = "Unknown"


def format_summary(session: CallSession, department: Department, now: datetime) -> str:
    """
    Build the pipe-delimited summary line for a finished call.

    Args:
        session: Session holding the collected caller data
        department: Department whose record layout to use
        now: Instant the record is emitted, rendered in office time

    Returns:
        Summary line
    """
    timestamp = local_time(now).strftime("%Y-%m-%d %H:%M:%S")
    name = session.name or UNKNOWN
    phone = session.phone or UNKNOWN
    address = session.address or UNKNOWN
    priority = f"Priority: {session.priority.value}"

    if department == Department.SALES:
        parts = [
            "Sales", name, phone, address,
            session.description or "", session.callback_time or "", timestamp,
        ]
    elif department == Department.SERVICE:
        parts = ["Service", name, phone, address, session.issue or "", priority, timestamp]
    elif department == Department.BILLING:
        parts = ["Office", name, phone, session.reason or "", timestamp]
    else:
        parts = [
            "After-Hours", name, phone, address, session.message or "", priority, timestamp,
        ]
    return " | ".join(parts)


class SummarySink(ABC):
    """Destination for finished call summaries."""

    @abstractmethod
    async def emit(self, line: str, session: CallSession, department: Department) -> None:
        pass


class LoggingSummarySink(SummarySink):
    """Writes summaries as structured log lines."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or summary_logger

    async def emit(self, line: str, session: CallSession, department: Department) -> None:
        self.logger.info(line)


class MemorySummarySink(SummarySink):
    """Keeps summaries in a list."""

    def __init__(self):
        self.lines: List[str] = []

    async def emit(self, line: str, session: CallSession, department: Department) -> None:
        self.lines.append(line)
