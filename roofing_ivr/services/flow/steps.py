"""Department step chains."""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from roofing_ivr.services.call_session.models import Department, SessionField
from roofing_ivr.services.flow.constants import PHONE_DIGITS


class FlowStep(str, Enum):
    """Collection steps, as they appear in callback URLs."""

    NAME = "name"
    ADDRESS = "address"
    PHONE = "phone"
    DESCRIPTION = "description"  # Sales: what they need
    ISSUE = "issue"  # Service: recorded and transcribed
    REASON = "reason"  # Billing: why they called
    CALLBACK = "callback"  # Sales: preferred callback time
    MESSAGE = "message"  # After hours: recorded and transcribed

    def __str__(self) -> str:
        return self.value


class InputMode(str, Enum):
    """What the platform should listen for in a gather."""

    DTMF = "dtmf"
    SPEECH = "speech"
    SPEECH_DTMF = "speech dtmf"


class CaptureKind(str, Enum):
    GATHER = "gather"
    RECORD = "record"


class StepSpec(BaseModel):
    """How one step collects its value and where the value goes."""

    step: FlowStep
    field: SessionField
    capture: CaptureKind = CaptureKind.GATHER
    input_mode: InputMode = InputMode.SPEECH_DTMF
    num_digits: Optional[int] = None
    prefer_digits: bool = False
    max_length: int = 30  # seconds, record steps only
    skip_on_keypress: bool = False  # a key press means "no value"


_NAME = StepSpec(step=FlowStep.NAME, field=SessionField.NAME)
_ADDRESS = StepSpec(step=FlowStep.ADDRESS, field=SessionField.ADDRESS)
_PHONE = StepSpec(
    step=FlowStep.PHONE,
    field=SessionField.PHONE,
    input_mode=InputMode.DTMF,
    num_digits=PHONE_DIGITS,
    prefer_digits=True,
)

FLOWS: Dict[Department, List[StepSpec]] = {
    Department.SALES: [
        _NAME,
        _ADDRESS,
        _PHONE,
        StepSpec(step=FlowStep.DESCRIPTION, field=SessionField.DESCRIPTION),
        StepSpec(
            step=FlowStep.CALLBACK,
            field=SessionField.CALLBACK_TIME,
            skip_on_keypress=True,
        ),
    ],
    Department.SERVICE: [
        _NAME,
        _ADDRESS,
        _PHONE,
        StepSpec(
            step=FlowStep.ISSUE,
            field=SessionField.ISSUE,
            capture=CaptureKind.RECORD,
            max_length=60,
        ),
    ],
    Department.BILLING: [
        _NAME,
        _PHONE,
        StepSpec(step=FlowStep.REASON, field=SessionField.REASON),
    ],
    Department.AFTER_HOURS: [
        StepSpec(
            step=FlowStep.MESSAGE,
            field=SessionField.MESSAGE,
            capture=CaptureKind.RECORD,
            max_length=90,
        ),
    ],
}

# Fields whose transcription closes out a department's record
TRANSCRIBED_FIELDS: Dict[Department, SessionField] = {
    Department.SERVICE: SessionField.ISSUE,
    Department.AFTER_HOURS: SessionField.MESSAGE,
}

# Free-text fields that get an urgency priority
PRIORITY_FIELDS = (SessionField.ISSUE, SessionField.MESSAGE)


def get_step(department: Department, step: FlowStep) -> Optional[StepSpec]:
    """Get the spec for a step, or None if the department has no such step."""
    for spec in FLOWS.get(department, []):
        if spec.step == step:
            return spec
    return None


def first_step(department: Department) -> StepSpec:
    return FLOWS[department][0]


def next_step(department: Department, step: FlowStep) -> Optional[StepSpec]:
    """Get the step after the given one, or None if it was the last."""
    steps = FLOWS[department]
    for index, spec in enumerate(steps):
        if spec.step == step:
            return steps[index + 1] if index + 1 < len(steps) else None
    return None
