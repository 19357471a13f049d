"""Call flow manager: the per-call state machine."""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel

from roofing_ivr.core.config import Settings
from roofing_ivr.core.errors import UnknownCallError
from roofing_ivr.services.call_session.models import (
    CallSession,
    Department,
    PendingRecording,
    Priority,
    SessionField,
)
from roofing_ivr.services.call_session.store import KeyedLock, KeyValueStore
from roofing_ivr.services.flow.business_hours import is_business_hours
from roofing_ivr.services.flow.routing import has_menu_input, route_department
from roofing_ivr.services.flow.steps import (
    PRIORITY_FIELDS,
    TRANSCRIBED_FIELDS,
    CaptureKind,
    FlowStep,
    StepSpec,
    first_step,
    get_step,
    next_step,
)
from roofing_ivr.services.flow.urgency import classify_urgency
from roofing_ivr.services.script.provider import IVRScript
from roofing_ivr.services.speech.inbound_xml import InboundXMLBuilder
from roofing_ivr.services.summary import SummarySink, format_summary

logger = logging.getLogger(__name__)

MENU_REPROMPT_KEY = "menu"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallerInput(BaseModel):
    """Transport fields a collection callback may carry."""

    speech: Optional[str] = None
    digits: Optional[str] = None
    recording_url: Optional[str] = None
    recording_sid: Optional[str] = None

    def value(self, prefer_digits: bool = False) -> Optional[str]:
        """
        Pick the caller's answer from whichever field is populated.

        Speech is preferred, then keypad digits, then the recording URL;
        keypad steps take digits first. The value is trimmed and never
        checked for format. Returns None when nothing usable was sent.
        """
        order = (
            [self.digits, self.speech, self.recording_url]
            if prefer_digits
            else [self.speech, self.digits, self.recording_url]
        )
        for candidate in order:
            if candidate and candidate.strip():
                return candidate.strip()
        return None


class CallFlowManager:
    """Threads caller data through a call's callbacks and answers each one.

    Every mutation of a call's session happens while holding that call's
    lock, so retried or duplicated webhooks for one call apply in sequence.
    """

    def __init__(
        self,
        settings: Settings,
        sessions: KeyValueStore[CallSession],
        recordings: KeyValueStore[PendingRecording],
        script: IVRScript,
        summary_sink: SummarySink,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.base_url = settings.require_base_url()
        self.sessions = sessions
        self.recordings = recordings
        self.script = script
        self.summary_sink = summary_sink
        self.clock = clock
        self.xml = InboundXMLBuilder(voice=script.voice, language=script.language)
        self.locks = KeyedLock()

    # Callback addresses

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def step_url(self, department: Department, step: FlowStep) -> str:
        return self.url(f"/ivr/{department.value}/{step.value}")

    def save_url(self, department: Department, step: FlowStep) -> str:
        if department == Department.AFTER_HOURS:
            return self.url("/ivr/afterhours/save")
        return self.url(f"/ivr/{department.value}/{step.value}/save")

    @property
    def transcribe_url(self) -> str:
        return self.url("/ivr/transcribe")

    # Session access

    async def get_session(self, call_sid: str) -> Optional[CallSession]:
        """Get an existing call session."""
        return await self.sessions.get(call_sid)

    async def active_calls(self) -> int:
        return await self.sessions.size()

    async def _load(self, call_sid: str) -> CallSession:
        session = await self.sessions.get(call_sid)
        if session is None:
            if self.settings.strict_sessions:
                raise UnknownCallError(call_sid)
            logger.warning(
                f"[SESSION] No session for call, starting an empty one - CallSid: {call_sid}"
            )
            session = CallSession(call_sid=call_sid)
        return session

    async def _save(self, session: CallSession) -> None:
        session.touch()
        await self.sessions.put(session.call_sid, session)

    def _assign_department(self, session: CallSession, department: Department) -> None:
        if session.assign_department(department):
            logger.info(
                f"[SESSION] Department set to {department.label} - CallSid: {session.call_sid}"
            )
        elif session.department != department:
            logger.warning(
                f"[SESSION] Callback for {department.label} on a "
                f"{session.department.label} call, department unchanged - "
                f"CallSid: {session.call_sid}"
            )

    def _allow_reprompt(self, session: CallSession, key: str) -> bool:
        if self.settings.no_input_policy != "reprompt":
            return False
        count = session.reprompts.get(key, 0)
        if count >= self.settings.max_reprompts:
            return False
        session.reprompts[key] = count + 1
        return True

    # Responses

    def _menu(self, retry: bool = False) -> str:
        prompts = list(self.script.greeting)
        if retry:
            prompts.insert(0, self.script.no_input_retry)
        return self.xml.document(
            self.xml.gather(
                self.url("/ivr/menu"), prompts, hints=self.script.greeting_hints
            )
        )

    def _collect(
        self,
        session: CallSession,
        department: Department,
        spec: StepSpec,
        retry: bool = False,
    ) -> str:
        prompts = self.script.prompts_for(department, spec.step, session)
        if retry:
            prompts.insert(0, self.script.no_input_retry)
        action_url = self.save_url(department, spec.step)
        if spec.capture == CaptureKind.RECORD:
            return self.xml.document(
                self.xml.say(prompts),
                self.xml.record(
                    action_url, self.transcribe_url, max_length=spec.max_length
                ),
            )
        return self.xml.document(
            self.xml.gather(
                action_url,
                prompts,
                input_mode=spec.input_mode,
                num_digits=spec.num_digits,
            )
        )

    def _farewell(self, department: Department) -> str:
        return self.xml.statement(self.script.farewell_for(department))

    def lost_call_response(self) -> str:
        return self.xml.statement(self.script.lost_call)

    def error_response(self) -> str:
        return self.xml.statement(self.script.error)

    @staticmethod
    def _spec(department: Department, step: FlowStep) -> StepSpec:
        spec = get_step(department, step)
        if spec is None:
            raise ValueError(f"{department.label} has no '{step}' step")
        return spec

    # Operations

    async def start_call(self, call_sid: str) -> str:
        """
        Start (or restart) a call and answer with the greeting.

        Any previous session for the call identifier is discarded. The
        business-hours gate is evaluated here and nowhere else.
        """
        async with self.locks.hold(call_sid):
            previous = await self.sessions.get(call_sid)
            if previous and previous.pending_recording_id:
                await self.recordings.delete(previous.pending_recording_id)

            session = CallSession(call_sid=call_sid)
            if is_business_hours(self.clock()):
                logger.info(f"[ENTRY] Office open, playing main menu - CallSid: {call_sid}")
                twiml = self._menu()
            else:
                logger.info(f"[ENTRY] After hours, taking a message - CallSid: {call_sid}")
                self._assign_department(session, Department.AFTER_HOURS)
                twiml = self.xml.document(
                    self.xml.gather(
                        self.url("/ivr/afterhours"),
                        self.script.after_hours_greeting,
                        hints=self.script.after_hours_hints,
                    )
                )
            await self._save(session)
            return twiml

    async def route_menu(
        self, call_sid: str, digits: Optional[str] = None, speech: Optional[str] = None
    ) -> str:
        """Route the caller's menu choice to a department's first step."""
        async with self.locks.hold(call_sid):
            session = await self._load(call_sid)

            if not has_menu_input(digits, speech) and self._allow_reprompt(
                session, MENU_REPROMPT_KEY
            ):
                logger.info(f"[MENU] No input, repeating menu - CallSid: {call_sid}")
                await self._save(session)
                return self._menu(retry=True)

            department = route_department(digits, speech)
            logger.info(
                f"[MENU] Routed to {department.label} - CallSid: {call_sid}, "
                f"Digits: {digits!r}, Speech: {speech!r}"
            )
            self._assign_department(session, department)
            department = session.department
            await self._save(session)

            if department == Department.AFTER_HOURS:
                target = self.url("/ivr/afterhours")
            else:
                target = self.step_url(department, first_step(department).step)
            return self.xml.document(self.xml.redirect(target))

    async def prompt_step(
        self, call_sid: str, department: Department, step: FlowStep
    ) -> str:
        """Ask for a step's value without storing anything."""
        spec = self._spec(department, step)
        async with self.locks.hold(call_sid):
            session = await self._load(call_sid)
            self._assign_department(session, department)
            await self._save(session)
            logger.debug(f"[STEP] Prompting {department}/{step} - CallSid: {call_sid}")
            return self._collect(session, department, spec)

    async def save_step(
        self,
        call_sid: str,
        department: Department,
        step: FlowStep,
        caller_input: CallerInput,
    ) -> str:
        """
        Store the caller's answer for a step and ask for the next one.

        On the last step of a chain the caller hears the farewell and the
        call ends. Recording steps store a pending transcription instead of
        a value and end the call straight away.
        """
        spec = self._spec(department, step)
        async with self.locks.hold(call_sid):
            session = await self._load(call_sid)
            self._assign_department(session, department)

            if spec.capture == CaptureKind.RECORD:
                await self._start_pending_recording(
                    session, spec.field, caller_input.recording_sid
                )
                session.priority = Priority.NORMAL
                await self._save(session)
                return self._farewell(department)

            if spec.skip_on_keypress:
                if caller_input.digits:
                    value = ""
                else:
                    value = (caller_input.speech or "").strip()
            else:
                value = caller_input.value(prefer_digits=spec.prefer_digits)

            if value is None:
                if self._allow_reprompt(session, f"{department}/{step}"):
                    logger.info(
                        f"[STEP] No input for {department}/{step}, re-prompting - "
                        f"CallSid: {call_sid}"
                    )
                    await self._save(session)
                    return self._collect(session, department, spec, retry=True)
                logger.info(
                    f"[STEP] No input for {department}/{step}, leaving "
                    f"{spec.field.value} unset - CallSid: {call_sid}"
                )
            else:
                session.set_field(spec.field, value)
                logger.info(
                    f"[STEP] Stored {spec.field.value} for {department}/{step} - "
                    f"CallSid: {call_sid}"
                )

            await self._save(session)

            following = next_step(department, step)
            if following is not None:
                return self._collect(session, department, following)

            if department not in TRANSCRIBED_FIELDS:
                await self._emit_summary(session, department)
            return self._farewell(department)

    async def prompt_after_hours(self, call_sid: str) -> str:
        """Ask an after-hours caller for their message and record it."""
        return await self.prompt_step(
            call_sid, Department.AFTER_HOURS, first_step(Department.AFTER_HOURS).step
        )

    async def save_after_hours_recording(
        self, call_sid: str, recording_sid: Optional[str]
    ) -> str:
        """Remember an after-hours recording until its transcription arrives."""
        return await self.save_step(
            call_sid,
            Department.AFTER_HOURS,
            FlowStep.MESSAGE,
            CallerInput(recording_sid=recording_sid),
        )

    async def _start_pending_recording(
        self, session: CallSession, field: SessionField, recording_sid: Optional[str]
    ) -> None:
        if not recording_sid:
            logger.warning(
                f"[RECORDING] Recording callback without RecordingSid, "
                f"{field.value} will stay empty - CallSid: {session.call_sid}"
            )
            return

        previous_sid = session.pending_recording_id
        if previous_sid and previous_sid != recording_sid:
            previous = await self.recordings.get(previous_sid)
            if previous and previous.field == field:
                await self.recordings.delete(previous_sid)
                logger.info(
                    f"[RECORDING] Replaced pending recording {previous_sid} - "
                    f"CallSid: {session.call_sid}"
                )

        await self.recordings.put(
            recording_sid,
            PendingRecording(
                recording_sid=recording_sid, call_sid=session.call_sid, field=field
            ),
        )
        session.pending_recording_id = recording_sid
        logger.info(
            f"[RECORDING] Waiting for transcription of {field.value} - "
            f"CallSid: {session.call_sid}, RecordingSid: {recording_sid}"
        )

    async def record_transcription(
        self, recording_sid: str, text: Optional[str]
    ) -> Optional[CallSession]:
        """
        Apply a transcription to the session its recording belongs to.

        Unknown or already consumed recording identifiers are ignored.

        Returns:
            The updated session, or None if nothing was pending
        """
        pending = await self.recordings.get(recording_sid)
        if pending is None:
            logger.info(
                f"[TRANSCRIBE] No pending recording, ignoring - RecordingSid: {recording_sid}"
            )
            return None

        call_sid = pending.call_sid
        async with self.locks.hold(call_sid):
            # A duplicate callback may have consumed it while we waited
            pending = await self.recordings.get(recording_sid)
            if pending is None:
                return None
            await self.recordings.delete(recording_sid)

            session = await self.sessions.get(call_sid)
            if session is None:
                logger.warning(
                    f"[TRANSCRIBE] Session gone, starting an empty one - CallSid: {call_sid}"
                )
                session = CallSession(call_sid=call_sid)

            transcript = (text or "").strip()
            session.set_field(pending.field, transcript)
            if pending.field in PRIORITY_FIELDS:
                session.priority = classify_urgency(transcript)
            if session.pending_recording_id == recording_sid:
                session.pending_recording_id = None
            await self._save(session)
            logger.info(
                f"[TRANSCRIBE] Stored {pending.field.value}, priority "
                f"{session.priority.value} - CallSid: {call_sid}, RecordingSid: {recording_sid}"
            )

            department = session.department
            if department is not None and TRANSCRIBED_FIELDS.get(department) == pending.field:
                await self._emit_summary(session, department)
            return session

    async def _emit_summary(self, session: CallSession, department: Department) -> None:
        line = format_summary(session, department, self.clock())
        await self.summary_sink.emit(line, session, department)
