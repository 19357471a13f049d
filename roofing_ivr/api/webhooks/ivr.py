"""IVR webhook endpoints called by the telephony platform."""
import logging
from typing import Awaitable, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import Response

from roofing_ivr.core.dependencies import get_call_flow
from roofing_ivr.core.errors import IVRError, MalformedWebhookError, UnknownCallError
from roofing_ivr.services.call_session.manager import CallerInput, CallFlowManager
from roofing_ivr.services.call_session.models import Department
from roofing_ivr.services.flow.steps import FlowStep, get_step

router = APIRouter()
logger = logging.getLogger(__name__)


def _client(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _require(value: Optional[str], field: str, endpoint: str) -> str:
    if not value or not value.strip():
        logger.warning(f"[WEBHOOK] Missing {field} on {endpoint}")
        raise MalformedWebhookError(field, endpoint)
    return value.strip()


def _require_step(department: Department, step: FlowStep) -> None:
    if department == Department.AFTER_HOURS or get_step(department, step) is None:
        raise HTTPException(status_code=404, detail=f"No step {department}/{step}")


async def _respond(
    tag: str, call_sid: str, flow: CallFlowManager, pending: Awaitable[str]
) -> Response:
    """Await a flow operation and wrap its document in a response.

    Any failure still answers with a document the platform can play.
    """
    try:
        twiml = await pending
        logger.info(f"{tag} Responded - CallSid: {call_sid}, XML length: {len(twiml)} bytes")
    except UnknownCallError:
        logger.warning(f"{tag} Unknown call, ending it - CallSid: {call_sid}")
        twiml = flow.lost_call_response()
    except IVRError:
        raise
    except Exception as e:
        logger.error(
            f"{tag} Error handling callback - CallSid: {call_sid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        twiml = flow.error_response()
    return Response(content=twiml, media_type="application/xml")


@router.post("/entry")
async def handle_entry(
    request: Request,
    CallSid: Optional[str] = Form(None),
    flow: CallFlowManager = Depends(get_call_flow),
):
    """
    Handle a new call.

    Resets the call's session and plays either the main menu or the
    after-hours greeting.
    """
    call_sid = _require(CallSid, "CallSid", "/ivr/entry")
    logger.info(f"[ENTRY] Incoming call - CallSid: {call_sid}, Client: {_client(request)}")
    return await _respond("[ENTRY]", call_sid, flow, flow.start_call(call_sid))


@router.post("/menu")
async def handle_menu(
    CallSid: Optional[str] = Form(None),
    Digits: Optional[str] = Form(None),
    SpeechResult: Optional[str] = Form(None),
    flow: CallFlowManager = Depends(get_call_flow),
):
    """Handle the caller's main menu choice."""
    call_sid = _require(CallSid, "CallSid", "/ivr/menu")
    return await _respond(
        "[MENU]", call_sid, flow, flow.route_menu(call_sid, Digits, SpeechResult)
    )


@router.post("/transcribe")
async def handle_transcription(
    RecordingSid: Optional[str] = Form(None),
    TranscriptionText: Optional[str] = Form(None),
    flow: CallFlowManager = Depends(get_call_flow),
):
    """
    Handle an asynchronous transcription result.

    Always acknowledged, whether or not the recording was pending.
    """
    recording_sid = _require(RecordingSid, "RecordingSid", "/ivr/transcribe")
    logger.info(
        f"[TRANSCRIBE] Transcription received - RecordingSid: {recording_sid}, "
        f"Text length: {len(TranscriptionText) if TranscriptionText else 0}"
    )
    try:
        await flow.record_transcription(recording_sid, TranscriptionText)
    except Exception as e:
        logger.error(
            f"[TRANSCRIBE] Error applying transcription - RecordingSid: {recording_sid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
    return Response(content="OK", media_type="text/plain")


@router.post("/afterhours")
async def handle_after_hours(
    CallSid: Optional[str] = Form(None),
    flow: CallFlowManager = Depends(get_call_flow),
):
    """Ask an after-hours caller for a recorded message."""
    call_sid = _require(CallSid, "CallSid", "/ivr/afterhours")
    return await _respond("[AFTER HOURS]", call_sid, flow, flow.prompt_after_hours(call_sid))


@router.post("/afterhours/save")
async def handle_after_hours_save(
    CallSid: Optional[str] = Form(None),
    RecordingSid: Optional[str] = Form(None),
    flow: CallFlowManager = Depends(get_call_flow),
):
    """Handle a finished after-hours recording."""
    call_sid = _require(CallSid, "CallSid", "/ivr/afterhours/save")
    return await _respond(
        "[AFTER HOURS]",
        call_sid,
        flow,
        flow.save_after_hours_recording(call_sid, RecordingSid),
    )


@router.post("/{department}/{step}/save")
async def handle_step_save(
    department: Department,
    step: FlowStep,
    CallSid: Optional[str] = Form(None),
    Digits: Optional[str] = Form(None),
    SpeechResult: Optional[str] = Form(None),
    RecordingUrl: Optional[str] = Form(None),
    RecordingSid: Optional[str] = Form(None),
    flow: CallFlowManager = Depends(get_call_flow),
):
    """Store the caller's answer for a step and move to the next one."""
    _require_step(department, step)
    call_sid = _require(CallSid, "CallSid", f"/ivr/{department}/{step}/save")
    caller_input = CallerInput(
        speech=SpeechResult,
        digits=Digits,
        recording_url=RecordingUrl,
        recording_sid=RecordingSid,
    )
    return await _respond(
        "[STEP]",
        call_sid,
        flow,
        flow.save_step(call_sid, department, step, caller_input),
    )


@router.post("/{department}/{step}")
async def handle_step_prompt(
    department: Department,
    step: FlowStep,
    CallSid: Optional[str] = Form(None),
    flow: CallFlowManager = Depends(get_call_flow),
):
    """Ask the caller for a step's value."""
    _require_step(department, step)
    call_sid = _require(CallSid, "CallSid", f"/ivr/{department}/{step}")
    return await _respond(
        "[STEP]", call_sid, flow, flow.prompt_step(call_sid, department, step)
    )
