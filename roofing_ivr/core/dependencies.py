"""FastAPI dependencies."""
from typing import Optional

from roofing_ivr.core.config import settings
from roofing_ivr.services.call_session.manager import CallFlowManager
from roofing_ivr.services.call_session.models import CallSession, PendingRecording
from roofing_ivr.services.call_session.store import InMemoryStore
from roofing_ivr.services.script.provider import ScriptProvider
from roofing_ivr.services.summary import LoggingSummarySink

# Module-level stores (persist across requests, lost on restart)
_session_store: InMemoryStore[CallSession] = InMemoryStore(
    ttl_seconds=settings.session_ttl_seconds, name="session"
)
_recording_store: InMemoryStore[PendingRecording] = InMemoryStore(
    ttl_seconds=settings.session_ttl_seconds, name="recording"
)
_call_flow: Optional[CallFlowManager] = None


def get_session_store() -> InMemoryStore[CallSession]:
    """Get the call session store."""
    return _session_store


def get_recording_store() -> InMemoryStore[PendingRecording]:
    """Get the pending recording store."""
    return _recording_store


def get_call_flow() -> CallFlowManager:
    """Get the call flow manager, building it on first use."""
    global _call_flow
    if _call_flow is None:
        _call_flow = CallFlowManager(
            settings=settings,
            sessions=_session_store,
            recordings=_recording_store,
            script=ScriptProvider(settings.script_file).get_script(),
            summary_sink=LoggingSummarySink(),
        )
    return _call_flow
