"""Health check endpoint."""
import logging
from fastapi import APIRouter, Depends, Request

from roofing_ivr.core.dependencies import get_session_store
from roofing_ivr.services.call_session.store import InMemoryStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(
    request: Request,
    sessions: InMemoryStore = Depends(get_session_store),
):
    """Health check endpoint."""
    logger.debug(
        f"[HEALTH] Health check requested - Client: {request.client.host if request.client else 'unknown'}"
    )
    return {"status": "healthy", "active_calls": await sessions.size()}
