"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from roofing_ivr.api import health
from roofing_ivr.api.webhooks import ivr
from roofing_ivr.core.config import settings
from roofing_ivr.core.dependencies import get_call_flow
from roofing_ivr.core.errors import ConfigurationError, MalformedWebhookError
from roofing_ivr.core.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: fail fast on missing configuration
    setup_logging()
    flow = get_call_flow()
    logger.info(
        f"South Florida Roofing IVR listening on port {settings.port} - "
        f"Callbacks: {flow.base_url}"
    )
    yield


app = FastAPI(
    title="Roofing IVR",
    description="Call-flow controller for the South Florida Roofing phone menu",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(ivr.router, prefix="/ivr", tags=["ivr"])


@app.exception_handler(MalformedWebhookError)
async def malformed_webhook_handler(request: Request, exc: MalformedWebhookError):
    return PlainTextResponse(str(exc), status_code=400)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"[CONFIG] {exc} - Path: {request.url.path}")
    return PlainTextResponse("Service misconfigured", status_code=500)
