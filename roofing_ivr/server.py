"""Process entry point."""
import uvicorn

from roofing_ivr.core.config import settings


def run() -> None:
    """Serve the IVR on the configured host and port."""
    uvicorn.run(
        "roofing_ivr.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
