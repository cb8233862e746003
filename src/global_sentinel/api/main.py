# Operator API - FastAPI application
#
# Thin HTTP surface over the running pipeline: health, cycle status and
# manual trigger, published threats, chaos index and trends.  Auth is
# handled by whatever sits in front of this service.

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .. import __version__
from ..intel.publisher import SlotPublisher
from ..intel.scheduler import CycleScheduler
from .routes import router, services

logger = logging.getLogger(__name__)


def create_app(
    scheduler: Optional[CycleScheduler] = None,
    publisher: Optional[SlotPublisher] = None,
) -> FastAPI:
    """Build the API app and wire it to the given components."""
    services.scheduler = scheduler
    services.publisher = publisher

    app = FastAPI(
        title="Global Sentinel API",
        description="Global threat aggregation pipeline",
        version=__version__,
    )
    app.include_router(router)
    return app


def start_api_server(app: FastAPI, host: str = "127.0.0.1", port: int = 8000):
    """
    Start FastAPI server.

    Args:
        app: Application from ``create_app()``
        host: Host to bind to (default: localhost only)
        port: Port to listen on
    """
    logger.info("Starting API server on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")
