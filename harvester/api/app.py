"""FastAPI application factory.

Lifespan
--------
On startup the app configures the log file, builds the harvesting components
(shared via ``request.app.state.services``) and starts the janitor that
deletes expired session directories.  On shutdown it stops the janitor,
cancels pending pipelines and closes the HTTP client.

Routers
-------
    /harvest   — start list or topic harvesting jobs
    /jobs      — job progress
    /download  — one-shot zip download of a job's artifacts
    /logs      — read or clear the event log
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from harvester.config import Settings, settings
from harvester.logging_config import configure_logging
from harvester.services import build_services

from harvester.api.routers import downloads as downloads_router
from harvester.api.routers import harvest as harvest_router
from harvester.api.routers import jobs as jobs_router
from harvester.api.routers import logs as logs_router

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred. Please check the logs for more details."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build services and run the janitor for the lifetime of the app."""
    cfg: Settings = app.state.settings
    cfg.ensure_workspace()
    configure_logging(cfg.log_file, cfg.log_level)

    services = build_services(cfg)
    app.state.services = services

    stop = asyncio.Event()
    janitor_task = asyncio.create_task(services.janitor.run(stop))
    logger.info("Harvester started; workspace %s", cfg.workspace_dir)
    try:
        yield
    finally:
        stop.set()
        await janitor_task
        await services.aclose()
        logger.info("Harvester stopped")


def create_app(cfg: Settings | None = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Page Harvester API",
        description=(
            "Harvest readable text from lists of URLs or from a topic search "
            "and download the results as a self-expiring zip archive."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = cfg or settings

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> PlainTextResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return PlainTextResponse(GENERIC_ERROR, status_code=500)

    app.include_router(harvest_router.router, prefix="/harvest", tags=["harvest"])
    app.include_router(jobs_router.router, prefix="/jobs", tags=["jobs"])
    app.include_router(downloads_router.router, prefix="/download", tags=["download"])
    app.include_router(logs_router.router, prefix="/logs", tags=["logs"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn harvester.api.app:app --reload
app = create_app()
