"""Event-log endpoints.

Routes
------
GET  /logs          Raw text of the log file
POST /logs/clear    Truncate the log file
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse

from harvester.logging_config import clear_log_file, read_log_file

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_class=PlainTextResponse)
def get_logs(request: Request) -> str:
    try:
        return read_log_file(request.app.state.settings.log_file)
    except OSError as exc:
        logger.error("Error reading logs: %s", exc)
        raise HTTPException(
            status_code=500, detail="An error occurred while reading the logs."
        ) from exc


@router.post("/clear", response_class=PlainTextResponse)
def clear_logs(request: Request) -> str:
    try:
        clear_log_file(request.app.state.settings.log_file)
    except OSError as exc:
        logger.error("Error clearing log file: %s", exc)
        raise HTTPException(
            status_code=500, detail="An error occurred while clearing the log file."
        ) from exc
    return "Log file cleared successfully."
