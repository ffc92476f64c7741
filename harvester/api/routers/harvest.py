"""Harvesting endpoints — uploaded URL list and topic discovery.

Routes
------
POST /harvest/file    Multipart: ``file`` (.txt, one URL per line), ``output_format``
POST /harvest/topic   Body: {"topic": "...", "output_format": "text", "desired_count": 10}
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field

from harvester.errors import ValidationError
from harvester.jobs.models import Job
from harvester.services import Services
from harvester.storage.artifacts import OutputFormat

logger = logging.getLogger(__name__)

router = APIRouter()

GENERIC_ERROR = "An error occurred. Please check the logs for more details."
INVALID_UPLOAD = "Invalid file format. Please upload a .txt file."


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class TopicHarvestRequest(BaseModel):
    topic: str = Field(..., min_length=1)
    output_format: str = "text"
    desired_count: int = Field(10, ge=1)


class FileHarvestResponse(BaseModel):
    status: str
    message: str
    job_id: str
    download_url: str
    scheduled_count: int
    truncated: bool
    notice: str


class TopicHarvestResponse(BaseModel):
    status: str
    message: str
    job_id: str
    download_url: str
    saved_count: int
    notice: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _services(request: Request) -> Services:
    return request.app.state.services


def _notice(job: Job, ttl: float) -> str:
    minutes = max(1, round(ttl / 60))
    return (
        f"Data folder {job.folder_name} will be deleted after {minutes} "
        "minutes starting from now"
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/file", response_model=FileHarvestResponse)
async def harvest_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    output_format: str = Form("text"),
) -> FileHarvestResponse:
    """Schedule harvesting of every URL in an uploaded ``.txt`` file.

    Returns as soon as the URLs are scheduled; the download may be incomplete
    until the job's pipelines finish (see ``GET /jobs/{job_id}``).
    """
    if file is None or not file.filename or not file.filename.lower().endswith(".txt"):
        raise HTTPException(status_code=400, detail=INVALID_UPLOAD)

    raw = await file.read()
    if not raw.strip():
        raise HTTPException(status_code=400, detail="The uploaded file is empty.")

    services = _services(request)
    try:
        fmt = OutputFormat.parse(output_format)
        job = services.orchestrator.harvest_from_list(
            raw.decode("utf-8", errors="replace"), fmt
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    limit = services.orchestrator.max_urls_per_job
    message = (
        f"Only {limit} URLs are allowed. Skipping remaining URLs."
        if job.truncated
        else "Data scraping scheduled successfully."
    )
    return FileHarvestResponse(
        status="success",
        message=message,
        job_id=job.id,
        download_url=f"/download/{job.folder_name}",
        scheduled_count=job.scheduled,
        truncated=job.truncated,
        notice=_notice(job, services.settings.session_ttl),
    )


@router.post("/topic", response_model=TopicHarvestResponse)
async def harvest_topic(body: TopicHarvestRequest, request: Request) -> TopicHarvestResponse:
    """Discover pages about a topic and harvest them before responding.

    Partial success (fewer pages than requested) is still a 200.
    """
    services = _services(request)
    try:
        fmt = OutputFormat.parse(body.output_format)
        job = await services.orchestrator.harvest_from_topic(
            body.topic, body.desired_count, fmt
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Error in topic harvest for %r", body.topic)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR) from exc

    return TopicHarvestResponse(
        status="success",
        message="Data scraped successfully.",
        job_id=job.id,
        download_url=f"/download/{job.folder_name}",
        saved_count=job.saved,
        notice=_notice(job, services.settings.session_ttl),
    )
