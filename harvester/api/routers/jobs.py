"""Job progress endpoint.

Routes
------
GET /jobs/{job_id}    Counters and status of a harvesting job (id or folder name)
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

router = APIRouter()


@router.get("/{job_id}")
def get_job(job_id: str, request: Request) -> dict[str, Any]:
    """Return the job's status, counters and download link."""
    job = request.app.state.services.orchestrator.registry.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id!r} not found.")
    return {**job.to_dict(), "download_url": f"/download/{job.folder_name}"}
