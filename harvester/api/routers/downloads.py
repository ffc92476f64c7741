"""One-shot archive download.

Routes
------
GET /download/{job_id}    Zip of the job's Session Directory; 404 if absent

Packaging deletes the Session Directory.  The archive is removed when the
response stream ends, whether the client received all of it or not.  If the
stream never starts (the client went away before the response headers were
sent) the janitor removes the leftover archive once it is older than
``archive_max_age``.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from harvester.archive.packager import ArchivePackager
from harvester.errors import ArchiveError, ArchiveNotFound

logger = logging.getLogger(__name__)

router = APIRouter()

_CHUNK_SIZE = 64 * 1024


async def _stream_archive(archive: Path, packager: ArchivePackager) -> AsyncIterator[bytes]:
    """Yield the archive in chunks, then discard it."""
    try:
        with archive.open("rb") as fh:
            while True:
                chunk = await asyncio.to_thread(fh.read, _CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
    except OSError as exc:
        logger.error("Error downloading file %s: %s", archive, exc)
        raise
    finally:
        packager.discard(archive)


@router.get("/{job_id}")
async def download(job_id: str, request: Request) -> StreamingResponse:
    """Package the job's artifacts and stream them as a zip archive."""
    packager: ArchivePackager = request.app.state.services.packager
    try:
        archive = await packager.package(job_id)
    except ArchiveNotFound as exc:
        raise HTTPException(status_code=404, detail="Data folder not found.") from exc
    except ArchiveError as exc:
        logger.error("%s", exc)
        raise HTTPException(
            status_code=500, detail="An error occurred while downloading the file."
        ) from exc

    return StreamingResponse(
        _stream_archive(archive, packager),
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{archive.name}"',
            "Content-Length": str(archive.stat().st_size),
        },
    )
