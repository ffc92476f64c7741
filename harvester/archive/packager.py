"""One-shot zip packaging of a job's Session Directory."""

from __future__ import annotations

import asyncio
import logging
import shutil
import zipfile
from pathlib import Path

from harvester.errors import ArchiveError, ArchiveNotFound
from harvester.storage.artifacts import is_valid_folder_name

logger = logging.getLogger(__name__)


def _build_zip(folder: Path, archive: Path) -> None:
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(folder.rglob("*")):
            if path.is_file():
                zf.write(path, arcname=path.relative_to(folder).as_posix())


class ArchivePackager:
    """Bundle a Session Directory into ``<workspace>/<job_id>.zip``.

    Packaging consumes the directory: once the archive is written the
    directory is deleted, and the archive itself is meant to be discarded as
    soon as it has been sent.
    """

    def __init__(self, workspace_dir: Path) -> None:
        self.workspace_dir = workspace_dir

    def archive_path(self, job_id: str) -> Path:
        return self.workspace_dir / f"{job_id}.zip"

    async def package(self, job_id: str) -> Path:
        """Zip the directory of *job_id*, delete the directory, return the archive.

        Raises:
            ArchiveNotFound: If no Session Directory exists for *job_id*.
            ArchiveError: If the archive cannot be written.
        """
        folder = self.workspace_dir / job_id
        if not is_valid_folder_name(job_id) or not folder.is_dir():
            raise ArchiveNotFound(f"Data folder {job_id!r} not found.")

        archive = self.archive_path(job_id)
        try:
            await asyncio.to_thread(_build_zip, folder, archive)
        except OSError as exc:
            await asyncio.to_thread(self.discard, archive)
            raise ArchiveError(f"Cannot package {job_id}: {exc}") from exc

        try:
            await asyncio.to_thread(shutil.rmtree, folder)
            logger.info("Deleted folder: %s", folder)
        except OSError as exc:
            # The janitor will retry once the expiry passes.
            logger.error("Error deleting folder %s: %s", folder, exc)
        return archive

    def discard(self, archive: Path) -> None:
        """Remove *archive*; failures are logged, never raised."""
        try:
            archive.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Error deleting archive %s: %s", archive, exc)
