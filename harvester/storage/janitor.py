"""Sweeper that deletes Session Directories past their recorded expiry."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from pathlib import Path
from typing import Callable

from harvester.storage.artifacts import EXPIRY_DIRNAME, is_valid_folder_name

logger = logging.getLogger(__name__)


class Janitor:
    """Delete expired session directories and abandoned archives.

    Expiry records written by :class:`~harvester.storage.artifacts.ArtifactStore`
    live in ``<workspace>/.expiry``; a directory already removed by a download
    is simply forgotten.  A ``<workspace>/*.zip`` older than *archive_max_age*
    belongs to a download that never streamed and is removed too.

    Args:
        workspace_dir: Root containing the session directories.
        interval: Seconds between sweeps when running in the background.
        clock: Wall-clock source (POSIX seconds).
        archive_max_age: Age in seconds after which a leftover archive is removed.
        on_expired: Called on the event loop with each swept folder name.
    """

    def __init__(
        self,
        workspace_dir: Path,
        interval: float = 30.0,
        clock: Callable[[], float] = time.time,
        archive_max_age: float = 600.0,
        on_expired: Callable[[str], None] | None = None,
    ) -> None:
        self.workspace_dir = workspace_dir
        self.interval = interval
        self._clock = clock
        self.archive_max_age = archive_max_age
        self._on_expired = on_expired

    def sweep(self) -> list[str]:
        """Run one pass and return the folder names whose expiry was processed."""
        now = self._clock()
        self._sweep_archives(now)

        records_dir = self.workspace_dir / EXPIRY_DIRNAME
        if not records_dir.is_dir():
            return []

        swept: list[str] = []
        for record in sorted(records_dir.iterdir()):
            name = record.name
            if not record.is_file() or not is_valid_folder_name(name):
                continue
            try:
                deadline = float(record.read_text(encoding="utf-8").strip())
            except ValueError:
                deadline = 0.0
            except OSError as exc:
                logger.error("Error reading expiry record %s: %s", record, exc)
                continue
            if deadline > now:
                continue

            # The record goes first: a save racing with the removal below then
            # finds no record and schedules a fresh deletion for what it creates.
            try:
                record.unlink(missing_ok=True)
            except OSError as exc:
                logger.error("Error deleting expiry record %s: %s", record, exc)
                continue

            folder = self.workspace_dir / name
            try:
                if folder.is_dir():
                    shutil.rmtree(folder)
                    logger.info("Deleted folder: %s", folder)
            except OSError as exc:
                logger.error("Error deleting folder %s: %s", folder, exc)
                self._restore_record(record, deadline)
                continue
            swept.append(name)
        return swept

    def _restore_record(self, record: Path, deadline: float) -> None:
        """Put an expiry back so the next sweep retries, unless a save already did."""
        if record.exists():
            return
        try:
            record.write_text(str(deadline), encoding="utf-8")
        except OSError as exc:
            logger.error("Error restoring expiry record %s: %s", record, exc)

    def _sweep_archives(self, now: float) -> None:
        if not self.workspace_dir.is_dir():
            return
        for archive in self.workspace_dir.glob("*.zip"):
            try:
                if now - archive.stat().st_mtime < self.archive_max_age:
                    continue
                archive.unlink(missing_ok=True)
                logger.info("Deleted stale archive: %s", archive)
            except OSError as exc:
                logger.error("Error deleting archive %s: %s", archive, exc)

    async def run(self, stop: asyncio.Event) -> None:
        """Sweep every ``interval`` seconds until *stop* is set."""
        logger.debug("Janitor started for %s", self.workspace_dir)
        while not stop.is_set():
            swept = await asyncio.to_thread(self.sweep)
            if self._on_expired is not None:
                for name in swept:
                    self._on_expired(name)
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.debug("Janitor stopped")
