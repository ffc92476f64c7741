"""Ephemeral, job-scoped artifact storage.

Each job owns a Session Directory ``<workspace>/<folder_name>/`` holding one
file per harvested hostname.  Before a directory is created its expiry time is
written to ``<workspace>/.expiry/<folder_name>``; the
:class:`~harvester.storage.janitor.Janitor` deletes the directory once that
time has passed.  Recording the expiry on disk keeps pending deletions across
process restarts.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import re
import time
from pathlib import Path
from typing import Callable
from urllib.parse import urlsplit

from harvester.errors import StorageError, ValidationError
from harvester.scraper.cache import PageCache

logger = logging.getLogger(__name__)

EXPIRY_DIRNAME = ".expiry"

_FOLDER_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class OutputFormat(str, enum.Enum):
    """How an artifact is serialised on disk."""

    TEXT = "text"
    STRUCTURED = "structured"

    @property
    def extension(self) -> str:
        return ".json" if self is OutputFormat.STRUCTURED else ".txt"

    @classmethod
    def parse(cls, value: str | None) -> "OutputFormat":
        """Accept ``text`` / ``structured`` and the file-extension aliases ``txt`` / ``json``.

        Raises:
            ValidationError: For any other value.
        """
        normalized = (value or "").strip().lower()
        aliases = {
            "text": cls.TEXT,
            "txt": cls.TEXT,
            "structured": cls.STRUCTURED,
            "json": cls.STRUCTURED,
        }
        if normalized not in aliases:
            raise ValidationError(
                f"Unknown output format {value!r}; use 'text' or 'structured'."
            )
        return aliases[normalized]


def is_valid_folder_name(name: str) -> bool:
    """Return ``True`` if *name* can only address a direct child of the workspace."""
    return bool(_FOLDER_NAME_RE.match(name))


def artifact_filename(url: str, output_format: OutputFormat) -> str:
    """Derive the artifact filename from the hostname of *url*.

    Raises:
        ValidationError: If *url* has no hostname.
    """
    hostname = urlsplit(url.strip()).hostname
    if not hostname:
        raise ValidationError(f"Cannot derive a hostname from {url!r}.")
    return f"{hostname}{output_format.extension}"


def serialize_artifact(title: str, text: str, output_format: OutputFormat) -> str:
    if output_format is OutputFormat.STRUCTURED:
        return json.dumps({"title": title, "content": text}, ensure_ascii=False)
    return text


class ArtifactStore:
    """Persist normalised artifacts into self-expiring session directories.

    Args:
        workspace_dir: Root under which every session directory lives.
        cache: Page cache whose entry for a URL is dropped once that URL's
            artifact is on disk.
        ttl: Seconds after a directory's creation at which it is deleted.
        clock: Wall-clock source (POSIX seconds); injected for tests.
    """

    def __init__(
        self,
        workspace_dir: Path,
        cache: PageCache,
        ttl: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.workspace_dir = workspace_dir
        self._cache = cache
        self.ttl = ttl
        self._clock = clock

    @property
    def expiry_dir(self) -> Path:
        return self.workspace_dir / EXPIRY_DIRNAME

    def session_path(self, folder_name: str) -> Path:
        """Return the Session Directory path for *folder_name*.

        Raises:
            ValidationError: If the name could escape the workspace.
        """
        if not is_valid_folder_name(folder_name):
            raise ValidationError(f"Invalid folder name {folder_name!r}.")
        return self.workspace_dir / folder_name

    # ------------------------------------------------------------------
    # Expiry bookkeeping
    # ------------------------------------------------------------------

    def expiry_of(self, folder_name: str) -> float | None:
        """Return the recorded expiry timestamp, or ``None`` if none is recorded."""
        record = self.expiry_dir / folder_name
        try:
            return float(record.read_text(encoding="utf-8").strip())
        except FileNotFoundError:
            return None
        except ValueError:
            logger.warning("Corrupt expiry record %s; treating as expired", record)
            return 0.0

    def schedule_expiry(self, folder_name: str, *, renew: bool = False) -> float:
        """Record that *folder_name* must be gone ``ttl`` seconds from now.

        Unless *renew* is set, an existing earlier expiry is kept: the deadline
        of a directory is fixed when it is created and never pushed back.
        Returns the expiry in effect.
        """
        deadline = self._clock() + self.ttl
        existing = self.expiry_of(folder_name)
        if not renew and existing is not None and existing <= deadline:
            return existing
        try:
            self.expiry_dir.mkdir(parents=True, exist_ok=True)
            (self.expiry_dir / folder_name).write_text(str(deadline), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Cannot record expiry for {folder_name}: {exc}") from exc
        return deadline

    # ------------------------------------------------------------------
    # Session directories
    # ------------------------------------------------------------------

    def create_session(self, folder_name: str) -> Path:
        """Create the Session Directory for *folder_name* and schedule its deletion."""
        path = self.session_path(folder_name)
        # A directory removed by a download gets a fresh deadline when recreated.
        self.schedule_expiry(folder_name, renew=not path.is_dir())
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create session directory {path}: {exc}") from exc
        return path

    def count_files(self, folder_name: str) -> int:
        """Number of artifacts currently in the Session Directory (0 if absent)."""
        path = self.session_path(folder_name)
        if not path.is_dir():
            return 0
        return sum(1 for p in path.iterdir() if p.is_file())

    async def save(
        self,
        job_id: str,
        url: str,
        title: str,
        text: str,
        folder_name: str,
        output_format: OutputFormat,
    ) -> Path:
        """Write one artifact for *url* into the job's Session Directory.

        The file is named after the URL's hostname, so a second URL on the same
        host within one job overwrites the first.  On success the cached page
        for *url* is invalidated.

        Raises:
            ValidationError: If *url* has no hostname.
            StorageError: If the directory or file cannot be written.
        """
        filename = artifact_filename(url, output_format)
        payload = serialize_artifact(title, text, output_format)
        target = await asyncio.to_thread(self._persist, folder_name, filename, payload)

        self._cache.invalidate(url)
        logger.info("Job %s saved %s from %s", job_id, filename, url)
        return target

    def _persist(self, folder_name: str, filename: str, payload: str) -> Path:
        target = self.create_session(folder_name) / filename
        try:
            target.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Cannot write artifact {target}: {exc}") from exc
        return target
