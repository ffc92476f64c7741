"""Job records and the in-memory job registry."""

from __future__ import annotations

import enum
import re
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any

from harvester.storage.artifacts import OutputFormat


class JobMode(str, enum.Enum):
    LIST = "list"
    TOPIC = "topic"


class JobStatus(str, enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"


def new_job_id() -> str:
    """Return a short opaque job id (10 hex characters of a uuid4)."""
    return uuid.uuid4().hex[:10]


def sanitize_topic(topic: str) -> str:
    """Turn a free-text topic into a folder-name suffix.

    Spaces become underscores; anything outside ``[A-Za-z0-9_-]`` is dropped.
    """
    underscored = re.sub(r"\s+", "_", topic.strip())
    return re.sub(r"[^A-Za-z0-9_-]", "", underscored)


@dataclass
class Job:
    """One harvesting request and its progress counters."""

    id: str
    mode: JobMode
    output_format: OutputFormat
    folder_name: str
    urls: list[str] = field(default_factory=list)
    topic: str | None = None
    scheduled: int = 0
    saved: int = 0
    skipped: int = 0
    failed: int = 0
    truncated: bool = False
    status: JobStatus = JobStatus.RUNNING

    @classmethod
    def create(
        cls,
        mode: JobMode,
        output_format: OutputFormat,
        topic: str | None = None,
    ) -> "Job":
        job_id = new_job_id()
        folder_name = job_id
        if topic:
            suffix = sanitize_topic(topic)
            if suffix:
                folder_name = f"{job_id}_{suffix}"
        return cls(
            id=job_id,
            mode=mode,
            output_format=output_format,
            folder_name=folder_name,
            topic=topic,
        )

    @property
    def finished(self) -> int:
        return self.saved + self.skipped + self.failed

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        data["output_format"] = self.output_format.value
        data["status"] = self.status.value
        data["finished"] = self.finished
        return data


class JobRegistry:
    """Process-wide index of jobs by id and by folder name.

    A job stays registered until its Session Directory expires; the janitor
    then calls :meth:`discard` with the folder name.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._by_folder: dict[str, str] = {}

    def add(self, job: Job) -> Job:
        self._jobs[job.id] = job
        self._by_folder[job.folder_name] = job.id
        return job

    def get(self, key: str) -> Job | None:
        """Look a job up by id or by its folder name."""
        job = self._jobs.get(key)
        if job is not None:
            return job
        job_id = self._by_folder.get(key)
        return self._jobs.get(job_id) if job_id is not None else None

    def discard(self, key: str) -> None:
        """Forget the job with id or folder name *key*, if it is registered."""
        job = self.get(key)
        if job is None:
            return
        del self._jobs[job.id]
        self._by_folder.pop(job.folder_name, None)

    def __len__(self) -> int:
        return len(self._jobs)
