"""Jobs package — job records and the harvesting orchestrator."""

from harvester.jobs.models import Job, JobMode, JobRegistry, JobStatus
from harvester.jobs.orchestrator import Orchestrator, parse_url_list

__all__ = [
    "Job",
    "JobMode",
    "JobRegistry",
    "JobStatus",
    "Orchestrator",
    "parse_url_list",
]
