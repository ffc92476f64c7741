"""Job orchestration: fetch -> extract -> normalise -> save, per URL.

Two entry points:

``harvest_from_list``
    Explicit URL list.  One pipeline per URL is scheduled on a bounded worker
    pool and the call returns immediately; completion can be awaited with
    :meth:`Orchestrator.wait` or polled through the job's counters.

``harvest_from_topic``
    Topic discovery.  Candidates produced by the
    :class:`~harvester.discovery.engine.DiscoveryEngine` are processed one at a
    time, in discovery order, until enough artifacts were saved.

Per-URL failures are logged and counted on the job; they never fail the job.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing

from harvester.discovery.engine import DiscoveryEngine, DiscoveryStats
from harvester.errors import HarvesterError, ValidationError
from harvester.jobs.models import Job, JobMode, JobRegistry, JobStatus
from harvester.scraper.extractor import extract_content
from harvester.scraper.fetcher import Fetcher
from harvester.scraper.models import CHALLENGE
from harvester.scraper.normalizer import normalize
from harvester.storage.artifacts import ArtifactStore, OutputFormat

logger = logging.getLogger(__name__)


def parse_url_list(text: str, limit: int) -> tuple[list[str], bool]:
    """Split an uploaded URL list into at most *limit* unique URLs.

    Blank lines are ignored and repeated URLs are kept once.  The second
    element is ``True`` when URLs beyond *limit* were dropped.
    """
    urls: list[str] = []
    seen: set[str] = set()
    for line in text.splitlines():
        url = line.strip()
        if not url or url in seen:
            continue
        if len(urls) >= limit:
            return urls, True
        seen.add(url)
        urls.append(url)
    return urls, False


class Orchestrator:
    """Drive harvesting jobs.

    Args:
        fetcher: Shared fetcher (and, through it, the page cache).
        store: Artifact store for the session directories.
        discovery: Engine used by topic jobs.
        registry: Job registry; a fresh one is created when omitted.
        max_urls_per_job: Cap on URLs scheduled from one uploaded list.
        max_files_per_job: Topic jobs stop once their directory holds this many files.
        max_concurrent_fetches: Size of the worker pool for list jobs.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        store: ArtifactStore,
        discovery: DiscoveryEngine,
        registry: JobRegistry | None = None,
        *,
        max_urls_per_job: int = 50,
        max_files_per_job: int = 20,
        max_concurrent_fetches: int = 8,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._discovery = discovery
        self.registry = registry if registry is not None else JobRegistry()
        self.max_urls_per_job = max_urls_per_job
        self.max_files_per_job = max_files_per_job
        self._semaphore = asyncio.Semaphore(max_concurrent_fetches)
        self._tasks: dict[str, set[asyncio.Task[bool]]] = {}

    # ------------------------------------------------------------------
    # Single URL pipeline
    # ------------------------------------------------------------------

    async def process_url(self, job: Job, url: str) -> bool:
        """Harvest one URL into *job*'s directory.

        Returns ``False`` when the page was a challenge and nothing was saved.

        Raises:
            HarvesterError: Whatever the fetch or the save raised.
        """
        content = await self._fetcher.fetch(url)
        if content is CHALLENGE:
            logger.info("Skipped URL: %s (challenge page)", url)
            return False

        page = extract_content(content)
        text = normalize(page.text)
        await self._store.save(
            job.id, url, page.title, text, job.folder_name, job.output_format
        )
        return True

    async def _attempt(self, job: Job, url: str) -> bool:
        """Run :meth:`process_url`, recording the outcome on *job* instead of raising."""
        try:
            saved = await self.process_url(job, url)
        except HarvesterError as exc:
            job.failed += 1
            logger.error("Error processing URL: %s, %s", url, exc)
            return False
        except Exception:
            # Malformed markup or an unexpected library error: still URL-scoped.
            job.failed += 1
            logger.exception("Unexpected error processing URL: %s", url)
            return False

        if saved:
            job.saved += 1
        else:
            job.skipped += 1
        return saved

    async def _pooled(self, job: Job, url: str) -> bool:
        async with self._semaphore:
            return await self._attempt(job, url)

    # ------------------------------------------------------------------
    # Explicit-list jobs
    # ------------------------------------------------------------------

    def harvest_from_list(self, text: str, output_format: OutputFormat) -> Job:
        """Schedule a pipeline per URL in *text* and return the job right away.

        Must be called from a running event loop.

        Raises:
            ValidationError: If *text* holds no URL.
        """
        urls, truncated = parse_url_list(text, self.max_urls_per_job)
        if not urls:
            raise ValidationError("The uploaded file contains no URLs.")

        job = self.registry.add(Job.create(JobMode.LIST, output_format))
        job.urls = urls
        job.scheduled = len(urls)
        job.truncated = truncated
        if truncated:
            logger.warning(
                "Job %s: only %d URLs are allowed, skipping the rest",
                job.id,
                self.max_urls_per_job,
            )

        tasks: set[asyncio.Task[bool]] = set()
        self._tasks[job.id] = tasks
        for url in urls:
            task = asyncio.create_task(self._pooled(job, url), name=f"harvest-{job.id}")
            tasks.add(task)
            task.add_done_callback(lambda t, job=job: self._task_done(job, t))

        logger.info("Job %s scheduled %d URLs", job.id, job.scheduled)
        return job

    def _task_done(self, job: Job, task: asyncio.Task[bool]) -> None:
        tasks = self._tasks.get(job.id)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            del self._tasks[job.id]
            job.status = JobStatus.COMPLETED
            logger.info(
                "Job %s finished: %d saved, %d skipped, %d failed",
                job.id,
                job.saved,
                job.skipped,
                job.failed,
            )

    async def wait(self, job_id: str) -> None:
        """Wait until every pipeline scheduled for *job_id* has finished."""
        tasks = self._tasks.get(job_id)
        if tasks:
            await asyncio.gather(*list(tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel every pipeline that is still pending."""
        pending = [t for tasks in self._tasks.values() for t in tasks]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    # ------------------------------------------------------------------
    # Topic jobs
    # ------------------------------------------------------------------

    async def harvest_from_topic(
        self,
        topic: str,
        desired_count: int,
        output_format: OutputFormat,
    ) -> Job:
        """Discover pages about *topic* and harvest them one after another.

        Raises:
            ValidationError: For an empty topic or a non-positive count.
            StorageError: If the session directory cannot be created.
        """
        if not topic.strip():
            raise ValidationError("A topic is required.")
        if desired_count < 1:
            raise ValidationError("The number of websites must be at least 1.")

        job = self.registry.add(Job.create(JobMode.TOPIC, output_format, topic=topic))
        await asyncio.to_thread(self._store.create_session, job.folder_name)

        stats = DiscoveryStats()
        processed: set[str] = set()
        candidates = self._discovery.discover(topic, desired_count, stats)
        async with aclosing(candidates):
            async for url in candidates:
                if url in processed:
                    continue
                processed.add(url)
                job.urls.append(url)
                job.scheduled += 1

                await self._attempt(job, url)

                if job.saved >= desired_count:
                    break
                files = await asyncio.to_thread(self._store.count_files, job.folder_name)
                if files >= self.max_files_per_job:
                    logger.info(
                        "Job %s reached %d files", job.id, self.max_files_per_job
                    )
                    break

        job.status = JobStatus.COMPLETED
        logger.info(
            "Job %s for %r: %d pages searched, %d saved, %d skipped, %d failed",
            job.id,
            topic,
            stats.pages_fetched + stats.pages_failed,
            job.saved,
            job.skipped,
            job.failed,
        )
        return job
