"""Wiring of the harvesting components from a :class:`Settings` instance.

Both the FastAPI lifespan and the CLI build their object graph here so that
every component receives its configuration explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from harvester.archive.packager import ArchivePackager
from harvester.config import Settings
from harvester.discovery.engine import DiscoveryEngine
from harvester.discovery.filters import build_policy
from harvester.jobs.orchestrator import Orchestrator
from harvester.scraper.cache import PageCache
from harvester.scraper.fetcher import Fetcher, build_client
from harvester.storage.artifacts import ArtifactStore
from harvester.storage.janitor import Janitor


@dataclass
class Services:
    settings: Settings
    client: httpx.AsyncClient
    cache: PageCache
    fetcher: Fetcher
    store: ArtifactStore
    discovery: DiscoveryEngine
    orchestrator: Orchestrator
    packager: ArchivePackager
    janitor: Janitor

    async def aclose(self) -> None:
        """Cancel pending pipelines and close the HTTP client."""
        await self.orchestrator.shutdown()
        await self.client.aclose()


def build_services(cfg: Settings, client: httpx.AsyncClient | None = None) -> Services:
    """Create every component for *cfg*.

    Args:
        cfg: Settings to read limits, paths and policies from.
        client: Optional pre-built HTTP client (tests pass one with a mock
            transport); otherwise one is built from the settings.

    Raises:
        ValueError: If ``cfg.discovery_filter`` names an unknown policy.
    """
    client = client or build_client(cfg.user_agent, cfg.request_timeout)
    cache = PageCache(reset_interval=cfg.cache_reset_interval)
    fetcher = Fetcher(client, cache, challenge_servers=cfg.challenge_servers)
    store = ArtifactStore(cfg.workspace_dir, cache, ttl=cfg.session_ttl)
    discovery = DiscoveryEngine(
        fetcher,
        excluded_domains=cfg.excluded_domains,
        policy=build_policy(cfg.discovery_filter, cfg.excluded_extensions),
        page_limit=cfg.search_page_limit,
        url_template=cfg.search_url_template,
        tracking_marker=cfg.search_tracking_marker,
    )
    orchestrator = Orchestrator(
        fetcher,
        store,
        discovery,
        max_urls_per_job=cfg.max_urls_per_job,
        max_files_per_job=cfg.max_files_per_job,
        max_concurrent_fetches=cfg.max_concurrent_fetches,
    )
    return Services(
        settings=cfg,
        client=client,
        cache=cache,
        fetcher=fetcher,
        store=store,
        discovery=discovery,
        orchestrator=orchestrator,
        packager=ArchivePackager(cfg.workspace_dir),
        janitor=Janitor(
            cfg.workspace_dir,
            interval=cfg.janitor_interval,
            archive_max_age=cfg.archive_max_age,
            on_expired=orchestrator.registry.discard,
        ),
    )
