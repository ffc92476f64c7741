"""Topic discovery over a paginated web search.

``DiscoveryEngine.discover`` walks search-result pages through the shared
:class:`~harvester.scraper.fetcher.Fetcher`, unwraps each result link, filters
it and yields every new unique candidate until ``desired_count`` candidates
were produced or the page limit is exhausted.  A page that cannot be fetched
is logged and skipped; it never aborts the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Iterable
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from harvester.discovery.filters import (
    DocumentTypePolicy,
    FilterPolicy,
    Verdict,
    extract_destination,
    is_excluded_host,
    is_valid_url,
)
from harvester.errors import FetchError
from harvester.scraper.fetcher import Fetcher
from harvester.scraper.models import CHALLENGE

logger = logging.getLogger(__name__)

RESULTS_PER_PAGE = 10


@dataclass
class DiscoveryStats:
    """Counters describing one discovery run."""

    pages_fetched: int = 0
    pages_failed: int = 0
    skipped_documents: int = 0
    rejected_links: int = 0
    candidates: int = 0


def parse_result_links(html: str) -> list[str]:
    """Return every ``href`` of an ``<a>`` element in a results page."""
    soup = BeautifulSoup(html, "html.parser")
    return [a["href"] for a in soup.find_all("a", href=True)]


class DiscoveryEngine:
    """Produce candidate URLs for a topic.

    Args:
        fetcher: Fetcher used for the search-result pages.
        excluded_domains: Host fragments that disqualify a candidate.
        policy: Filter policy applied to surviving candidates.
        page_limit: Maximum number of result pages requested per run.
        url_template: Search URL with ``{query}`` and ``{offset}`` fields.
        tracking_marker: Marker ending the destination inside a redirect link.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        excluded_domains: Iterable[str] = (),
        policy: FilterPolicy | None = None,
        page_limit: int = 20,
        url_template: str = "https://www.google.com/search?q={query}&start={offset}",
        tracking_marker: str = "&sa=",
    ) -> None:
        self._fetcher = fetcher
        self._excluded_domains = tuple(excluded_domains)
        self._policy = policy or DocumentTypePolicy()
        self.page_limit = page_limit
        self._url_template = url_template
        self._marker = tracking_marker

    def search_url(self, topic: str, page: int) -> str:
        """Build the results URL for 1-based *page*.

        Page 1 starts at offset 0 on purpose: a ``page * 10`` offset would
        never request the first ten results.
        """
        return self._url_template.format(
            query=quote_plus(topic),
            offset=(page - 1) * RESULTS_PER_PAGE,
        )

    def _candidates(self, html: str, topic: str, stats: DiscoveryStats) -> list[str]:
        accepted: list[str] = []
        for href in parse_result_links(html):
            url = extract_destination(href, self._marker)
            if url is None or not is_valid_url(url):
                continue
            if is_excluded_host(url, self._excluded_domains):
                stats.rejected_links += 1
                continue
            verdict = self._policy.verdict(url, topic)
            if verdict is Verdict.SKIP_DOCUMENT:
                logger.info("Skipped URL: %s (excluded document type)", url)
                stats.skipped_documents += 1
            elif verdict is Verdict.REJECT:
                stats.rejected_links += 1
            else:
                accepted.append(url)
        return accepted

    async def discover(
        self,
        topic: str,
        desired_count: int,
        stats: DiscoveryStats | None = None,
    ) -> AsyncIterator[str]:
        """Yield up to *desired_count* unique candidate URLs for *topic*.

        Pass a :class:`DiscoveryStats` to collect counters for the run.
        """
        stats = stats if stats is not None else DiscoveryStats()
        if desired_count <= 0:
            return

        seen: set[str] = set()
        for page in range(1, self.page_limit + 1):
            search_url = self.search_url(topic, page)
            try:
                html = await self._fetcher.fetch(search_url)
            except FetchError as exc:
                stats.pages_failed += 1
                logger.error("Error fetching or processing URL: %s, %s", search_url, exc)
                continue
            if html is CHALLENGE:
                stats.pages_failed += 1
                logger.warning("Search page %d for %r was challenged", page, topic)
                continue

            stats.pages_fetched += 1
            for url in self._candidates(html, topic, stats):
                if url in seen:
                    continue
                seen.add(url)
                stats.candidates += 1
                yield url
                if stats.candidates >= desired_count:
                    return

        logger.info(
            "Discovery for %r exhausted %d pages with %d candidates",
            topic,
            self.page_limit,
            stats.candidates,
        )
