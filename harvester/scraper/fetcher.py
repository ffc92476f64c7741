"""Async HTTP fetcher with cache, https->http fallback and challenge detection.

``Fetcher.fetch`` classifies every response into one of three outcomes:

* the page body (HTTP 200), which is also cached under the exact input URL;
* :data:`~harvester.scraper.models.CHALLENGE` for a 403 served by a known
  anti-bot edge proxy, so callers can skip the page without treating it as a
  failure;
* :class:`~harvester.errors.FetchError` for anything else.
"""

from __future__ import annotations

import logging
from typing import Iterable

import httpx

from harvester.errors import FetchError
from harvester.scraper.cache import PageCache
from harvester.scraper.models import CHALLENGE, Challenge

logger = logging.getLogger(__name__)


def build_client(user_agent: str, timeout: float) -> httpx.AsyncClient:
    """Return the shared :class:`httpx.AsyncClient` used for every fetch."""
    return httpx.AsyncClient(
        headers={"User-Agent": user_agent},
        timeout=timeout,
        follow_redirects=True,
    )


def _insecure_variant(url: str) -> str:
    """Rewrite an ``https://`` URL to ``http://`` over the same host and path."""
    return "http://" + url[len("https://"):]


class Fetcher:
    """Retrieve raw page content for a URL.

    Args:
        client: Shared async HTTP client.
        cache: Page cache consulted before any network call.
        challenge_servers: ``Server`` header values (case-insensitive) that
            identify an anti-bot proxy when paired with a 403.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: PageCache,
        challenge_servers: Iterable[str] = ("cloudflare",),
    ) -> None:
        self._client = client
        self._cache = cache
        self._challenge_servers = frozenset(s.lower() for s in challenge_servers)

    @property
    def cache(self) -> PageCache:
        return self._cache

    async def fetch(self, url: str) -> str | Challenge:
        """Return the body of *url*, or ``CHALLENGE`` if an anti-bot page was served.

        Raises:
            FetchError: On any other non-200 status, or when the request
                failed (connection, redirect loop, undecodable body).
        """
        cached = self._cache.get(url)
        if cached is not None:
            logger.debug("Cache hit for %s", url)
            return cached

        if url.lower().startswith("https://"):
            try:
                response = await self._client.get(url)
            except httpx.TransportError as exc:
                fallback = _insecure_variant(url)
                logger.warning(
                    "Secure fetch of %s failed (%s); retrying as %s", url, exc, fallback
                )
                response = await self._get(fallback, url)
            except (httpx.RequestError, httpx.InvalidURL) as exc:
                # Redirect loops and decoding failures are not retried over http.
                raise FetchError(url, cause=exc) from exc
        else:
            response = await self._get(url, url)

        return self._classify(url, response)

    async def _get(self, target: str, url: str) -> httpx.Response:
        """GET *target*, turning request failures into ``FetchError`` for *url*."""
        try:
            return await self._client.get(target)
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise FetchError(url, cause=exc) from exc

    def _classify(self, url: str, response: httpx.Response) -> str | Challenge:
        if response.status_code == 200:
            body = response.text
            self._cache.put(url, body)
            return body

        server = response.headers.get("server", "").strip().lower()
        if response.status_code == 403 and server in self._challenge_servers:
            logger.info("Challenge page from %r for %s", server, url)
            return CHALLENGE

        raise FetchError(
            url,
            status_code=response.status_code,
            reason=response.reason_phrase,
        )
