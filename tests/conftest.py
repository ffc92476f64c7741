"""Shared fixtures: a controllable clock and an in-memory fetcher double."""

from __future__ import annotations

from typing import Callable

import pytest

from harvester.errors import FetchError
from harvester.scraper.cache import PageCache
from harvester.scraper.models import Challenge


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Stand-in for :class:`harvester.scraper.fetcher.Fetcher`.

    *responses* maps a URL to an HTML string, ``CHALLENGE`` or an exception
    instance to raise.  Unknown URLs raise a 404 ``FetchError``.
    """

    def __init__(self, responses: dict[str, str | Challenge | Exception]) -> None:
        self.responses = responses
        self.calls: list[str] = []
        self.cache = PageCache()

    async def fetch(self, url: str) -> str | Challenge:
        self.calls.append(url)
        if url not in self.responses:
            raise FetchError(url, status_code=404, reason="Not Found")
        value = self.responses[url]
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_fetcher() -> Callable[[dict], FakeFetcher]:
    return FakeFetcher


def page(title: str, body: str) -> str:
    """Minimal HTML document with a title and a body paragraph."""
    return f"<html><head><title>{title}</title></head><body><p>{body}</p></body></html>"


@pytest.fixture()
def make_page() -> Callable[[str, str], str]:
    return page
