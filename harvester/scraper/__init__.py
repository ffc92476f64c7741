"""Scraper package — fetch, content extraction and text normalisation."""

from harvester.scraper.cache import PageCache
from harvester.scraper.extractor import extract_content
from harvester.scraper.fetcher import Fetcher, build_client
from harvester.scraper.models import CHALLENGE, Challenge, CleanPage
from harvester.scraper.normalizer import normalize

__all__ = [
    "CHALLENGE",
    "Challenge",
    "CleanPage",
    "Fetcher",
    "PageCache",
    "build_client",
    "extract_content",
    "normalize",
]
