"""Candidate-URL filtering for topic discovery.

Two interchangeable policies decide which search results are worth
harvesting:

  * ``document-type`` — accept any page except documents with an excluded
    extension (``.pdf`` by default), which are counted as skipped.
  * ``keyword`` — the same document check, and additionally require that
    the URL mentions ``article``, ``tutorial``, ``guide`` or the topic.

Both are applied after the URL has been validated and checked against the
excluded-domain list.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import Iterable
from urllib.parse import unquote, urlsplit


class Verdict(enum.Enum):
    ACCEPT = "accept"
    SKIP_DOCUMENT = "skip_document"
    REJECT = "reject"


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------

def extract_destination(href: str, marker: str = "&sa=") -> str | None:
    """Unwrap a search-engine redirect link.

    The destination is the text from the first ``http`` up to (not including)
    the tracking *marker*, percent-decoded.  Returns ``None`` when either
    boundary is missing.
    """
    start = href.find("http")
    if start == -1:
        return None
    end = href.find(marker, start)
    if end == -1:
        return None
    return unquote(href[start:end])


def is_valid_url(url: str) -> bool:
    """Return ``True`` for an absolute ``http(s)`` URL with a host."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def is_excluded_host(url: str, excluded_domains: Iterable[str]) -> bool:
    """Return ``True`` if the URL's host contains any excluded domain fragment."""
    host = (urlsplit(url).hostname or "").lower()
    return any(domain.lower() in host for domain in excluded_domains)


def has_excluded_extension(url: str, extensions: Iterable[str]) -> bool:
    path = urlsplit(url).path.lower()
    return any(path.endswith(ext.lower()) for ext in extensions)


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------

class FilterPolicy(ABC):
    """Decide whether a validated, non-excluded candidate URL is kept."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Configuration name of the policy."""

    @abstractmethod
    def verdict(self, url: str, topic: str) -> Verdict:
        """Classify *url* for a discovery run on *topic*."""


class DocumentTypePolicy(FilterPolicy):
    def __init__(self, excluded_extensions: Iterable[str] = (".pdf",)) -> None:
        self._extensions = tuple(excluded_extensions)

    @property
    def name(self) -> str:
        return "document-type"

    def verdict(self, url: str, topic: str) -> Verdict:
        if has_excluded_extension(url, self._extensions):
            return Verdict.SKIP_DOCUMENT
        return Verdict.ACCEPT


class KeywordPolicy(FilterPolicy):
    """Keep only URLs that mention a keyword or the topic.

    Documents with an excluded extension are skipped before the keyword test,
    exactly as under the ``document-type`` policy.
    """

    _KEYWORDS = ("article", "tutorial", "guide")

    def __init__(self, excluded_extensions: Iterable[str] = (".pdf",)) -> None:
        self._extensions = tuple(excluded_extensions)

    @property
    def name(self) -> str:
        return "keyword"

    def verdict(self, url: str, topic: str) -> Verdict:
        if has_excluded_extension(url, self._extensions):
            return Verdict.SKIP_DOCUMENT
        lowered = url.lower()
        needles = [*self._KEYWORDS, topic.strip().lower()]
        if any(needle and needle in lowered for needle in needles):
            return Verdict.ACCEPT
        return Verdict.REJECT


def build_policy(name: str, excluded_extensions: Iterable[str] = (".pdf",)) -> FilterPolicy:
    """Return the policy configured as *name*.

    Raises:
        ValueError: For an unknown policy name.
    """
    if name == "document-type":
        return DocumentTypePolicy(excluded_extensions)
    if name == "keyword":
        return KeywordPolicy(excluded_extensions)
    raise ValueError(f"Unknown discovery filter {name!r}; use 'document-type' or 'keyword'.")
