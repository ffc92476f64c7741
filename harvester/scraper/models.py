"""Data models for the scraper pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Challenge(enum.Enum):
    """Marker returned by the fetcher when an anti-bot proxy blocked the page."""

    DETECTED = "challenge"


#: The single challenge sentinel.  Compare with ``is``.
CHALLENGE = Challenge.DETECTED


@dataclass
class CleanPage:
    """Title and body text extracted from an HTML document."""

    title: str
    text: str
