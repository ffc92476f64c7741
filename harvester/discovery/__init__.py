"""Discovery package — topic search, link unwrapping and candidate filtering."""

from harvester.discovery.engine import DiscoveryEngine, DiscoveryStats
from harvester.discovery.filters import (
    DocumentTypePolicy,
    FilterPolicy,
    KeywordPolicy,
    build_policy,
)

__all__ = [
    "DiscoveryEngine",
    "DiscoveryStats",
    "DocumentTypePolicy",
    "FilterPolicy",
    "KeywordPolicy",
    "build_policy",
]
