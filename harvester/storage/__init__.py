"""Storage package — session directories, artifacts and expiry sweeping."""

from harvester.storage.artifacts import ArtifactStore, OutputFormat
from harvester.storage.janitor import Janitor

__all__ = ["ArtifactStore", "Janitor", "OutputFormat"]
