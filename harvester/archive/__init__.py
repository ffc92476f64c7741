"""Archive package — zip packaging for downloads."""

from harvester.archive.packager import ArchivePackager

__all__ = ["ArchivePackager"]
