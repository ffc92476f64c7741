"""Exception taxonomy shared by the harvesting pipeline and the HTTP layer."""

from __future__ import annotations


class HarvesterError(Exception):
    """Base class for every error raised by the harvester package."""


class FetchError(HarvesterError):
    """A URL could not be retrieved.

    Raised for a non-200 response that is not a recognised challenge page, or
    when every transport attempt failed at the connection level.
    """

    def __init__(
        self,
        url: str,
        *,
        status_code: int | None = None,
        reason: str = "",
        cause: BaseException | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        self.cause = cause
        if status_code is not None:
            detail = f"{status_code} {reason}".strip()
        else:
            detail = str(cause) if cause is not None else reason
        super().__init__(f"Error fetching web page {url}: {detail}")


class ValidationError(HarvesterError):
    """Caller input was rejected (bad upload, bad format, bad job id)."""


class StorageError(HarvesterError):
    """A session directory or artifact file could not be written."""


class ArchiveError(HarvesterError):
    """Packaging or transferring a job archive failed."""


class ArchiveNotFound(ArchiveError):
    """No session directory exists for the requested job."""
