"""Centralised settings for the harvester service.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

_BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)


def _csv(name: str, default: str) -> list[str]:
    """Read a comma-separated env var into a list of trimmed, non-empty items."""
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("HARVESTER_WORKSPACE", Path.home() / ".harvester_data")
        )
    )
    session_ttl: float = field(
        default_factory=lambda: float(os.environ.get("SESSION_TTL_SECONDS", "600"))
    )
    janitor_interval: float = field(
        default_factory=lambda: float(os.environ.get("JANITOR_INTERVAL_SECONDS", "30"))
    )
    archive_max_age: float = field(
        default_factory=lambda: float(os.environ.get("ARCHIVE_MAX_AGE_SECONDS", "600"))
    )

    # ------------------------------------------------------------------
    # HTTP server / logging
    # ------------------------------------------------------------------
    host: str = field(
        default_factory=lambda: os.environ.get("HARVESTER_HOST", "127.0.0.1")
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("HARVESTER_PORT", "8000"))
    )
    log_file_override: str = field(
        default_factory=lambda: os.environ.get("HARVESTER_LOG_FILE", "")
    )
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    @property
    def log_file(self) -> Path:
        """Absolute path to the append-only event log."""
        if self.log_file_override:
            return Path(self.log_file_override)
        return self.workspace_dir / "app.log"

    # ------------------------------------------------------------------
    # Fetcher
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get("HARVESTER_USER_AGENT", _BROWSER_UA)
    )
    challenge_servers: list[str] = field(
        default_factory=lambda: _csv("CHALLENGE_SERVERS", "cloudflare")
    )
    cache_reset_interval: float = field(
        default_factory=lambda: float(os.environ.get("CACHE_RESET_SECONDS", "28800"))
    )

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------
    max_urls_per_job: int = field(
        default_factory=lambda: int(os.environ.get("MAX_URLS_PER_JOB", "50"))
    )
    max_files_per_job: int = field(
        default_factory=lambda: int(os.environ.get("MAX_FILES_PER_JOB", "20"))
    )
    max_concurrent_fetches: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CONCURRENT_FETCHES", "8"))
    )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    search_page_limit: int = field(
        default_factory=lambda: int(os.environ.get("SEARCH_PAGE_LIMIT", "20"))
    )
    search_url_template: str = field(
        default_factory=lambda: os.environ.get(
            "SEARCH_URL_TEMPLATE",
            "https://www.google.com/search?q={query}&start={offset}",
        )
    )
    search_tracking_marker: str = field(
        default_factory=lambda: os.environ.get("SEARCH_TRACKING_MARKER", "&sa=")
    )
    excluded_domains: list[str] = field(
        default_factory=lambda: _csv(
            "EXCLUDED_DOMAINS", "google,youtube,wikipedia,cpanel,facebook,twitter"
        )
    )
    excluded_extensions: list[str] = field(
        default_factory=lambda: _csv("EXCLUDED_EXTENSIONS", ".pdf")
    )
    discovery_filter: str = field(
        default_factory=lambda: os.environ.get("DISCOVERY_FILTER", "document-type")
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from harvester.config import settings
settings = Settings()
