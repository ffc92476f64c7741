"""Harvester CLI — entry-point for running the service and one-off jobs.

Usage:
    python cli/main.py --help

Commands:
    serve          → run the HTTP API with uvicorn
    scrape         → fetch one URL and print its normalised text
    harvest-list   → harvest every URL of a text file and wait for completion
    harvest-topic  → discover and harvest pages about a topic
    sweep          → delete expired session directories once
    logs / clear-logs
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from harvester.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import typer

from harvester.config import settings
from harvester.errors import HarvesterError
from harvester.jobs.models import Job
from harvester.logging_config import clear_log_file, configure_logging, read_log_file
from harvester.scraper.extractor import extract_content
from harvester.scraper.models import CHALLENGE
from harvester.scraper.normalizer import normalize
from harvester.services import Services, build_services
from harvester.storage.artifacts import OutputFormat

T = TypeVar("T")

app = typer.Typer(
    name="harvester",
    help="Page harvester CLI.",
    no_args_is_help=True,
)


def _run(work: Callable[[Services], Awaitable[T]]) -> T:
    """Build the services, run *work* on a fresh event loop, then close them."""
    settings.ensure_workspace()
    configure_logging(settings.log_file, settings.log_level)

    async def _main() -> T:
        services = build_services(settings)
        try:
            return await work(services)
        finally:
            await services.aclose()

    return asyncio.run(_main())


def _parse_format(value: str) -> OutputFormat:
    try:
        return OutputFormat.parse(value)
    except HarvesterError as exc:
        typer.echo(f"[harvester] {exc}")
        raise typer.Exit(code=1)


def _summary(prefix: str, job: Job, services: Services) -> None:
    folder = services.store.session_path(job.folder_name)
    typer.echo(
        f"[{prefix}] Job {job.id}: {job.saved} saved, {job.skipped} skipped, "
        f"{job.failed} failed"
    )
    if job.saved:
        typer.echo(f"[{prefix}] Artifacts in {folder}")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address (defaults to HARVESTER_HOST)."),
    port: Optional[int] = typer.Option(None, help="Port (defaults to HARVESTER_PORT)."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run(
        "harvester.api.app:app",
        host=host or settings.host,
        port=port or settings.port,
    )


# ---------------------------------------------------------------------------
# One-off harvesting
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="URL to scrape."),
) -> None:
    """Fetch a URL and print its title and normalised text."""

    async def work(services: Services) -> None:
        typer.echo(f"[scrape] Fetching {url!r} …")
        content = await services.fetcher.fetch(url)
        if content is CHALLENGE:
            typer.echo("[scrape] Blocked by an anti-bot challenge page.")
            raise typer.Exit(code=2)
        page = extract_content(content)
        text = normalize(page.text)
        typer.echo(f"[scrape] Title  : {page.title or '(none)'}")
        typer.echo(f"[scrape] Words  : {len(text.split())}")
        typer.echo("")
        typer.echo(text)

    try:
        _run(work)
    except HarvesterError as exc:
        typer.echo(f"[scrape] {exc}")
        raise typer.Exit(code=1)


@app.command("harvest-list")
def harvest_list(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Text file, one URL per line."),
    output_format: str = typer.Option("text", "--format", help="text | structured"),
) -> None:
    """Harvest every URL listed in a file and wait until all are done."""
    fmt = _parse_format(output_format)
    text = path.read_text(encoding="utf-8", errors="replace")

    async def work(services: Services) -> None:
        job = services.orchestrator.harvest_from_list(text, fmt)
        typer.echo(f"[harvest-list] Scheduled {job.scheduled} URL(s) as job {job.id}")
        if job.truncated:
            typer.echo(
                f"[harvest-list] Only {services.orchestrator.max_urls_per_job} URLs "
                "are allowed; the rest were skipped."
            )
        await services.orchestrator.wait(job.id)
        _summary("harvest-list", job, services)

    try:
        _run(work)
    except HarvesterError as exc:
        typer.echo(f"[harvest-list] {exc}")
        raise typer.Exit(code=1)


@app.command("harvest-topic")
def harvest_topic(
    topic: str = typer.Argument(..., help="Search topic."),
    count: int = typer.Option(10, "--count", min=1, help="Number of websites to harvest."),
    output_format: str = typer.Option("text", "--format", help="text | structured"),
) -> None:
    """Discover pages about TOPIC and harvest them one by one."""
    fmt = _parse_format(output_format)

    async def work(services: Services) -> None:
        typer.echo(f"[harvest-topic] Searching for {topic!r} …")
        job = await services.orchestrator.harvest_from_topic(topic, count, fmt)
        _summary("harvest-topic", job, services)

    try:
        _run(work)
    except HarvesterError as exc:
        typer.echo(f"[harvest-topic] {exc}")
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
@app.command("sweep")
def sweep() -> None:
    """Delete every session directory whose expiry has passed."""

    async def work(services: Services) -> list[str]:
        return services.janitor.sweep()

    swept = _run(work)
    if not swept:
        typer.echo("[sweep] Nothing expired.")
        return
    for name in swept:
        typer.echo(f"[sweep] Expired {name}")


@app.command("logs")
def logs() -> None:
    """Print the event log."""
    typer.echo(read_log_file(settings.log_file), nl=False)


@app.command("clear-logs")
def clear_logs() -> None:
    """Truncate the event log."""
    clear_log_file(settings.log_file)
    typer.echo("[clear-logs] Log file cleared successfully.")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
