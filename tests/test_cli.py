"""Tests for the harvester CLI.

Settings are pointed at ``tmp_path``; HTTP traffic is mocked with respx.
"""

import httpx
import pytest
import respx
from typer.testing import CliRunner

from cli.main import app
from harvester.scraper.cache import PageCache
from harvester.storage.artifacts import ArtifactStore

runner = CliRunner()

TEMPLATE = "https://search.example/?q={query}&start={offset}"
_PAGE = "<html><head><title>Example</title></head><body><p>Example   body!!!</p></body></html>"


@pytest.fixture(autouse=True)
def workspace(tmp_path, monkeypatch):
    """Point the CLI at an isolated workspace and log file."""
    ws = tmp_path / "workspace"
    monkeypatch.setattr("harvester.config.settings.workspace_dir", ws)
    monkeypatch.setattr("harvester.config.settings.log_file_override", str(tmp_path / "app.log"))
    monkeypatch.setattr("harvester.config.settings.search_url_template", TEMPLATE)
    return ws


# ---------------------------------------------------------------------------
# scrape
# ---------------------------------------------------------------------------

def test_scrape_prints_normalised_text():
    with respx.mock:
        respx.get("https://example.com/").mock(return_value=httpx.Response(200, text=_PAGE))
        result = runner.invoke(app, ["scrape", "--url", "https://example.com/"])

    assert result.exit_code == 0, result.output
    assert "Title  : Example" in result.output
    assert "Example body" in result.output


def test_scrape_challenge_exits_2():
    with respx.mock:
        respx.get("https://guarded.example/").mock(
            return_value=httpx.Response(403, headers={"server": "cloudflare"})
        )
        result = runner.invoke(app, ["scrape", "--url", "https://guarded.example/"])

    assert result.exit_code == 2
    assert "challenge" in result.output


def test_scrape_http_error_exits_1():
    with respx.mock:
        respx.get("https://example.com/missing").mock(return_value=httpx.Response(404))
        result = runner.invoke(app, ["scrape", "--url", "https://example.com/missing"])

    assert result.exit_code == 1
    assert "Error fetching web page https://example.com/missing" in result.output


# ---------------------------------------------------------------------------
# harvest-list / harvest-topic
# ---------------------------------------------------------------------------

def test_harvest_list_writes_artifacts(tmp_path, workspace):
    urls = tmp_path / "urls.txt"
    urls.write_text("https://example.com/a\n\nhttps://test.org/b\n", encoding="utf-8")

    with respx.mock:
        respx.get("https://example.com/a").mock(return_value=httpx.Response(200, text=_PAGE))
        respx.get("https://test.org/b").mock(return_value=httpx.Response(404))
        result = runner.invoke(app, ["harvest-list", str(urls), "--format", "json"])

    assert result.exit_code == 0, result.output
    assert "Scheduled 2 URL(s)" in result.output
    assert "1 saved, 0 skipped, 1 failed" in result.output
    assert [p.name for p in workspace.glob("*/example.com.json")] == ["example.com.json"]


def test_harvest_list_rejects_unknown_format(tmp_path):
    urls = tmp_path / "urls.txt"
    urls.write_text("https://example.com/a\n", encoding="utf-8")
    result = runner.invoke(app, ["harvest-list", str(urls), "--format", "xml"])
    assert result.exit_code == 1
    assert "Unknown output format" in result.output


def test_harvest_list_rejects_empty_file(tmp_path):
    urls = tmp_path / "urls.txt"
    urls.write_text("\n\n", encoding="utf-8")
    result = runner.invoke(app, ["harvest-list", str(urls)])
    assert result.exit_code == 1
    assert "no URLs" in result.output


def test_harvest_topic(workspace):
    results = '<a href="/url?q=https://rust.example/own&amp;sa=U">own</a>'
    with respx.mock:
        respx.get(TEMPLATE.format(query="rust", offset=0)).mock(
            return_value=httpx.Response(200, text=results)
        )
        respx.get("https://rust.example/own").mock(return_value=httpx.Response(200, text=_PAGE))
        result = runner.invoke(app, ["harvest-topic", "rust", "--count", "1"])

    assert result.exit_code == 0, result.output
    assert "1 saved" in result.output
    [folder] = [p for p in workspace.iterdir() if p.is_dir() and p.name.endswith("_rust")]
    assert (folder / "rust.example.txt").read_text(encoding="utf-8") == "Example body"


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------

def test_sweep_removes_expired_sessions(workspace):
    workspace.mkdir()
    ArtifactStore(workspace, PageCache(), ttl=-1).create_session("old123")

    result = runner.invoke(app, ["sweep"])

    assert result.exit_code == 0
    assert "Expired old123" in result.output
    assert not (workspace / "old123").exists()


def test_sweep_with_nothing_expired():
    result = runner.invoke(app, ["sweep"])
    assert result.exit_code == 0
    assert "Nothing expired." in result.output


def test_logs_and_clear_logs(tmp_path):
    (tmp_path / "app.log").write_text("2024-01-01T00:00:00Z - hello\n", encoding="utf-8")

    result = runner.invoke(app, ["logs"])
    assert result.exit_code == 0
    assert "hello" in result.output

    result = runner.invoke(app, ["clear-logs"])
    assert result.exit_code == 0
    assert (tmp_path / "app.log").read_text(encoding="utf-8") == ""
