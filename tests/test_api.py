"""Tests for the HTTP API.

Each test gets an app bound to a temporary workspace via the FastAPI
TestClient.  The shared fetcher's ``fetch`` is replaced by the in-memory
``FakeFetcher`` so no network calls are made.
"""

from __future__ import annotations

import io
import time
import zipfile
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from harvester.api.app import create_app
from harvester.config import Settings
from harvester.scraper.models import CHALLENGE

TEMPLATE = "https://search.example/?q={query}&start={offset}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def cfg(tmp_path) -> Settings:
    return Settings(
        workspace_dir=tmp_path / "workspace",
        log_file_override=str(tmp_path / "logs" / "app.log"),
        search_url_template=TEMPLATE,
        janitor_interval=3600,
    )


@pytest.fixture()
def fake(make_fetcher, make_page):
    return make_fetcher({
        "https://example.com/a": make_page("Example", "example text"),
        "https://test.org/b": make_page("Test", "test text"),
        "https://guarded.example/": CHALLENGE,
        TEMPLATE.format(query="rust+ownership", offset=0): (
            '<a href="/url?q=https://rust.example/own&amp;sa=U">r</a>'
        ),
        "https://rust.example/own": make_page("Ownership", "borrow checker"),
    })


@pytest.fixture()
def client(cfg, fake):
    app = create_app(cfg)
    with TestClient(app) as c:
        services = c.app.state.services
        with patch.object(services.fetcher, "fetch", new=fake.fetch):
            yield c


def _upload(client, content: bytes, filename: str = "urls.txt", output_format: str = "text"):
    return client.post(
        "/harvest/file",
        files={"file": (filename, io.BytesIO(content), "text/plain")},
        data={"output_format": output_format},
    )


def _wait_for_job(client, job_id: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        data = client.get(f"/jobs/{job_id}").json()
        if data["status"] == "completed" or time.monotonic() > deadline:
            return data
        time.sleep(0.01)


# ---------------------------------------------------------------------------
# POST /harvest/file
# ---------------------------------------------------------------------------

class TestHarvestFile:
    def test_schedules_every_url(self, client, cfg) -> None:
        resp = _upload(client, b"https://example.com/a\n\nhttps://test.org/b\n")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "success"
        assert data["scheduled_count"] == 2
        assert data["truncated"] is False
        assert data["download_url"] == f"/download/{data['job_id']}"
        assert "will be deleted after 10 minutes" in data["notice"]

        job = _wait_for_job(client, data["job_id"])
        assert job["status"] == "completed"
        assert job["saved"] == 2
        folder = cfg.workspace_dir / data["job_id"]
        assert sorted(p.name for p in folder.iterdir()) == ["example.com.txt", "test.org.txt"]
        assert (folder / "example.com.txt").read_text(encoding="utf-8") == "example text"

    def test_structured_alias(self, client, cfg) -> None:
        data = _upload(client, b"https://example.com/a", output_format="json").json()
        _wait_for_job(client, data["job_id"])
        assert (cfg.workspace_dir / data["job_id"] / "example.com.json").is_file()

    def test_challenge_is_skipped(self, client) -> None:
        data = _upload(client, b"https://guarded.example/\nhttps://example.com/a").json()
        job = _wait_for_job(client, data["job_id"])
        assert (job["saved"], job["skipped"]) == (1, 1)

    def test_too_many_urls_are_truncated(self, client) -> None:
        body = "\n".join(f"https://h{i}.example/" for i in range(60)).encode()
        resp = _upload(client, body)
        assert resp.status_code == 200
        data = resp.json()
        assert data["scheduled_count"] == 50
        assert data["truncated"] is True
        assert data["message"].startswith("Only 50 URLs are allowed")

    def test_missing_file(self, client) -> None:
        resp = client.post("/harvest/file", data={"output_format": "text"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid file format. Please upload a .txt file."

    def test_wrong_extension(self, client) -> None:
        assert _upload(client, b"https://example.com/a", filename="urls.csv").status_code == 400

    def test_empty_file(self, client) -> None:
        assert _upload(client, b"  \n\n").status_code == 400

    def test_unknown_output_format(self, client) -> None:
        assert _upload(client, b"https://example.com/a", output_format="xml").status_code == 400


# ---------------------------------------------------------------------------
# POST /harvest/topic
# ---------------------------------------------------------------------------

class TestHarvestTopic:
    def test_harvests_before_responding(self, client, cfg) -> None:
        resp = client.post(
            "/harvest/topic",
            json={"topic": "rust ownership", "output_format": "text", "desired_count": 1},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["saved_count"] == 1
        assert data["download_url"].endswith("_rust_ownership")
        folder_name = data["download_url"].rsplit("/", 1)[-1]
        assert (cfg.workspace_dir / folder_name / "rust.example.txt").is_file()

    def test_job_is_visible_by_folder_name(self, client) -> None:
        data = client.post("/harvest/topic", json={"topic": "rust ownership", "desired_count": 1}).json()
        folder_name = data["download_url"].rsplit("/", 1)[-1]
        job = client.get(f"/jobs/{folder_name}").json()
        assert job["id"] == data["job_id"]
        assert job["mode"] == "topic"

    def test_blank_topic_rejected(self, client) -> None:
        resp = client.post("/harvest/topic", json={"topic": "   ", "desired_count": 1})
        assert resp.status_code == 400

    def test_unknown_format_rejected(self, client) -> None:
        resp = client.post("/harvest/topic", json={"topic": "go", "output_format": "xml"})
        assert resp.status_code == 400

    def test_non_positive_count_rejected(self, client) -> None:
        resp = client.post("/harvest/topic", json={"topic": "go", "desired_count": 0})
        assert resp.status_code == 422

    def test_unexpected_failure_is_500(self, client) -> None:
        orchestrator = client.app.state.services.orchestrator
        with patch.object(orchestrator, "harvest_from_topic", new=AsyncMock(side_effect=RuntimeError("boom"))):
            resp = client.post("/harvest/topic", json={"topic": "go", "desired_count": 1})
        assert resp.status_code == 500
        assert resp.json()["detail"] == "An error occurred. Please check the logs for more details."


# ---------------------------------------------------------------------------
# GET /download/{job_id}
# ---------------------------------------------------------------------------

class TestDownload:
    def test_streams_zip_and_cleans_up(self, client, cfg) -> None:
        folder = cfg.workspace_dir / "abc123"
        folder.mkdir()
        (folder / "example.com.txt").write_text("example text", encoding="utf-8")

        resp = client.get("/download/abc123")

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/zip"
        assert 'filename="abc123.zip"' in resp.headers["content-disposition"]
        with zipfile.ZipFile(io.BytesIO(resp.content)) as zf:
            assert zf.namelist() == ["example.com.txt"]
            assert zf.read("example.com.txt") == b"example text"
        assert not folder.exists()
        assert not (cfg.workspace_dir / "abc123.zip").exists()

    def test_missing_folder(self, client, cfg) -> None:
        resp = client.get("/download/nonexistent")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Data folder not found."
        assert not (cfg.workspace_dir / "nonexistent.zip").exists()

    def test_second_download_is_404(self, client, cfg) -> None:
        (cfg.workspace_dir / "abc123").mkdir()
        assert client.get("/download/abc123").status_code == 200
        assert client.get("/download/abc123").status_code == 404


# ---------------------------------------------------------------------------
# GET /jobs/{job_id}
# ---------------------------------------------------------------------------

def test_unknown_job_is_404(client) -> None:
    assert client.get("/jobs/nope").status_code == 404


# ---------------------------------------------------------------------------
# /logs
# ---------------------------------------------------------------------------

class TestLogs:
    def test_read_returns_log_lines(self, client) -> None:
        resp = client.get("/logs")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert "Harvester started" in resp.text

    def test_harvest_events_are_logged(self, client) -> None:
        data = _upload(client, b"https://example.com/a").json()
        _wait_for_job(client, data["job_id"])
        assert f"Job {data['job_id']} saved example.com.txt" in client.get("/logs").text

    def test_clear(self, client) -> None:
        resp = client.post("/logs/clear")
        assert resp.status_code == 200
        assert resp.text == "Log file cleared successfully."
        assert "Harvester started" not in client.get("/logs").text

    def test_read_failure_is_500(self, client) -> None:
        with patch("harvester.api.routers.logs.read_log_file", side_effect=OSError("denied")):
            assert client.get("/logs").status_code == 500
