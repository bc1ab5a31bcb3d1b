"""Tests for the HTTP service boundary.

Runs the FastAPI app in-process with TestClient. The coordinator uses a
StubPage session, so no browser is launched.
"""

import csv
import io
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from config.settings import GlobalConfig
from src.api import create_app
from src.coordinator import RunCoordinator
from src.exceptions import NavigationError, RunConflictError
from tests.conftest import StubPage, StubSessionFactory, paged_source


@pytest.fixture
def stub_page() -> StubPage:
    return StubPage(paged_source(per_page=30))


@pytest.fixture
def client(mock_config: GlobalConfig, stub_page: StubPage) -> TestClient:
    coordinator = RunCoordinator(mock_config, session_factory=StubSessionFactory(stub_page))
    return TestClient(create_app(mock_config, coordinator))


class TestBeforeFirstRun:
    def test_results_not_found(self, client: TestClient) -> None:
        response = client.get("/api/results")

        assert response.status_code == 404
        assert response.json() == {"error": "No results available. Run scraping first."}

    def test_status_reports_empty_state(self, client: TestClient) -> None:
        assert client.get("/api/status").json() == {
            "scrapingInProgress": False,
            "hasResults": False,
        }

    def test_export_not_found(self, client: TestClient) -> None:
        assert client.get("/api/export/csv").status_code == 404

    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "ok"}


class TestScrape:
    def test_scrape_returns_run_result(self, client: TestClient) -> None:
        response = client.post("/api/scrape", params={"target": 35})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert len(data["articles"]) == 35
        assert data["totalPages"] == 2
        assert data["validation"]["totalArticles"] == 35
        assert data["validation"]["isValid"] is True
        assert "scrapedAt" in data
        assert set(data["articles"][0]) == {
            "rank", "title", "url", "author", "rawTime", "timestampHint", "score",
        }

    def test_results_return_latest_run(self, client: TestClient) -> None:
        scraped = client.post("/api/scrape", params={"target": 3}).json()["data"]

        response = client.get("/api/results")

        assert response.status_code == 200
        assert response.json()["data"] == scraped
        assert client.get("/api/status").json()["hasResults"] is True

    def test_invalid_target_rejected(self, client: TestClient) -> None:
        assert client.post("/api/scrape", params={"target": 0}).status_code == 422

    def test_run_failure_is_500_with_message(
        self, client: TestClient, stub_page: StubPage
    ) -> None:
        stub_page.fail_wait = True

        response = client.post("/api/scrape", params={"target": 3})

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert "Selector never appeared" in body["error"]
        assert client.get("/api/results").status_code == 404

    def test_conflict_is_409(self, mock_config: GlobalConfig) -> None:
        coordinator = MagicMock(spec=RunCoordinator)
        coordinator.run = AsyncMock(side_effect=RunConflictError())
        client = TestClient(create_app(mock_config, coordinator))

        response = client.post("/api/scrape")

        assert response.status_code == 409
        assert response.json() == {"error": "Scraping already in progress"}

    def test_navigation_error_message_surfaced(self, mock_config: GlobalConfig) -> None:
        coordinator = MagicMock(spec=RunCoordinator)
        coordinator.run = AsyncMock(
            side_effect=NavigationError(url="https://test.example.com/newest", reason="HTTP 503")
        )
        client = TestClient(create_app(mock_config, coordinator))

        response = client.post("/api/scrape")

        assert response.status_code == 500
        assert "HTTP 503" in response.json()["error"]


class TestExport:
    def test_csv_export(self, client: TestClient) -> None:
        client.post("/api/scrape", params={"target": 3})

        response = client.get("/api/export/csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        rows = list(csv.DictReader(io.StringIO(response.text)))
        assert [row["Rank"] for row in rows] == ["1", "2", "3"]
        assert rows[0]["Author"] == "alice"

    def test_json_export(self, client: TestClient) -> None:
        client.post("/api/scrape", params={"target": 3})

        response = client.get("/api/export/json")

        payload = json.loads(response.text)
        assert len(payload["articles"]) == 3
        assert payload["validation"]["isValid"] is True

    def test_unknown_format_rejected(self, client: TestClient) -> None:
        client.post("/api/scrape", params={"target": 3})

        assert client.get("/api/export/xml").status_code == 422
