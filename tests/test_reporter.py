"""Tests for CSV/JSON exports and the Plotly dashboard."""

import json
from datetime import UTC, datetime

import pandas as pd
import pytest

from config.settings import GlobalConfig
from src.coordinator import RunResult
from src.exceptions import ReportGenerationError
from src.reporter import CSV_COLUMNS, ReportGenerator
from src.validator import SequenceValidator
from tests.conftest import REFERENCE


@pytest.fixture
def run_result(mock_config: GlobalConfig, make_article) -> RunResult:
    articles = (
        make_article(rank=1, raw_time="1 hour ago", title="Older story, ranked first"),
        make_article(rank=2, raw_time="5 minutes ago", title='Quote "and" comma, story'),
        make_article(rank=3, raw_time="2 hours ago"),
    )
    return RunResult(
        articles=articles,
        validation=SequenceValidator(mock_config).validate(articles, REFERENCE),
        scraped_at=REFERENCE,
        total_pages=1,
    )


@pytest.fixture
def empty_result() -> RunResult:
    return RunResult(
        articles=(),
        validation=SequenceValidator().validate([]),
        scraped_at=datetime(2026, 1, 1, tzinfo=UTC),
        total_pages=1,
    )


class TestExports:
    def test_csv_columns_and_rows(self, mock_config: GlobalConfig, run_result: RunResult) -> None:
        path = ReportGenerator(mock_config).generate_csv(run_result)

        df = pd.read_csv(path)
        assert list(df.columns) == CSV_COLUMNS
        assert df["Rank"].tolist() == [1, 2, 3]
        assert df.loc[1, "Title"] == 'Quote "and" comma, story'

    def test_json_contains_validation(self, mock_config: GlobalConfig, run_result: RunResult) -> None:
        path = ReportGenerator(mock_config).generate_json(run_result)

        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["totalPages"] == 1
        assert payload["validation"]["isValid"] is False
        assert payload["validation"]["issues"][0]["position"] == 1

    def test_json_stamped_with_export_time(
        self, mock_config: GlobalConfig, run_result: RunResult
    ) -> None:
        before = datetime.now(UTC)

        payload = json.loads(ReportGenerator(mock_config).render_json(run_result))

        assert list(payload) == ["exportedAt", "scrapedAt", "totalPages", "validation", "articles"]
        assert datetime.fromisoformat(payload["exportedAt"]) >= before
        assert datetime.fromisoformat(payload["scrapedAt"]) == REFERENCE
        assert payload["articles"][0]["rawTime"] == "1 hour ago"

    def test_files_written_to_output_dir(self, mock_config: GlobalConfig, run_result: RunResult) -> None:
        path = ReportGenerator(mock_config).generate_csv(run_result, filename="custom")

        assert path == mock_config.output_dir / "custom.csv"


class TestDashboard:
    def test_dashboard_written(self, mock_config: GlobalConfig, run_result: RunResult) -> None:
        path = ReportGenerator(mock_config).generate_dashboard(run_result)

        assert path.suffix == ".html"
        html = path.read_text(encoding="utf-8")
        assert "plotly" in html.lower()
        assert "Article Age by Rank" in html

    def test_dashboard_rejects_empty_result(self, mock_config: GlobalConfig, empty_result: RunResult) -> None:
        with pytest.raises(ReportGenerationError):
            ReportGenerator(mock_config).generate_dashboard(empty_result)

    def test_generate_all_skips_dashboard_when_empty(
        self, mock_config: GlobalConfig, empty_result: RunResult
    ) -> None:
        reports = ReportGenerator(mock_config).generate_all(empty_result)

        assert set(reports) == {"csv", "json"}

    def test_generate_all(self, mock_config: GlobalConfig, run_result: RunResult) -> None:
        reports = ReportGenerator(mock_config).generate_all(run_result)

        assert set(reports) == {"csv", "json", "dashboard"}
        assert all(path.exists() for path in reports.values())
