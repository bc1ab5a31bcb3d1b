"""Export and dashboard generation for run results.

This module turns a RunResult into:
- a CSV export of the collected articles (pandas)
- a JSON export of the full result, validation report included
- a standalone HTML dashboard (Plotly) showing article age against rank,
  with the earlier record of every violating pair highlighted

The ``render_*`` methods return strings for the HTTP export endpoint; the
``generate_*`` methods write timestamped files to ``output_dir``.
"""

import json
from datetime import UTC, datetime
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from config.settings import GlobalConfig, get_config
from src.coordinator import RunResult
from src.exceptions import ReportGenerationError
from src.logger import get_logger
from src.timeparse import normalize_age

log = get_logger(__name__)

CSV_COLUMNS = ["Rank", "Title", "URL", "Author", "Time", "Timestamp", "Score"]


class ReportGenerator:
    """Generates CSV, JSON and HTML reports from a run result.

    Attributes:
        config: GlobalConfig instance for output paths.
        _timestamp: Report generation timestamp for file naming.

    Example:
        reporter = ReportGenerator()
        paths = reporter.generate_all(result)
    """

    def __init__(self, config: GlobalConfig | None = None) -> None:
        self.config = config or get_config()
        self._timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")

    def _ensure_output_dir(self) -> Path:
        """Ensure output directory exists and return path.

        Raises:
            ReportGenerationError: If directory cannot be created.
        """
        try:
            self.config.output_dir.mkdir(parents=True, exist_ok=True)
            return self.config.output_dir
        except OSError as exc:
            raise ReportGenerationError(
                report_type="output_directory",
                reason=f"Cannot create output directory: {exc}",
                output_path=str(self.config.output_dir),
            ) from exc

    def _result_to_dataframe(self, result: RunResult) -> pd.DataFrame:
        """Convert the run's articles to a DataFrame with export column names."""
        records = [
            {
                "Rank": article.rank,
                "Title": article.title,
                "URL": article.url,
                "Author": article.author,
                "Time": article.raw_time,
                "Timestamp": article.timestamp_hint or "",
                "Score": article.score,
            }
            for article in result.articles
        ]
        return pd.DataFrame(records, columns=CSV_COLUMNS)

    def render_csv(self, result: RunResult) -> str:
        """Render the articles as CSV text with a header row."""
        return self._result_to_dataframe(result).to_csv(index=False)

    def render_json(self, result: RunResult) -> str:
        """Render the full result (articles and validation) as JSON text.

        The document is stamped with ``exportedAt``, the time of this export,
        alongside the run's own ``scrapedAt``.
        """
        data = result.model_dump(mode="json", by_alias=True)
        payload = {
            "exportedAt": datetime.now(UTC).isoformat(),
            "scrapedAt": data["scrapedAt"],
            "totalPages": data["totalPages"],
            "validation": data["validation"],
            "articles": data["articles"],
        }
        return json.dumps(payload, indent=2, ensure_ascii=False)

    def _write(self, report_type: str, suffix: str, content: str, filename: str | None) -> Path:
        output_dir = self._ensure_output_dir()
        filename = filename or f"hn_articles_{self._timestamp}"
        output_path = output_dir / f"{filename}.{suffix}"

        try:
            output_path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ReportGenerationError(
                report_type=report_type,
                reason=str(exc),
                output_path=str(output_path),
            ) from exc

        log.info("Export written", report_type=report_type, output_path=str(output_path))
        return output_path

    def generate_csv(self, result: RunResult, filename: str | None = None) -> Path:
        """Write the CSV export and return its path."""
        return self._write("CSV", "csv", self.render_csv(result), filename)

    def generate_json(self, result: RunResult, filename: str | None = None) -> Path:
        """Write the JSON export and return its path."""
        return self._write("JSON", "json", self.render_json(result), filename)

    def generate_dashboard(self, result: RunResult, filename: str | None = None) -> Path:
        """Generate an interactive HTML dashboard with Plotly.

        Creates a standalone HTML file containing:
        - Article age (minutes before the scrape) by rank, violations in red
        - Valid versus violating transitions pie chart

        Args:
            result: RunResult to visualize.
            filename: Optional custom filename (without extension).

        Returns:
            Path to the generated HTML file.

        Raises:
            ReportGenerationError: If there is nothing to plot or writing fails.
        """
        output_dir = self._ensure_output_dir()
        filename = filename or f"hn_dashboard_{self._timestamp}"
        output_path = output_dir / f"{filename}.html"

        if not result.articles:
            raise ReportGenerationError(
                report_type="Dashboard",
                reason="No data available for visualization",
                output_path=str(output_path),
            )

        log.info("Generating HTML dashboard", output_path=str(output_path))

        try:
            df = self._result_to_dataframe(result)
            df["AgeMinutes"] = [
                self._age_minutes(article.raw_time, result.scraped_at)
                for article in result.articles
            ]
            flagged = {issue.position - 1 for issue in result.validation.issues}
            df["Violation"] = [index in flagged for index in range(len(df))]

            fig = make_subplots(
                rows=1,
                cols=2,
                column_widths=[0.7, 0.3],
                subplot_titles=("Article Age by Rank", "Adjacent Transitions"),
                specs=[[{"type": "scatter"}, {"type": "pie"}]],
                horizontal_spacing=0.08,
            )

            fig.add_trace(
                go.Scatter(
                    x=df["Rank"],
                    y=df["AgeMinutes"],
                    mode="lines+markers",
                    name="Age",
                    marker={
                        "color": ["#e74c3c" if bad else "#3498db" for bad in df["Violation"]],
                        "size": [11 if bad else 6 for bad in df["Violation"]],
                    },
                    line={"color": "#bdc3c7"},
                    text=df["Title"].str[:60],
                    customdata=df["Time"],
                    hovertemplate=(
                        "<b>#%{x}</b> %{text}<br>%{customdata}<extra></extra>"
                    ),
                ),
                row=1,
                col=1,
            )

            validation = result.validation
            fig.add_trace(
                go.Pie(
                    labels=["Valid", "Violating"],
                    values=[validation.valid_transitions, len(validation.issues)],
                    marker_colors=["#27ae60", "#e74c3c"],
                    hovertemplate="%{label}: %{value} (%{percent})<extra></extra>",
                ),
                row=1,
                col=2,
            )

            status = "SORTED" if validation.is_valid else f"{len(validation.issues)} ISSUES"
            fig.update_layout(
                title={
                    "text": (
                        f"<b>Newest Listing Sort Validation: {status}</b><br>"
                        f"<sup>Source: {self.config.base_url} | "
                        f"Articles: {validation.total_articles} | "
                        f"Pages: {result.total_pages} | "
                        f"Scraped: {result.scraped_at.strftime('%Y-%m-%d %H:%M UTC')}</sup>"
                    ),
                    "x": 0.5,
                    "xanchor": "center",
                },
                showlegend=False,
                height=600,
                template="plotly_white",
                font={"family": "Arial, sans-serif"},
            )
            fig.update_xaxes(title_text="Rank", row=1, col=1)
            fig.update_yaxes(title_text="Age (minutes)", row=1, col=1)

            fig.write_html(str(output_path), include_plotlyjs=True, full_html=True)

        except Exception as exc:
            raise ReportGenerationError(
                report_type="Dashboard",
                reason=str(exc),
                output_path=str(output_path),
            ) from exc

        log.info(
            "HTML dashboard generated successfully",
            output_path=str(output_path),
            total_items=len(result.articles),
        )
        return output_path

    @staticmethod
    def _age_minutes(raw_time: str, reference: datetime) -> float | None:
        instant = normalize_age(raw_time, reference)
        if instant is None:
            return None
        return (reference - instant).total_seconds() / 60

    def generate_all(self, result: RunResult) -> dict[str, Path]:
        """Write every report type; the dashboard is skipped for empty results."""
        reports = {
            "csv": self.generate_csv(result),
            "json": self.generate_json(result),
        }
        if result.articles:
            reports["dashboard"] = self.generate_dashboard(result)
        return reports
