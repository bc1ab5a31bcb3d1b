"""Custom exception hierarchy for HN-Sort-Validator.

Domain-specific exceptions carry contextual information (URL, selector,
reason) so failures can be logged and surfaced to API callers without
losing the details needed for debugging.
"""

from datetime import UTC, datetime
from typing import Any


class SortValidatorError(Exception):
    """Base exception for all HN-Sort-Validator errors.

    Attributes:
        message: Human-readable error description.
        context: Optional dictionary with additional debugging information.
        timestamp: UTC timestamp when the exception was raised.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(UTC)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format exception message with context for logging."""
        base = f"[{self.timestamp.isoformat()}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} | Context: {context_str}"
        return base


class ConfigValidationError(SortValidatorError):
    """Raised when a configuration value is unusable at startup."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(
            message=f"Configuration validation failed for '{field}': {reason}",
            context={"field": field, "value": value, "reason": reason},
        )


class BrowserInitializationError(SortValidatorError):
    """Raised when the browser instance fails to launch.

    Common causes include missing Playwright browsers or an unavailable
    browser channel.
    """

    def __init__(self, reason: str, browser_type: str = "chromium") -> None:
        super().__init__(
            message=f"Failed to initialize {browser_type} browser: {reason}",
            context={"browser_type": browser_type, "reason": reason},
        )


class NavigationError(SortValidatorError):
    """Raised when the listing page cannot be opened or a pagination step fails."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(
            message=f"Navigation to '{url}' failed: {reason}",
            context={"url": url, "reason": reason, "status_code": status_code},
        )


class ExtractionError(SortValidatorError):
    """Raised when data extraction for a page element fails."""

    def __init__(self, selector: str, url: str, reason: str) -> None:
        super().__init__(
            message=f"Extraction failed for selector '{selector}': {reason}",
            context={"selector": selector, "url": url, "reason": reason},
        )


class SelectorNotFoundError(ExtractionError):
    """Raised when a required selector never appears on the page.

    Fatal for the run: the listing could not be rendered or its layout
    no longer matches the configured selectors.
    """

    def __init__(self, selector: str, url: str) -> None:
        super().__init__(
            selector=selector,
            url=url,
            reason="Selector never appeared - page did not render or layout changed",
        )


class RunConflictError(SortValidatorError):
    """Raised when a run is requested while another run is in flight."""

    def __init__(self, started_at: datetime | None = None) -> None:
        super().__init__(
            message="Scraping already in progress",
            context={"started_at": started_at.isoformat() if started_at else None},
        )


class ReportGenerationError(SortValidatorError):
    """Raised when an export or dashboard cannot be produced."""

    def __init__(self, report_type: str, reason: str, output_path: str | None = None) -> None:
        super().__init__(
            message=f"Failed to generate {report_type} report: {reason}",
            context={"report_type": report_type, "reason": reason, "output_path": output_path},
        )


class LoggingInitializationError(SortValidatorError):
    """Raised when the logging system fails to initialize.

    Startup-blocking: the application does not proceed without logs.
    """

    def __init__(self, log_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to initialize logging at '{log_dir}': {reason}",
            context={"log_dir": log_dir, "reason": reason},
        )
