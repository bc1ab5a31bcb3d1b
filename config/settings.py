"""Global configuration management using pydantic-settings.

Values are loaded from environment variables (or a local .env file) with
strict type validation. ``get_config()`` caches a single instance so every
component sees the same settings for the lifetime of the process.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GlobalConfig(BaseSettings):
    """Centralized configuration with environment variable binding.

    Attributes:
        app_name: Application identifier for logging.
        environment: Deployment environment.
        debug: Enable verbose tracebacks in the console sink.
        headless: Run the browser without a visible window.
        browser_channel: Optional Chromium channel (e.g. "chrome" for system Chrome).
        request_timeout_ms: Default Playwright timeout for waits and navigation.
        log_level: Minimum log level for output filtering.
        log_dir: Directory path for structured JSON log files.
        log_rotation: Log file rotation interval.
        log_retention: Log file retention period.
        base_url: Listing page the run starts from.
        target_count: Number of articles a run collects by default.
        title_snippet_length: Characters of title kept in validation issues.
        api_host: Bind address for the HTTP service.
        api_port: Bind port for the HTTP service.
        cors_origins: Origins allowed to call the HTTP service.
        output_dir: Directory for exported reports.
        css_selector_item: Selector matching one item container row.
        css_selector_rank: Rank marker inside an item row.
        css_selector_title: Primary link inside an item row.
        css_selector_age: Age indicator inside the metadata row.
        css_selector_user: User-name marker inside the metadata row.
        css_selector_score: Points marker inside the metadata row.
        css_selector_more: Pagination "More" control.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Metadata
    app_name: str = Field(default="HN-Sort-Validator", description="Application identifier")
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Browser Configuration
    headless: bool = Field(default=True, description="Run browser in headless mode")
    browser_channel: str | None = Field(
        default=None, description="Chromium distribution channel (None = bundled)"
    )
    request_timeout_ms: int = Field(
        default=30000, ge=1000, le=300000, description="Renderer timeout in milliseconds"
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )
    log_dir: Path = Field(default=Path("logs"), description="Log output directory")
    log_rotation: str = Field(default="1 week", description="Log rotation interval")
    log_retention: str = Field(default="1 month", description="Log retention period")

    # Target Configuration
    base_url: str = Field(
        default="https://news.ycombinator.com/newest",
        description="Listing page to validate",
    )
    target_count: int = Field(
        default=100, ge=1, le=1000, description="Articles collected per run"
    )
    title_snippet_length: int = Field(
        default=50, ge=1, description="Title characters kept in validation issues"
    )

    # Service Configuration
    api_host: str = Field(default="127.0.0.1", description="HTTP service bind address")
    api_port: int = Field(default=3001, ge=1, le=65535, description="HTTP service port")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Origins allowed by the CORS middleware",
    )

    # Output Configuration
    output_dir: Path = Field(default=Path("output"), description="Report output directory")

    # CSS Selectors (Target: news.ycombinator.com)
    css_selector_item: str = Field(default=".athing", description="Item row selector")
    css_selector_rank: str = Field(default=".rank", description="Rank marker selector")
    css_selector_title: str = Field(
        default=".titleline > a", description="Primary link selector"
    )
    css_selector_age: str = Field(default=".age", description="Age indicator selector")
    css_selector_user: str = Field(default=".hnuser", description="Author selector")
    css_selector_score: str = Field(default=".score", description="Points selector")
    css_selector_more: str = Field(
        default='a[href*="newest"]:has-text("More")',
        description="Pagination more-link selector",
    )

    @field_validator("log_dir", "output_dir", mode="before")
    @classmethod
    def ensure_path(cls, value: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(value) if isinstance(value, str) else value

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """Reject listing URLs that are not http(s)."""
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got '{value}'")
        return value


@lru_cache(maxsize=1)
def get_config() -> GlobalConfig:
    """Retrieve the cached GlobalConfig instance.

    Returns:
        GlobalConfig: The validated configuration instance.
    """
    return GlobalConfig()
