"""Run orchestration with a single-flight guard.

RunCoordinator owns the two pieces of process state the service needs:
the "run in progress" flag and the latest completed RunResult. A run opens
a rendering session, walks the listing, validates the collected articles
and stores the result. A second run requested while one is in flight is
rejected with RunConflictError, never queued.
"""

import asyncio
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime
from typing import Callable

from pydantic import Field

from config.settings import GlobalConfig, get_config
from src.browser import PageQuery, open_listing_session
from src.exceptions import RunConflictError
from src.logger import get_logger, run_context
from src.scraper import PageWalker
from src.validator import ArticleSchema, FrozenModel, SequenceValidator, ValidationResult

log = get_logger(__name__)

SessionFactory = Callable[[GlobalConfig], AbstractAsyncContextManager[PageQuery]]


class RunResult(FrozenModel):
    """Immutable outcome of one completed run."""

    articles: tuple[ArticleSchema, ...]
    validation: ValidationResult
    scraped_at: datetime
    total_pages: int = Field(..., ge=1)


class RunCoordinator:
    """Single-flight runner holding the most recent result.

    Attributes:
        config: GlobalConfig for the listing URL and default target count.
        session_factory: Opens a rendering session for one run.
        walker: PageWalker used to collect articles.
        validator: SequenceValidator applied to the collected articles.

    Example:
        coordinator = RunCoordinator()
        result = await coordinator.run(100)
        assert coordinator.latest() is result
    """

    def __init__(
        self,
        config: GlobalConfig | None = None,
        session_factory: SessionFactory | None = None,
        walker: PageWalker | None = None,
        validator: SequenceValidator | None = None,
    ) -> None:
        self.config = config or get_config()
        self.session_factory = session_factory or open_listing_session
        self.walker = walker or PageWalker(self.config)
        self.validator = validator or SequenceValidator(self.config)
        self._lock = asyncio.Lock()
        self._latest: RunResult | None = None
        self._started_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def latest(self) -> RunResult | None:
        """Return the most recent successful result, or None before the first run."""
        return self._latest

    async def run(self, target_count: int | None = None) -> RunResult:
        """Execute one scrape-and-validate run.

        Args:
            target_count: Articles to collect. Defaults to ``config.target_count``.

        Returns:
            The new RunResult, also stored as the latest result.

        Raises:
            RunConflictError: If another run is already in flight.
            ValueError: If ``target_count`` is not positive.
        """
        target = self.config.target_count if target_count is None else target_count
        if target < 1:
            raise ValueError(f"target_count must be positive, got {target}")

        # Checked and acquired with no await in between.
        if self._lock.locked():
            log.warning("Run rejected - another run is in flight", started_at=self._started_at)
            raise RunConflictError(started_at=self._started_at)

        async with self._lock:
            self._started_at = datetime.now(UTC)
            with run_context(self._started_at, target):
                log.info("Run started", base_url=self.config.base_url)
                try:
                    async with self.session_factory(self.config) as page:
                        walk = await self.walker.collect(page, target)

                    validation = self.validator.validate(walk.articles)

                    result = RunResult(
                        articles=walk.articles,
                        validation=validation,
                        scraped_at=datetime.now(UTC),
                        total_pages=walk.pages_visited,
                    )
                except Exception as exc:
                    log.error("Run failed", error_type=type(exc).__name__, error=str(exc))
                    raise
                finally:
                    self._started_at = None

                self._latest = result

                log.info(
                    "Run complete",
                    total_articles=result.validation.total_articles,
                    valid_transitions=result.validation.valid_transitions,
                    issues=len(result.validation.issues),
                    is_valid=result.validation.is_valid,
                    total_pages=result.total_pages,
                )
        return result
