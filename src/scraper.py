"""Pagination walk over the newest listing.

PageWalker drives a PageQuery through successive "More" clicks, feeding each
page's articles into a BoundedAccumulator until the target count is reached
or the listing runs out of pages.

The accumulator takes at most ``remaining`` articles from the front of each
batch, so the last page is cut short instead of overshooting the target and
``len(items) <= capacity`` holds after every page.
"""

from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from config.settings import GlobalConfig, get_config
from src.browser import PageQuery
from src.extractor import ArticleExtractor
from src.logger import get_logger
from src.validator import ArticleSchema

log = get_logger(__name__)

T = TypeVar("T")


class BoundedAccumulator(Generic[T]):
    """Append-only buffer that never grows past ``capacity``."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._items: list[T] = []

    @property
    def remaining(self) -> int:
        return self.capacity - len(self._items)

    @property
    def is_full(self) -> bool:
        return self.remaining == 0

    def offer(self, batch: Sequence[T]) -> int:
        """Append as many items from the front of ``batch`` as fit.

        Returns:
            Number of items taken.
        """
        taken = list(batch[: self.remaining])
        self._items.extend(taken)
        return len(taken)

    def items(self) -> tuple[T, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)


class WalkResult(BaseModel):
    """Articles collected by one walk plus pagination metadata.

    Attributes:
        articles: Collected articles in rank order, at most ``target_count``.
        pages_visited: Pagination steps performed (the first page counts as 1).
        target_count: Number of articles requested.
        exhausted: True when the walk stopped because no further page existed.
        items_dropped: Item rows skipped during the walk for lacking a metadata row.
        items_failed: Item rows skipped during the walk because they were malformed.
    """

    model_config = ConfigDict(frozen=True)

    articles: tuple[ArticleSchema, ...]
    pages_visited: int = Field(..., ge=1)
    target_count: int = Field(..., ge=1)
    exhausted: bool = False
    items_dropped: int = Field(default=0, ge=0)
    items_failed: int = Field(default=0, ge=0)


class PageWalker:
    """Collects exactly ``target_count`` articles, or all that exist.

    Example:
        async with open_listing_session(config) as page:
            walk = await PageWalker(config).collect(page, 100)
            print(len(walk.articles), walk.pages_visited)
    """

    def __init__(
        self,
        config: GlobalConfig | None = None,
        extractor: ArticleExtractor | None = None,
    ) -> None:
        self.config = config or get_config()
        self.extractor = extractor or ArticleExtractor(self.config)

    async def collect(self, page: PageQuery, target_count: int) -> WalkResult:
        """Walk the listing until ``target_count`` articles are collected.

        Args:
            page: Rendered listing page, positioned on the first page.
            target_count: Number of articles wanted (positive).

        Returns:
            WalkResult with the collected articles and pages visited.

        Raises:
            SelectorNotFoundError: If a page's items never appear.
            NavigationError: If clicking the "More" control fails.
        """
        accumulator: BoundedAccumulator[ArticleSchema] = BoundedAccumulator(target_count)
        page_number = 1
        exhausted = False
        seen_before = self.extractor.items_seen
        dropped_before = self.extractor.items_dropped
        failed_before = self.extractor.items_failed

        log.info("Starting collection", start_url=page.url, target_count=target_count)

        while True:
            await page.wait_for_selector(self.config.css_selector_item)
            page_articles = await self.extractor.extract(page)
            added = accumulator.offer(page_articles)

            log.info(
                "Page extraction complete",
                page_number=page_number,
                found=len(page_articles),
                added=added,
                total=len(accumulator),
                target_count=target_count,
            )

            if accumulator.is_full:
                break

            if not page_articles and page_number == 1:
                log.warning("First page yielded no articles, stopping")
                break

            if await page.count(self.config.css_selector_more) == 0:
                log.info("No 'More' control found - reached end of listing", page_number=page_number)
                exhausted = True
                break

            log.debug("Loading next page", page_number=page_number + 1)
            await page.click_and_settle(self.config.css_selector_more)
            page_number += 1

        result = WalkResult(
            articles=accumulator.items(),
            pages_visited=page_number,
            target_count=target_count,
            exhausted=exhausted,
            items_dropped=self.extractor.items_dropped - dropped_before,
            items_failed=self.extractor.items_failed - failed_before,
        )

        log.info(
            "Collection complete",
            total=len(result.articles),
            pages_visited=result.pages_visited,
            exhausted=exhausted,
            items_seen=self.extractor.items_seen - seen_before,
            items_dropped=result.items_dropped,
            items_failed=result.items_failed,
        )
        return result
