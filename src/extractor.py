"""Record extraction from a rendered listing page.

ArticleExtractor turns the raw item mappings returned by a PageQuery into
validated ArticleSchema instances. All fallbacks for missing or malformed
fields live here:

    rank    -> position on the page (1-based) when the marker is unparseable
    title   -> "No title"
    url     -> "" when the link has no target
    author  -> "Unknown"
    score   -> 0 when the points marker is missing or unparseable

Items without a metadata row are dropped silently. Any other per-item
failure is logged and the item skipped; one malformed item never fails the
page.
"""

import re
from typing import Any
from urllib.parse import urljoin

from pydantic import ValidationError

from config.settings import GlobalConfig, get_config
from src.browser import PageQuery
from src.exceptions import ExtractionError
from src.logger import get_logger
from src.validator import ArticleSchema

log = get_logger(__name__)

_LEADING_INT = re.compile(r"^\s*(\d+)")

TITLE_PLACEHOLDER = "No title"
AUTHOR_PLACEHOLDER = "Unknown"


def _leading_int(text: str | None) -> int | None:
    """Parse the integer at the start of ``text`` ("12." -> 12, "57 points" -> 57)."""
    if not text:
        return None
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


class ArticleExtractor:
    """Extracts ordered article records from one listing page.

    Attributes:
        config: GlobalConfig providing the selectors and listing URL.
        items_seen: Item rows encountered since construction.
        items_dropped: Rows dropped because they had no metadata row.
        items_failed: Rows skipped because field resolution failed.
    """

    def __init__(self, config: GlobalConfig | None = None) -> None:
        self.config = config or get_config()
        self.items_seen = 0
        self.items_dropped = 0
        self.items_failed = 0

    @property
    def selectors(self) -> dict[str, str]:
        """Selector set passed to the page query."""
        return {
            "item": self.config.css_selector_item,
            "rank": self.config.css_selector_rank,
            "title": self.config.css_selector_title,
            "age": self.config.css_selector_age,
            "user": self.config.css_selector_user,
            "score": self.config.css_selector_score,
        }

    async def extract(self, page: PageQuery) -> list[ArticleSchema]:
        """Extract all articles from the current page, in document order.

        Args:
            page: Rendered listing page.

        Returns:
            Articles that resolved successfully (may be empty).
        """
        raw_items = await page.query_items(self.selectors)
        return self.parse_items(raw_items, page.url)

    def parse_items(self, raw_items: list[dict[str, Any]], page_url: str) -> list[ArticleSchema]:
        """Convert raw item mappings into articles, skipping bad items."""
        articles: list[ArticleSchema] = []

        for index, raw in enumerate(raw_items):
            self.items_seen += 1
            try:
                article = self._parse_item(raw, index, page_url)
            except ValidationError as exc:
                self.items_failed += 1
                log.warning(
                    "Validation failed for item",
                    item_index=index,
                    url=page_url,
                    errors=exc.error_count(),
                    details=str(exc),
                )
                continue
            except Exception as exc:
                self.items_failed += 1
                log.warning(
                    "Item extraction failed",
                    item_index=index,
                    url=page_url,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                continue

            if article is None:
                self.items_dropped += 1
                log.debug("Item has no metadata row, dropped", item_index=index, url=page_url)
                continue

            articles.append(article)

        log.debug(
            "Page items parsed",
            url=page_url,
            found=len(raw_items),
            extracted=len(articles),
        )
        return articles

    def _parse_item(
        self,
        raw: dict[str, Any],
        index: int,
        page_url: str,
    ) -> ArticleSchema | None:
        """Resolve one item mapping into an article.

        Returns:
            The article, or None when the item has no metadata row.

        Raises:
            ExtractionError: If the page query reported an error for this item.
            ValidationError: If the resolved fields violate ArticleSchema.
        """
        if raw.get("error"):
            raise ExtractionError(
                selector=self.config.css_selector_item,
                url=page_url,
                reason=str(raw["error"]),
            )

        rank = _leading_int(raw.get("rank"))
        if not rank:
            rank = index + 1

        title = (raw.get("title") or "").strip() or TITLE_PLACEHOLDER

        href = raw.get("href")
        url = urljoin(page_url, href) if href else ""

        meta = raw.get("meta")
        if meta is None:
            return None

        score = _leading_int(meta.get("score"))

        return ArticleSchema(
            rank=rank,
            title=title,
            url=url,
            author=(meta.get("user") or "").strip() or AUTHOR_PLACEHOLDER,
            raw_time=(meta.get("age_text") or "").strip(),
            timestamp_hint=meta.get("age_title") or None,
            score=score if score is not None else 0,
        )
