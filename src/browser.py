"""Browser orchestration and the page query capability.

This module provides:
- PageQuery: the narrow interface the extraction pipeline talks to. It
  exposes waiting, structured item queries, element counting and a
  click-then-settle step, and never hands raw HTML to its callers.
- PlaywrightPageQuery: PageQuery implemented over a Playwright Page.
- BrowserManager: Playwright browser lifecycle behind an async context manager.
- open_listing_session: one rendering session per run, opened on the
  listing URL and always closed on exit.

Tests substitute a stub PageQuery, so nothing outside this module imports
Playwright page objects directly.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Protocol, Self

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from config.settings import GlobalConfig, get_config
from src.exceptions import (
    BrowserInitializationError,
    NavigationError,
    SelectorNotFoundError,
)
from src.logger import get_logger

log = get_logger(__name__)

# Runs inside the page. Returns one plain mapping per item row, in document
# order. The metadata row is the row immediately following the item row.
_QUERY_ITEMS_JS = """
(sel) => Array.from(document.querySelectorAll(sel.item)).map((item) => {
    try {
        const text = (node) => (node ? node.textContent : null);
        const link = item.querySelector(sel.title);
        const metaRow = item.nextElementSibling;
        let meta = null;
        if (metaRow) {
            const age = metaRow.querySelector(sel.age);
            meta = {
                age_text: text(age),
                age_title: age ? age.getAttribute('title') : null,
                user: text(metaRow.querySelector(sel.user)),
                score: text(metaRow.querySelector(sel.score)),
            };
        }
        return {
            rank: text(item.querySelector(sel.rank)),
            title: text(link),
            href: link ? link.href : null,
            meta: meta,
        };
    } catch (err) {
        return { error: String(err) };
    }
})
"""


class PageQuery(Protocol):
    """Structured access to one rendered listing page."""

    @property
    def url(self) -> str: ...

    async def wait_for_selector(self, selector: str) -> None:
        """Block until ``selector`` is present; raise SelectorNotFoundError otherwise."""
        ...

    async def query_items(self, selectors: dict[str, str]) -> list[dict[str, Any]]:
        """Return one raw mapping per item row matched by ``selectors['item']``."""
        ...

    async def count(self, selector: str) -> int:
        """Return how many elements match ``selector``."""
        ...

    async def click_and_settle(self, selector: str) -> None:
        """Click the first match of ``selector`` and wait for network quiescence."""
        ...


class PlaywrightPageQuery:
    """PageQuery backed by a Playwright Page.

    Attributes:
        page: The underlying Playwright Page.
    """

    def __init__(self, page: Page) -> None:
        self.page = page

    @property
    def url(self) -> str:
        return self.page.url

    async def wait_for_selector(self, selector: str) -> None:
        try:
            await self.page.wait_for_selector(selector)
        except PlaywrightTimeoutError as exc:
            log.error("Timeout waiting for selector", selector=selector, url=self.url)
            raise SelectorNotFoundError(selector=selector, url=self.url) from exc

    async def query_items(self, selectors: dict[str, str]) -> list[dict[str, Any]]:
        return await self.page.evaluate(_QUERY_ITEMS_JS, selectors)

    async def count(self, selector: str) -> int:
        return await self.page.locator(selector).count()

    async def click_and_settle(self, selector: str) -> None:
        try:
            await self.page.locator(selector).first.click()
            await self.page.wait_for_load_state("networkidle")
        except PlaywrightError as exc:
            raise NavigationError(url=self.url, reason=f"Pagination click failed: {exc}") from exc


class BrowserManager:
    """Manages the Playwright browser lifecycle for a single run.

    Attributes:
        config: GlobalConfig instance for runtime configuration.
        _playwright: Playwright instance (initialized on context entry).
        _browser: Chromium browser instance.
        _context: BrowserContext pages are created in.

    Example:
        async with BrowserManager.create() as browser:
            page = await browser.new_page()
            await browser.navigate(page, "https://news.ycombinator.com/newest")
    """

    def __init__(self, config: GlobalConfig) -> None:
        self.config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    @classmethod
    @asynccontextmanager
    async def create(
        cls, config: GlobalConfig | None = None
    ) -> AsyncGenerator[Self, None]:
        """Launch a browser and guarantee its cleanup on exit.

        Args:
            config: Optional GlobalConfig. Uses the cached one if not provided.

        Yields:
            Initialized BrowserManager instance.

        Raises:
            BrowserInitializationError: If browser launch fails.
        """
        if config is None:
            config = get_config()

        instance = cls(config)
        try:
            await instance._initialize()
            yield instance
        finally:
            await instance._cleanup()

    async def _initialize(self) -> None:
        """Start Playwright, launch Chromium and open a browser context.

        Raises:
            BrowserInitializationError: If any initialization step fails.
        """
        log.info(
            "Initializing browser",
            headless=self.config.headless,
            channel=self.config.browser_channel,
        )

        try:
            self._playwright = await async_playwright().start()

            launch_options: dict[str, Any] = {
                "headless": self.config.headless,
                "args": ["--disable-dev-shm-usage", "--no-sandbox"],
            }
            if self.config.browser_channel:
                launch_options["channel"] = self.config.browser_channel

            self._browser = await self._playwright.chromium.launch(**launch_options)
            self._context = await self._browser.new_context(locale="en-US")

            log.info("Browser initialized successfully")

        except Exception as exc:
            await self._cleanup()
            raise BrowserInitializationError(
                reason=str(exc), browser_type="chromium"
            ) from exc

    async def new_page(self) -> Page:
        """Create a new page with the configured default timeout.

        Raises:
            BrowserInitializationError: If the context is not initialized.
        """
        if self._context is None:
            raise BrowserInitializationError(
                reason="Browser context not initialized", browser_type="chromium"
            )

        page = await self._context.new_page()
        page.set_default_timeout(self.config.request_timeout_ms)
        page.set_default_navigation_timeout(self.config.request_timeout_ms)

        log.debug("New page created")
        return page

    async def navigate(
        self,
        page: Page,
        url: str,
        wait_until: str = "networkidle",
    ) -> None:
        """Navigate to ``url`` and wait for the page to settle.

        Args:
            page: Playwright Page instance.
            url: Target URL to navigate to.
            wait_until: Navigation wait condition (load, domcontentloaded, networkidle).

        Raises:
            NavigationError: If navigation fails, times out or returns HTTP >= 400.
        """
        log.debug("Navigating to URL", url=url, wait_until=wait_until)

        try:
            response = await page.goto(url, wait_until=wait_until)
        except PlaywrightTimeoutError as exc:
            raise NavigationError(
                url=url,
                reason=f"Navigation timeout after {self.config.request_timeout_ms}ms",
            ) from exc
        except PlaywrightError as exc:
            raise NavigationError(url=url, reason=str(exc)) from exc

        if response is None:
            raise NavigationError(url=url, reason="No response received")

        if response.status >= 400:
            raise NavigationError(
                url=url,
                reason=f"HTTP {response.status}",
                status_code=response.status,
            )

        log.info("Navigation successful", url=url, status_code=response.status)

    async def _cleanup(self) -> None:
        """Release browser resources in reverse initialization order."""
        if self._context is not None:
            try:
                await self._context.close()
            except Exception as exc:
                log.warning("Error closing context", error=str(exc))
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as exc:
                log.warning("Error closing browser", error=str(exc))
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.warning("Error stopping playwright", error=str(exc))
            self._playwright = None

        log.info("Browser resources cleaned up")


@asynccontextmanager
async def open_listing_session(
    config: GlobalConfig | None = None,
) -> AsyncGenerator[PageQuery, None]:
    """Open a rendering session positioned on the configured listing page.

    The browser and page are closed when the context exits, whether the
    run succeeded or not.

    Yields:
        PlaywrightPageQuery for the loaded listing page.
    """
    config = config or get_config()

    async with BrowserManager.create(config) as browser:
        page = await browser.new_page()
        try:
            await browser.navigate(page, config.base_url)
            yield PlaywrightPageQuery(page)
        finally:
            await page.close()
