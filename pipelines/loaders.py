"""Page loaders used by the crawler.

A loader turns a URL into final page markup. ``BrowserPageLoader`` renders
the page in headless Chromium so script-built content is present;
``HttpPageLoader`` fetches static HTML. Both raise ``FetchError``.
"""

import asyncio
import logging
from typing import Optional

import aiohttp
from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import FetchError
from .frontier import normalize_url

logger = logging.getLogger(__name__)


class PageLoader:
    """Base class for page loaders.

    Loaders are async context managers: shared resources (browser, HTTP
    session) are opened on entry and released on exit.
    """

    def __init__(self, timeout: float = 30.0, user_agent: str = "DocGround/1.0"):
        self.timeout = timeout
        self.user_agent = user_agent

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        pass

    async def close(self):
        pass

    def _check_url(self, url: str):
        if normalize_url(url) is None:
            raise FetchError(url, "URL is not a crawlable http(s) address", kind="invalid_url")

    async def load(self, url: str) -> str:
        raise NotImplementedError


class BrowserPageLoader(PageLoader):
    """Renders pages with a single shared headless Chromium instance."""

    def __init__(self,
                 timeout: float = 30.0,
                 settle_delay: float = 2.0,
                 user_agent: str = "DocGround/1.0",
                 headless: bool = True):
        """Initialize loader.

        Args:
            timeout: Navigation timeout in seconds
            settle_delay: Extra wait after DOM parse for deferred rendering
            user_agent: User agent for the browser context
            headless: Run Chromium without a window
        """
        super().__init__(timeout=timeout, user_agent=user_agent)
        self.settle_delay = settle_delay
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context = None

    async def start(self):
        if self._browser:
            return
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless)
        self._context = await self._browser.new_context(user_agent=self.user_agent)
        logger.info("Headless browser started")

    async def close(self):
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
            logger.info("Headless browser stopped")

    async def load(self, url: str) -> str:
        self._check_url(url)
        if not self._context:
            await self.start()

        page = None
        try:
            page = await self._context.new_page()
            await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout * 1000)
            if self.settle_delay > 0:
                await page.wait_for_timeout(self.settle_delay * 1000)
            return await page.content()
        except PlaywrightTimeoutError as e:
            raise FetchError(url, f"navigation timed out after {self.timeout}s", kind="timeout") from e
        except PlaywrightError as e:
            raise FetchError(url, str(e).splitlines()[0] if str(e) else repr(e), kind="navigation") from e
        finally:
            if page is not None:
                await self._close_page(page, url)

    async def _close_page(self, page, url: str):
        try:
            await page.close()
        except PlaywrightError as e:
            logger.warning(f"Failed to close page for {url}: {e}")


class HttpPageLoader(PageLoader):
    """Fetches static HTML over a shared aiohttp session."""

    def __init__(self, timeout: float = 30.0, user_agent: str = "DocGround/1.0", max_connections: int = 10):
        super().__init__(timeout=timeout, user_agent=user_agent)
        self.max_connections = max_connections
        self.session: Optional[aiohttp.ClientSession] = None

    async def start(self):
        if self.session:
            return
        connector = aiohttp.TCPConnector(limit=self.max_connections)
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        self.session = aiohttp.ClientSession(
            connector=connector,
            timeout=timeout,
            headers={'User-Agent': self.user_agent}
        )

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    async def load(self, url: str) -> str:
        self._check_url(url)
        if not self.session:
            await self.start()

        try:
            async with self.session.get(url, allow_redirects=True) as response:
                if response.status >= 400:
                    raise FetchError(url, f"HTTP {response.status}", kind="navigation")
                content_type = response.headers.get('content-type', '')
                if content_type and not content_type.startswith('text/'):
                    raise FetchError(url, f"Non-text content type: {content_type}", kind="navigation")
                return await response.text()
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"request timed out after {self.timeout}s", kind="timeout") from e
        except aiohttp.InvalidURL as e:
            raise FetchError(url, str(e), kind="invalid_url") from e
        except aiohttp.ClientError as e:
            raise FetchError(url, str(e) or type(e).__name__, kind="navigation") from e


def create_page_loader(render_js: bool = True,
                       timeout: float = 30.0,
                       settle_delay: float = 2.0,
                       user_agent: str = "DocGround/1.0",
                       max_connections: int = 10) -> PageLoader:
    """Build the loader selected by configuration."""
    if render_js:
        return BrowserPageLoader(timeout=timeout, settle_delay=settle_delay, user_agent=user_agent)
    return HttpPageLoader(timeout=timeout, user_agent=user_agent, max_connections=max_connections)
