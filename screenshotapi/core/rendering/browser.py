"""
Browser Session
===============

One Playwright Chromium instance shared process-wide. Each request borrows its
own page, which is always closed when the borrowing scope exits.
"""

from typing import Optional, Any, AsyncGenerator
from contextlib import asynccontextmanager

from playwright.async_api import async_playwright, Browser, Page, Playwright

from screenshotapi.config.logging import get_logger
from screenshotapi.config.settings import Settings, get_settings

logger = get_logger(__name__)


class BrowserSessionError(Exception):
    """Exception raised when the shared browser session is unusable."""

    pass


class BrowserSession:
    """Shared browser session handing out independently scoped pages."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.browser: Optional[Browser] = None
        self._playwright: Optional[Playwright] = None
        self.logger: Any = logger.bind(component="browser_session")  # structlog.BoundLoggerBase

    @property
    def is_connected(self) -> bool:
        return self.browser is not None and self.browser.is_connected()

    async def initialize(self) -> None:
        """Start Playwright and launch the shared browser."""
        try:
            self._playwright = await async_playwright().start()
            self.browser = await self._playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                args=self.settings.browser_args,
            )
            self.logger.info("Browser session started", headless=self.settings.playwright_headless)
        except Exception as e:
            self.logger.error("Failed to start browser session", error=str(e))
            raise BrowserSessionError(f"Browser session initialization failed: {e}")

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self.browser:
            await self.browser.close()
            self.browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self.logger.info("Browser session closed")

    @asynccontextmanager
    async def new_page(self) -> AsyncGenerator[Page, None]:
        """Borrow a fresh page; it is closed on every exit path."""
        if not self.browser:
            raise BrowserSessionError("Browser session not initialized")

        page = await self.browser.new_page()
        try:
            yield page
        finally:
            await page.close()


# Global browser session instance
_global_browser_session: Optional[BrowserSession] = None


async def initialize_browser_session() -> BrowserSession:
    """Initialize the process-wide browser session."""
    global _global_browser_session
    if _global_browser_session is None:
        session = BrowserSession()
        await session.initialize()
        _global_browser_session = session
    return _global_browser_session


async def close_browser_session() -> None:
    """Close the process-wide browser session."""
    global _global_browser_session
    if _global_browser_session:
        await _global_browser_session.close()
        _global_browser_session = None
