from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)
import structlog

from ..exceptions import ConfigurationError
from ..session import PlaywrightSession
from .base_provider import BaseBrowserProvider

logger = structlog.get_logger(__name__)

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")


class LocalBrowserProvider(BaseBrowserProvider):
    """Launches a local browser with Playwright and wraps its page in a session."""

    def __init__(self):
        self.playwright: Playwright | None = None
        self.browser: Browser | None = None

    async def open_session(
        self, browser_type: str = "chromium", headless: bool = True
    ) -> PlaywrightSession:
        """
        Args:
            browser_type: One of 'chromium', 'firefox' or 'webkit'.
            headless: Whether to run the browser without a window.
        """
        if browser_type not in SUPPORTED_BROWSERS:
            raise ConfigurationError(f"Unsupported browser_type: {browser_type}")

        logger.info(
            "Launching local browser.", browser_type=browser_type, headless=headless
        )
        self.playwright = await async_playwright().start()
        launcher = getattr(self.playwright, browser_type)
        self.browser = await launcher.launch(headless=headless)
        context: BrowserContext = await self.browser.new_context()
        page: Page = await context.new_page()

        logger.info("Local browser launched.")
        return PlaywrightSession(page)

    async def close(self):
        if self.browser and self.browser.is_connected():
            logger.info("Closing local browser...")
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()
        self.browser = None
        self.playwright = None
        logger.info("Local provider cleaned up.")
