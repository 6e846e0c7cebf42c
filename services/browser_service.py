from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from lib.config import Settings
from lib.logger import setup_logger

logger = setup_logger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-default-browser-check",
]


@dataclass
class BrowserSession:
    """One browser, one context, one page. Owned by a single run."""

    context: BrowserContext
    page: Page
    browser: Browser | None = None


@asynccontextmanager
async def open_browser_session(settings: Settings) -> AsyncIterator[BrowserSession]:
    """
    Launch a fresh Chromium session and close it on every exit path.

    Args:
        settings: Runtime settings (headless flag, user agent, timezone)

    Yields:
        BrowserSession with a new isolated context and page
    """
    async with async_playwright() as playwright:
        logger.info(f"Launching Chromium (headless={settings.headless})")
        browser = await playwright.chromium.launch(headless=settings.headless, args=BROWSER_ARGS)
        try:
            context = await browser.new_context(
                user_agent=settings.user_agent,
                viewport={"width": 1920, "height": 1080},
                locale="en-US",
                timezone_id=settings.timezone_id,
                ignore_https_errors=True,
            )
            page = await context.new_page()
            yield BrowserSession(context=context, page=page, browser=browser)
        finally:
            await browser.close()
            logger.info("Browser session closed")
