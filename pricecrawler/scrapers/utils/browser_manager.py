"""Shared Playwright browser for the grocery scrapers.

One Chromium process serves every browser source. Each shop gets its own
context, so cookies and consent banners persist between lookups for the
same shop without leaking into another.
"""

import asyncio
from typing import Dict, Optional

import structlog
from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from pricecrawler.config import settings
from pricecrawler.scrapers.utils.user_agents import get_random_user_agent

logger = structlog.get_logger()

# Only text is read from result pages
_BLOCKED_RESOURCES = "**/*.{png,jpg,jpeg,gif,webp,svg,woff,woff2,ttf}"


class BrowserManager:
    """Owns the browser process and the per-shop contexts."""

    def __init__(self, headless: bool = True):
        self._headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._contexts: Dict[str, BrowserContext] = {}
        self._lock = asyncio.Lock()

    async def _ensure_browser(self) -> Browser:
        async with self._lock:
            if self._browser is None:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(headless=self._headless)
                logger.info("browser_started", headless=self._headless)
            return self._browser

    async def new_page(self, shop_slug: str) -> Page:
        """Open a page in the shop's context, creating it on first use."""
        context = self._contexts.get(shop_slug)
        if context is None:
            browser = await self._ensure_browser()
            context = await browser.new_context(
                user_agent=get_random_user_agent(),
                locale="en-GB",
                timezone_id="Europe/London",
            )
            await context.route(_BLOCKED_RESOURCES, lambda route: route.abort())
            self._contexts[shop_slug] = context
            logger.info("browser_context_created", shop=shop_slug)
        return await context.new_page()

    async def close_context(self, shop_slug: str) -> None:
        context = self._contexts.pop(shop_slug, None)
        if context is not None:
            await context.close()

    async def stop(self) -> None:
        """Close every context, then the browser."""
        async with self._lock:
            for shop_slug in list(self._contexts):
                try:
                    await self._contexts.pop(shop_slug).close()
                except Exception as e:
                    logger.warning("browser_context_close_failed", shop=shop_slug, error=str(e))

            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
            logger.info("browser_stopped")


_browser_manager: Optional[BrowserManager] = None


def get_browser_manager() -> BrowserManager:
    """Get the global BrowserManager singleton."""
    global _browser_manager
    if _browser_manager is None:
        _browser_manager = BrowserManager(headless=settings.BROWSER_HEADLESS)
    return _browser_manager
