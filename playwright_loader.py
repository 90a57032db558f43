#!/usr/bin/env python3
"""
Playwright-based page loader for the product listing.

Owns the headless browser session: opens the listing, accepts the cookie
dialog, expands the "show more" pagination until every product card is in
the DOM, and fetches product images through short-lived pages.
"""

import asyncio
from pathlib import Path
from typing import Optional

from playwright.async_api import async_playwright, Page, Browser, Error as PlaywrightError


class CatalogBrowser:
    """Headless browser session shared by the loader and the materializer."""

    def __init__(self, logger, site_config, headless: bool = True):
        """Initialize the browser session.

        Args:
            logger: Logger instance for progress and error reporting
            site_config: SiteConfig with selectors, viewport and timing
            headless: Launch Chromium without a window
        """
        self.logger = logger
        self.site_config = site_config
        self.headless = headless
        self.browser: Optional[Browser] = None
        self.playwright = None

    async def __aenter__(self):
        """Start Playwright and browser."""
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(
            headless=self.headless,
            args=[
                '--disable-blink-features=AutomationControlled',
                '--disable-dev-shm-usage',
                '--no-sandbox',
            ]
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close browser and Playwright."""
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()

    async def new_page(self) -> Page:
        """Open a fresh page with the configured default timeout."""
        page = await self.browser.new_page()
        page.set_default_timeout(self.site_config.timeout_ms)
        return page

    async def load_catalog(self, target_url: Optional[str] = None) -> Page:
        """Open the listing and expand it until the load-more control is gone.

        Args:
            target_url: Listing URL, defaults to the configured one

        Returns:
            The live page with every product card loaded
        """
        config = self.site_config
        target_url = target_url or config.listing_url

        width, height = config.viewport
        page = await self.browser.new_page(viewport={'width': width, 'height': height})
        page.set_default_timeout(config.timeout_ms)

        self.logger.info(f"Opening listing: {target_url}")
        await page.goto(target_url)

        await page.wait_for_selector(config.cookie_button_selector)
        await page.click(config.cookie_button_selector)
        self.logger.debug("Cookie consent accepted")

        clicks = 0
        while await self._is_load_more_present(page):
            if config.max_load_more_clicks is not None and clicks >= config.max_load_more_clicks:
                self.logger.warning(
                    f"Load-more control still present after {clicks} clicks, "
                    f"stopping expansion"
                )
                break

            await page.click(config.load_more_selector)
            clicks += 1
            self.logger.debug(f"Clicked load-more ({clicks})")
            await asyncio.sleep(config.load_more_delay)

        self.logger.info(f"Listing fully loaded after {clicks} load-more clicks")
        return page

    async def _is_load_more_present(self, page: Page) -> bool:
        return await page.query_selector(self.site_config.load_more_selector) is not None

    async def fetch_image(self, url: str, save_path: Path) -> bool:
        """Save the raw response body of an image URL.

        The bytes are written as-is, whatever the actual image format.

        Args:
            url: Absolute image URL
            save_path: Destination file

        Returns:
            True if a file was written, False if navigation gave no response
        """
        page = await self.new_page()

        try:
            response = await page.goto(url)
            if response is None:
                self.logger.debug(f"No response for image {url}")
                return False

            save_path.write_bytes(await response.body())
            return True
        except PlaywrightError as e:
            self.logger.debug(f"Error fetching image {url}: {str(e)}")
            return False
        finally:
            await page.close()
