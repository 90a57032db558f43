#!/usr/bin/env python3
"""
Tests for the Playwright page loader, driven by an in-process fake browser.
"""

import asyncio
import logging
import tempfile
from pathlib import Path

from playwright.async_api import Error as PlaywrightError

import playwright_loader
from catalog_scraper import SiteConfig
from playwright_loader import CatalogBrowser

COOKIE = '#onetrust-accept-btn-handler'
LOAD_MORE = SiteConfig().load_more_selector


def card_html(name, article, image, href):
    return (
        f'<div class="product"><a href="{href}"><img src="{image}"/>'
        f'<h4>{name}</h4></a>'
        f'<span class="article-number">Article No. {article}</span></div>'
    )


class FakeResponse:
    def __init__(self, body: bytes):
        self._body = body

    async def body(self):
        return self._body


class FakePage:
    """Listing page that reveals one batch of cards per load-more click."""

    def __init__(self, batches, images, endless=False):
        self.batches = list(batches)
        self.images = images
        self.endless = endless
        self.shown = 1
        self.clicks = []
        self.visited = []
        self.viewport = None
        self.timeout = None
        self.closed = False

    def set_default_timeout(self, timeout):
        self.timeout = timeout

    async def goto(self, url):
        self.visited.append(url)
        if url in self.images:
            body = self.images[url]
            if isinstance(body, Exception):
                raise body
            return FakeResponse(body)
        if url.startswith('https://www.gardena.com/int/'):
            return FakeResponse(b'<html></html>')
        return None

    async def wait_for_selector(self, selector):
        assert selector == COOKIE
        return object()

    async def click(self, selector):
        self.clicks.append(selector)
        if selector == LOAD_MORE:
            self.shown += 1

    async def query_selector(self, selector):
        if selector == LOAD_MORE and (self.endless or self.shown < len(self.batches)):
            return object()
        return None

    async def content(self):
        cards = ''.join(''.join(batch) for batch in self.batches[:self.shown])
        return f'<html><body><div id="products-accessories">{cards}</div></body></html>'

    async def close(self):
        self.closed = True


class FakeBrowser:
    """Stands in for playwright's Browser; first page is the listing."""

    def __init__(self, batches, images=None, endless=False):
        self.batches = batches
        self.images = images or {}
        self.endless = endless
        self.pages = []
        self.closed = False

    async def new_page(self, viewport=None):
        page = FakePage(self.batches, self.images, endless=self.endless)
        page.viewport = viewport
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeCatalogBrowser(CatalogBrowser):
    """CatalogBrowser bound to a FakeBrowser instead of Chromium."""

    def __init__(self, logger, site_config, fake_browser):
        super().__init__(logger, site_config)
        self.fake_browser = fake_browser
        self.browser = fake_browser

    async def __aenter__(self):
        self.browser = self.fake_browser
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.browser.close()


class FakePlaywright:
    """Stands in for the object returned by async_playwright().start()."""

    def __init__(self, fake_browser):
        self.fake_browser = fake_browser
        self.chromium = self
        self.launch_kwargs = None
        self.stopped = False

    async def start(self):
        return self

    async def launch(self, **kwargs):
        self.launch_kwargs = kwargs
        return self.fake_browser

    async def stop(self):
        self.stopped = True


def quiet_logger():
    return logging.getLogger("CatalogScraperTest")


def fast_config(**overrides):
    return SiteConfig(load_more_delay=0, **overrides)


def test_consent_clicked_once_and_listing_expanded():
    """Cookie button is clicked once, load-more until the control is gone."""
    batches = [
        [card_html('Rake', '1', '//cdn/r.png', '/r')],
        [card_html('Hoe', '2', '//cdn/h.png', '/h')],
        [card_html('Handle', '3', '', '/x')],
    ]
    fake = FakeBrowser(batches)
    loader = FakeCatalogBrowser(quiet_logger(), fast_config(), fake)

    page = asyncio.run(loader.load_catalog())

    assert page.visited == [SiteConfig().listing_url]
    assert page.clicks.count(COOKIE) == 1
    assert page.clicks[0] == COOKIE
    assert page.clicks.count(LOAD_MORE) == 2
    assert page.viewport == {'width': 1080, 'height': 1024}
    assert page.timeout == 0

    html = asyncio.run(page.content())
    assert html.count('class="product"') == 3


def test_no_load_more_control():
    """A listing that fits one screen is never clicked past the consent."""
    fake = FakeBrowser([[card_html('Rake', '1', '', '/r')]])
    loader = FakeCatalogBrowser(quiet_logger(), fast_config(), fake)

    page = asyncio.run(loader.load_catalog())

    assert page.clicks == [COOKIE]


def test_expansion_is_bounded():
    """A control that never disappears stops at max_load_more_clicks."""
    fake = FakeBrowser([[card_html('Rake', '1', '', '/r')]], endless=True)
    loader = FakeCatalogBrowser(quiet_logger(), fast_config(max_load_more_clicks=7), fake)

    page = asyncio.run(loader.load_catalog())

    assert page.clicks.count(LOAD_MORE) == 7


def test_fetch_image_writes_raw_bytes():
    """The response body is written unchanged and the page is closed."""
    body = b'\xff\xd8\xff\xe0 not really a png'
    fake = FakeBrowser([[]], images={'https://cdn/r.jpg': body})
    loader = FakeCatalogBrowser(quiet_logger(), fast_config(), fake)

    with tempfile.TemporaryDirectory() as tmp:
        target = Path(tmp) / 'image.png'
        saved = asyncio.run(loader.fetch_image('https://cdn/r.jpg', target))

        assert saved
        assert target.read_bytes() == body
        assert fake.pages[-1].closed


def test_fetch_image_without_response():
    """No response means no file and no error."""
    fake = FakeBrowser([[]], images={'https://cdn/broken.jpg': PlaywrightError('net::ERR_FAILED')})
    loader = FakeCatalogBrowser(quiet_logger(), fast_config(), fake)

    with tempfile.TemporaryDirectory() as tmp:
        missing = Path(tmp) / 'missing.png'
        broken = Path(tmp) / 'broken.png'

        assert not asyncio.run(loader.fetch_image('https://cdn/unknown.jpg', missing))
        assert not asyncio.run(loader.fetch_image('https://cdn/broken.jpg', broken))
        assert not missing.exists()
        assert not broken.exists()
        assert all(page.closed for page in fake.pages)


def test_session_closed_when_body_fails():
    """The real context manager closes browser and Playwright on errors."""
    fake = FakeBrowser([[card_html('Rake', '1', '', '/r')]])
    fake_playwright = FakePlaywright(fake)

    async def run():
        async with CatalogBrowser(quiet_logger(), fast_config()) as session:
            assert session.browser is fake
            await session.load_catalog()
            raise RuntimeError('stage failed')

    original = playwright_loader.async_playwright
    playwright_loader.async_playwright = lambda: fake_playwright
    try:
        asyncio.run(run())
    except RuntimeError:
        pass
    else:
        raise AssertionError("RuntimeError was not raised")
    finally:
        playwright_loader.async_playwright = original

    assert fake.closed
    assert fake_playwright.stopped
    assert fake_playwright.launch_kwargs['headless'] is True


def main():
    """Run all tests."""
    print("=" * 60)
    print("Page Loader Tests")
    print("=" * 60)

    tests = [
        test_consent_clicked_once_and_listing_expanded,
        test_no_load_more_control,
        test_expansion_is_bounded,
        test_fetch_image_writes_raw_bytes,
        test_fetch_image_without_response,
        test_session_closed_when_body_fails,
    ]

    try:
        for test in tests:
            test()
            print(f"✓ {test.__name__}")
    except AssertionError as e:
        print(f"\n✗ Test failed: {e}")
        return 1

    print("\nALL TESTS PASSED! ✓")
    return 0


if __name__ == "__main__":
    exit(main())
