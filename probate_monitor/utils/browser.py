"""Playwright-backed page handles.

The crawler and extractor only talk to ``PageHandle``; one ``BrowserSession``
(one browser context) is owned by each site crawl and never shared.
"""
from typing import List, Optional

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from probate_monitor.core.config import settings
from probate_monitor.core.errors import NavigationFailure

BROWSER_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-blink-features=AutomationControlled',
    '--no-first-run',
]


class PageHandle:
    """Thin async wrapper over a playwright Page with explicit timeouts"""

    def __init__(self, page, navigation_timeout_ms: int = None, element_timeout_ms: int = None):
        self._page = page
        self.navigation_timeout_ms = navigation_timeout_ms or settings.NAVIGATION_TIMEOUT_MS
        self.element_timeout_ms = element_timeout_ms or settings.ELEMENT_TIMEOUT_MS
    
    @property
    def url(self) -> str:
        return self._page.url
    
    async def goto(self, url: str, wait_for: Optional[str] = None) -> None:
        """Load ``url``; timeouts and browser errors surface as NavigationFailure"""
        try:
            await self._page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
            if wait_for:
                await self._page.wait_for_selector(wait_for, timeout=self.element_timeout_ms)
        except (PlaywrightTimeoutError, PlaywrightError) as e:
            raise NavigationFailure(f"Could not load {url}: {e}") from e
    
    async def content(self) -> str:
        return await self._page.content()
    
    async def is_visible(self, selector: str, timeout_ms: int = 2000) -> bool:
        try:
            await self._page.locator(selector).first.wait_for(state="visible", timeout=timeout_ms)
            return True
        except (PlaywrightTimeoutError, PlaywrightError):
            return False
    
    async def wait_for(self, selector: str, timeout_ms: int = None) -> bool:
        try:
            await self._page.wait_for_selector(selector, timeout=timeout_ms or self.element_timeout_ms)
            return True
        except (PlaywrightTimeoutError, PlaywrightError):
            return False
    
    async def fill(self, selector: str, value: str) -> None:
        try:
            await self._page.locator(selector).first.fill(value, timeout=self.element_timeout_ms)
        except (PlaywrightTimeoutError, PlaywrightError) as e:
            raise NavigationFailure(f"Could not fill {selector}: {e}") from e
    
    async def click(self, selector: str) -> None:
        try:
            await self._page.locator(selector).first.click(timeout=self.element_timeout_ms)
        except (PlaywrightTimeoutError, PlaywrightError) as e:
            raise NavigationFailure(f"Could not click {selector}: {e}") from e
    
    async def press(self, key: str) -> None:
        await self._page.keyboard.press(key)
    
    async def wait_for_results(self) -> None:
        """Wait for the page to settle after a form post"""
        try:
            await self._page.wait_for_load_state("networkidle", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError:
            logger.info("Network idle timeout, continuing with current content")
    
    async def pdf(self, path: str) -> None:
        await self._page.pdf(path=path, format="A4")
    
    async def reset(self) -> None:
        await self._page.goto("about:blank", timeout=5000)
    
    async def close(self) -> None:
        await self._page.close()


class BrowserSession:
    """One browser + context per site crawl, with a small pool of reusable pages"""

    def __init__(self, headless: bool = None, user_agent: str = None, max_pooled_pages: int = 3):
        self.headless = settings.BROWSER_HEADLESS if headless is None else headless
        self.user_agent = user_agent or settings.BROWSER_USER_AGENT
        self.max_pooled_pages = max_pooled_pages
        self.playwright = None
        self.browser = None
        self.context = None
        self._available: List[PageHandle] = []
    
    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self
    
    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
    
    async def start(self) -> None:
        if self.browser:
            return
        logger.info(f"Launching chromium (headless={self.headless})")
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(headless=self.headless, args=BROWSER_ARGS)
        self.context = await self.browser.new_context(
            user_agent=self.user_agent,
            viewport={"width": 1920, "height": 1080},
            extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
        )
    
    async def new_page(self) -> PageHandle:
        if not self.context:
            await self.start()
        return PageHandle(await self.context.new_page())
    
    async def acquire_page(self) -> PageHandle:
        if self._available:
            return self._available.pop()
        return await self.new_page()
    
    async def release_page(self, page: PageHandle) -> None:
        if len(self._available) >= self.max_pooled_pages:
            await page.close()
            return
        try:
            await page.reset()
            self._available.append(page)
        except (PlaywrightTimeoutError, PlaywrightError) as e:
            logger.warning(f"Error releasing page: {e}")
            await page.close()
    
    async def close(self) -> None:
        for page in self._available:
            try:
                await page.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing pooled page: {e}")
        self._available = []
        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()
        self.context = None
        self.browser = None
        self.playwright = None
