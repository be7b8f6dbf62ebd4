"""In-process stand-ins for the browser session and page handles."""
from collections import Counter

from probate_monitor.core.errors import NavigationFailure


class FakeWeb:
    """Canned pages shared by every fake page of one test"""

    def __init__(self, pages=None, after_submit=None, visible=None, failing=None, transient=None):
        self.pages = dict(pages or {})
        self.after_submit = dict(after_submit or {})
        self.visible = set(visible or ())
        self.failing = set(failing or ())
        # selector -> number of visibility checks it stays up for
        self.transient = dict(transient or {})
        self.checks = Counter()
        self.attempts = Counter()
        self.filled = {}
        self.clicked = []


class FakePage:
    def __init__(self, web: FakeWeb):
        self.web = web
        self.url = "about:blank"
        self.html = ""
        self.closed = False

    async def goto(self, url, wait_for=None):
        self.web.attempts[url] += 1
        if url in self.web.failing or url not in self.web.pages:
            raise NavigationFailure(f"Could not load {url}: timeout")
        self.url = url
        self.html = self.web.pages[url]

    async def content(self):
        return self.html

    async def is_visible(self, selector, timeout_ms=2000):
        if selector in self.web.transient:
            self.web.checks[selector] += 1
            return self.web.checks[selector] <= self.web.transient[selector]
        return selector in self.web.visible

    async def wait_for(self, selector, timeout_ms=None):
        return True

    async def fill(self, selector, value):
        self.web.filled[selector] = value

    async def click(self, selector):
        self.web.clicked.append(selector)
        if self.url in self.web.after_submit:
            self.html = self.web.after_submit[self.url]

    async def press(self, key):
        pass

    async def wait_for_results(self):
        pass

    async def pdf(self, path):
        raise RuntimeError("PDF rendering not supported")

    async def reset(self):
        self.url = "about:blank"
        self.html = ""

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, web: FakeWeb):
        self.web = web
        self.pages = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def new_page(self):
        page = FakePage(self.web)
        self.pages.append(page)
        return page

    async def acquire_page(self):
        return await self.new_page()

    async def release_page(self, page):
        await page.reset()

    async def close(self):
        for page in self.pages:
            page.closed = True
