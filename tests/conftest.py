import asyncio
from contextlib import asynccontextmanager

import pytest

from uxlyze.core.config import settings
from uxlyze.services.analysis_service import (
    COLOR_SCRIPT,
    FONT_SCRIPT,
    MOBILE_VIEWPORT_SCRIPT,
    NAVIGATION_SCRIPT,
    READABILITY_SCRIPT,
    SEO_SCRIPT,
    SUMMARY_SCRIPT,
    VISUAL_HIERARCHY_SCRIPT,
)
from uxlyze.services.screenshot_service import PAGE_HEIGHT_SCRIPT, element_exists_script

DEFAULT_VIEWPORT = (1280, 720, 1.0)
KNOWN_SELECTORS = ("body", "nav", "main")

# What a small static page at https://example.org/ reports
PAGE_FACTS = {
    SUMMARY_SCRIPT: {"title": "Example Domain", "description": "An example page"},
    VISUAL_HIERARCHY_SCRIPT: {"h1": 1, "h2": 2, "h3": 0, "images": 3},
    NAVIGATION_SCRIPT: {
        "pageUrl": "https://example.org/",
        "navElements": 1,
        "links": [
            {"href": "https://example.org/#top", "rawHref": "#top", "target": ""},
            {"href": "https://example.org/about", "rawHref": "/about", "target": ""},
            {"href": "https://www.iana.org/domains", "rawHref": "https://www.iana.org/domains", "target": "_blank"},
        ],
    },
    MOBILE_VIEWPORT_SCRIPT: "width=device-width, initial-scale=1",
    READABILITY_SCRIPT: 4,
    COLOR_SCRIPT: ["rgb(0, 0, 0)", "rgba(0, 0, 0, 0)", "rgb(255, 255, 255)"],
    FONT_SCRIPT: [
        {"tag": "h1", "fontFamily": "Inter", "fontSize": "32px", "text": "Example Domain"},
        {"tag": "p", "fontFamily": "Inter", "fontSize": "16px", "text": "This domain is for examples."},
    ],
    SEO_SCRIPT: [["description", "An example page"], ["og:title", "Example"]],
}


class FakeSession:
    """In-process stand-in for a browser session on a static page."""

    def __init__(
        self,
        facts=None,
        elements=KNOWN_SELECTORS,
        fail_scripts=(),
        delays=None,
        navigate_error=None,
        navigate_delay=0.0,
        page_height=2400,
        reset_failures=0,
    ):
        self.facts = dict(PAGE_FACTS if facts is None else facts)
        self.elements = set(elements)
        self.fail_scripts = set(fail_scripts)
        self.delays = dict(delays or {})
        self.navigate_error = navigate_error
        self.navigate_delay = navigate_delay
        self.page_height = page_height
        self.reset_failures = reset_failures
        self.viewport_mode = "desktop"
        self.viewport = DEFAULT_VIEWPORT
        self.calls = []
        self.captures = []
        self.opened = False
        self.closed = False

    async def navigate(self, url):
        self.calls.append(("navigate", url))
        if self.navigate_delay:
            await asyncio.sleep(self.navigate_delay)
        if self.navigate_error is not None:
            raise self.navigate_error

    async def evaluate(self, script):
        self.calls.append(("evaluate", script))
        if script in self.delays:
            await asyncio.sleep(self.delays[script])
        if script in self.fail_scripts:
            raise RuntimeError("Evaluation failed")
        if script == PAGE_HEIGHT_SCRIPT:
            return self.page_height
        for selector in KNOWN_SELECTORS:
            if script == element_exists_script(selector):
                return selector in self.elements
        return self.facts[script]

    async def emulate_viewport(self, width, height, scale):
        self.calls.append(("emulate_viewport", width, height, scale))
        self.viewport = (width, height, scale)
        self.viewport_mode = "mobile"

    async def reset_viewport(self):
        self.calls.append(("reset_viewport",))
        if self.reset_failures:
            self.reset_failures -= 1
            raise RuntimeError("Emulation.clearDeviceMetricsOverride failed")
        self.viewport = DEFAULT_VIEWPORT
        self.viewport_mode = "desktop"

    async def wait_visible(self, selector, timeout):
        self.calls.append(("wait_visible", selector, timeout))

    async def screenshot(self, selector):
        self.captures.append((selector, self.viewport))
        if selector not in self.elements:
            return b"", False
        return f"png:{selector}".encode(), True

    @property
    def captured_selectors(self):
        return [selector for selector, _ in self.captures]


def session_factory_for(session):
    @asynccontextmanager
    async def factory():
        session.opened = True
        try:
            yield session
        finally:
            session.closed = True

    return factory


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    monkeypatch.setattr(settings, "SCREENSHOT_SETTLE_SECONDS", 0.0)
    monkeypatch.setattr(settings, "SCREENSHOT_TIMEOUT", 5.0)
    monkeypatch.setattr(settings, "STEP_TIMEOUT", 5.0)


@pytest.fixture
def fake_session():
    return FakeSession()
