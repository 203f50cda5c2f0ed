# uxlyze/services/browser_service.py
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Literal, Protocol, Tuple

from playwright.async_api import (
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from uxlyze.core.config import settings
from uxlyze.core.exceptions import NavigationError

logger = logging.getLogger(__name__)

ViewportMode = Literal["desktop", "mobile"]


class BrowserSession(Protocol):
    """The browser capability the report pipeline drives.

    A session owns a single navigation context. Callers must not issue
    operations on it concurrently.
    """

    viewport_mode: ViewportMode

    async def navigate(self, url: str) -> None: ...

    async def evaluate(self, script: str) -> Any: ...

    async def emulate_viewport(self, width: int, height: int, scale: float) -> None: ...

    async def reset_viewport(self) -> None: ...

    async def wait_visible(self, selector: str, timeout: float) -> None: ...

    async def screenshot(self, selector: str) -> Tuple[bytes, bool]: ...


class PlaywrightSession:
    """BrowserSession backed by a Playwright Chromium page."""

    def __init__(self, page: Page):
        self.page = page
        self.viewport_mode: ViewportMode = "desktop"
        self._cdp = None

    async def navigate(self, url: str) -> None:
        logger.info("Loading %s", url)
        try:
            response = await self.page.goto(
                url, wait_until="load", timeout=settings.NAVIGATION_TIMEOUT * 1000
            )
        except PlaywrightTimeoutError as exc:
            raise NavigationError(f"Timed out loading {url}: {exc}") from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Could not load {url}: {exc}") from exc
        if response is not None and response.status >= 400:
            logger.warning("%s responded with HTTP %d", url, response.status)

    async def evaluate(self, script: str) -> Any:
        return await self.page.evaluate(script)

    async def _cdp_session(self):
        if self._cdp is None:
            self._cdp = await self.page.context.new_cdp_session(self.page)
        return self._cdp

    async def emulate_viewport(self, width: int, height: int, scale: float) -> None:
        cdp = await self._cdp_session()
        await cdp.send(
            "Emulation.setDeviceMetricsOverride",
            {"width": width, "height": height, "deviceScaleFactor": scale, "mobile": True},
        )
        self.viewport_mode = "mobile"

    async def reset_viewport(self) -> None:
        cdp = await self._cdp_session()
        await cdp.send("Emulation.clearDeviceMetricsOverride")
        self.viewport_mode = "desktop"

    async def wait_visible(self, selector: str, timeout: float) -> None:
        await self.page.wait_for_selector(selector, state="visible", timeout=timeout * 1000)

    async def screenshot(self, selector: str) -> Tuple[bytes, bool]:
        element = await self.page.query_selector(selector)
        if element is None:
            return b"", False
        return await element.screenshot(type="png"), True


@asynccontextmanager
async def open_browser_session() -> AsyncIterator[PlaywrightSession]:
    """Launches a headless browser for one pipeline run and always tears it down."""
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=settings.HEADLESS)
        try:
            page = await browser.new_page()
            yield PlaywrightSession(page)
        finally:
            await browser.close()
