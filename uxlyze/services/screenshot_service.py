# uxlyze/services/screenshot_service.py
import asyncio
import base64
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

from uxlyze.core.config import settings
from uxlyze.services.browser_service import BrowserSession

logger = logging.getLogger(__name__)

PAGE_HEIGHT_SCRIPT = "() => document.body.scrollHeight"


def element_exists_script(selector: str) -> str:
    return f"() => document.querySelector({json.dumps(selector)}) !== null"


async def capture(session: BrowserSession, selector: str, timeout: Optional[float] = None) -> str:
    """
    Captures the element matching `selector` as a base64-encoded PNG.

    Returns an empty string when the element is not on the page; that is a
    normal outcome, not an error. Visibility waits are bounded by `timeout`
    (defaults to SCREENSHOT_TIMEOUT).
    """
    if not await session.evaluate(element_exists_script(selector)):
        logger.info("No element matches %r, skipping screenshot", selector)
        return ""

    timeout = settings.SCREENSHOT_TIMEOUT if timeout is None else timeout
    await session.wait_visible(selector, timeout)
    if settings.SCREENSHOT_SETTLE_SECONDS > 0:
        # Let lazy content and transitions finish
        await asyncio.sleep(settings.SCREENSHOT_SETTLE_SECONDS)

    data, found = await session.screenshot(selector)
    if not found:
        return ""
    return base64.b64encode(data).decode("ascii")


async def capture_with_fallback(session: BrowserSession, selectors: Sequence[str]) -> str:
    """Tries each selector in order and returns the first non-empty capture.

    An error on one selector moves on to the next one; the last selector's
    error propagates.
    """
    result = ""
    for index, selector in enumerate(selectors):
        is_last = index == len(selectors) - 1
        try:
            result = await capture(session, selector)
        except Exception as exc:
            if is_last:
                raise
            logger.warning("Capturing %r failed (%s), trying %r", selector, exc, selectors[index + 1])
            continue
        if result:
            return result
        if not is_last:
            logger.info("Nothing captured for %r, trying %r", selector, selectors[index + 1])
    return result


async def _page_height(session: BrowserSession) -> int:
    try:
        height = int(await session.evaluate(PAGE_HEIGHT_SCRIPT))
    except Exception as exc:
        logger.warning("Could not read page height: %s", exc)
        return settings.MOBILE_VIEWPORT_FALLBACK_HEIGHT
    return height if height > 0 else settings.MOBILE_VIEWPORT_FALLBACK_HEIGHT


@asynccontextmanager
async def mobile_viewport(session: BrowserSession) -> AsyncIterator[BrowserSession]:
    """
    Emulates a mobile viewport tall enough for a full-page capture, and resets
    to the default viewport on exit, whatever happened inside the block.
    """
    height = await _page_height(session)
    await session.emulate_viewport(
        settings.MOBILE_VIEWPORT_WIDTH, height, settings.MOBILE_DEVICE_SCALE
    )
    try:
        yield session
    finally:
        await session.reset_viewport()
        if session.viewport_mode != "desktop":
            raise RuntimeError("viewport was not reset after mobile capture")
