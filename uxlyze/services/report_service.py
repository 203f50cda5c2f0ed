# uxlyze/services/report_service.py
"""
Report pipeline. Runs navigation, the DOM analyzers, screenshot capture and
the optional AI / PageSpeed enrichment for one URL and assembles a Report.

Only navigation (and the overall time budget) is fatal. Every later step is
best effort: its failure is logged, recorded in `Report.errors` and leaves the
corresponding field empty.
"""
import asyncio
import base64
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, AsyncContextManager, Awaitable, Callable, Optional

from uxlyze.core.config import settings
from uxlyze.core.exceptions import AIAnalysisError, NavigationError, PipelineTimeoutError
from uxlyze.models import PageSpeedInsights, Report, ReportConfig, StepFailure, UXAnalysis
from uxlyze.services import llm_service, pagespeed_service
from uxlyze.services.analysis_service import ANALYZERS
from uxlyze.services.browser_service import BrowserSession, open_browser_session
from uxlyze.services.screenshot_service import capture, capture_with_fallback, mobile_viewport

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[BrowserSession]]
AIAnalyzer = Callable[[Path], Awaitable[UXAnalysis]]
PerformanceFetcher = Callable[[str, str], Awaitable[PageSpeedInsights]]

DESKTOP = "Desktop"
NAVIGATION = "Navigation"
MOBILE = "Mobile"
READABILITY = "Readability"
READABILITY_SELECTORS = ("main", "body")


def build_title(url: str) -> str:
    return "UI/UX Analysis Report for " + url.split("://", 1)[-1]


async def _run_step(report: Report, step: str, coro: Awaitable[Any], timeout: Optional[float] = None) -> Any:
    """Awaits one step, recording a failure on the report instead of raising."""
    start = time.perf_counter()
    try:
        result = await asyncio.wait_for(coro, timeout)
    except asyncio.TimeoutError:
        report.errors[step] = StepFailure(kind="timeout", message=f"{step} timed out after {timeout}s")
        logger.warning("Step %s timed out after %ss", step, timeout)
        return None
    except Exception as exc:
        report.errors[step] = StepFailure(kind="error", message=str(exc) or type(exc).__name__)
        logger.warning("Error in step %s: %s", step, exc)
        return None
    logger.info("Step %s took %.2fs", step, time.perf_counter() - start)
    return result


async def _capture_mobile(session: BrowserSession) -> str:
    async with mobile_viewport(session):
        return await capture(session, "body")


async def _capture_screenshots(session: BrowserSession, config: ReportConfig, report: Report) -> None:
    if config.wants_desktop:
        report.screenshots[DESKTOP] = await _run_step(report, f"screenshots.{DESKTOP}", capture(session, "body")) or ""

    report.screenshots[NAVIGATION] = await _run_step(report, f"screenshots.{NAVIGATION}", capture(session, "nav")) or ""

    if config.wants_mobile:
        report.screenshots[MOBILE] = await _run_step(report, f"screenshots.{MOBILE}", _capture_mobile(session)) or ""
        if session.viewport_mode != "desktop":
            await _run_step(report, "viewport_reset", session.reset_viewport())
        if session.viewport_mode != "desktop":
            # Layout-dependent captures would see the mobile viewport
            logger.error("Viewport is stuck in mobile mode, skipping %s screenshot", READABILITY)
            report.screenshots[READABILITY] = ""
            return

    report.screenshots[READABILITY] = await _run_step(
        report, f"screenshots.{READABILITY}", capture_with_fallback(session, READABILITY_SELECTORS)
    ) or ""


async def _run_browser_steps(
    url: str,
    config: ReportConfig,
    report: Report,
    session_factory: SessionFactory,
) -> str:
    """Runs every step that needs the page. Returns the desktop screenshot for AI analysis."""
    async with session_factory() as session:
        start = time.perf_counter()
        try:
            await session.navigate(url)
        except NavigationError:
            raise
        except Exception as exc:
            raise NavigationError(f"Could not load {url}: {exc}") from exc
        logger.info("Navigation to %s took %.2fs", url, time.perf_counter() - start)

        for field, analyzer in ANALYZERS:
            setattr(report, field, await _run_step(report, field, analyzer(session), settings.STEP_TIMEOUT))

        if config.take_screenshots:
            await _capture_screenshots(session, config, report)

        if not config.include_ai_analysis:
            return ""

        desktop = report.screenshots.get(DESKTOP, "")
        if not desktop:
            logger.info("No desktop screenshot available for AI analysis, capturing one")
            desktop = await _run_step(report, f"screenshots.{DESKTOP}", capture(session, "body")) or ""
            if config.take_screenshots:
                report.screenshots[DESKTOP] = desktop
        return desktop


async def analyze_with_ai(screenshot_b64: str, ai_analyzer: AIAnalyzer) -> UXAnalysis:
    """
    Hands the screenshot to the AI analyzer through a temporary PNG file. The
    file is removed whatever the outcome.
    """
    if not screenshot_b64:
        raise AIAnalysisError("No desktop screenshot available")
    fd, temp_path = tempfile.mkstemp(prefix="uxlyze_screenshot_", suffix=".png")
    try:
        with os.fdopen(fd, "wb") as image_file:
            image_file.write(base64.b64decode(screenshot_b64))
        return await ai_analyzer(Path(temp_path))
    finally:
        os.remove(temp_path)


async def generate_report(
    url: str,
    config: Optional[ReportConfig] = None,
    *,
    session_factory: SessionFactory = open_browser_session,
    ai_analyzer: AIAnalyzer = llm_service.analyze_screenshot,
    performance_fetcher: PerformanceFetcher = pagespeed_service.get_pagespeed_insights,
    timeout: Optional[float] = None,
) -> Report:
    """
    Generates a UI/UX report for the given URL.

    Args:
        url: The URL of the website to analyze.
        config: Which optional steps to run.
        session_factory: Provides a browser session scoped to this run.
        ai_analyzer: Analyzes a screenshot file; used when AI analysis is enabled.
        performance_fetcher: Fetches PageSpeed Insights; used when the performance score is enabled.
        timeout: Upper bound for the browser session's lifetime, PIPELINE_TIMEOUT by default.

    Returns:
        The report, with absent fields for every step that failed.

    Raises:
        NavigationError: If the page could not be loaded.
        PipelineTimeoutError: If the browser steps exceeded the time budget.
    """
    config = config or ReportConfig()
    timeout = settings.PIPELINE_TIMEOUT if timeout is None else timeout
    logger.info("Starting report generation for %s", url)
    start = time.perf_counter()

    report = Report(url=url)
    try:
        desktop = await asyncio.wait_for(
            _run_browser_steps(url, config, report, session_factory), timeout
        )
    except asyncio.TimeoutError as exc:
        raise PipelineTimeoutError(f"Report generation for {url} exceeded {timeout}s") from exc

    if config.include_ai_analysis:
        report.ai_analysis = await _run_step(
            report, "ai_analysis", analyze_with_ai(desktop, ai_analyzer), settings.AI_TIMEOUT
        )

    if config.include_performance_score:
        report.page_speed_insights = await _run_step(
            report, "page_speed_insights", performance_fetcher(url, config.strategy)
        )

    report.title = build_title(url)
    logger.info(
        "Total report generation time for %s: %.2fs (%d step failures)",
        url,
        time.perf_counter() - start,
        len(report.errors),
    )
    return report
