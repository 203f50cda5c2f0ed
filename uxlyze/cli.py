# uxlyze/cli.py
"""Command-line entry point: analyze one website and save the report."""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from uxlyze.core.config import settings
from uxlyze.core.exceptions import NavigationError, PipelineTimeoutError
from uxlyze.core.log_config import configure_logging
from uxlyze.models import ReportConfig, ScreenshotMode
from uxlyze.services.processing_service import report_filename, save_report
from uxlyze.services.queue_service import is_valid_url
from uxlyze.services.report_service import generate_report

logger = logging.getLogger("uxlyze.cli")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a UI/UX analysis report for a website")
    parser.add_argument("url", help="URL of the website to analyze")
    parser.add_argument(
        "--screenshots",
        action="store_true",
        help="Capture desktop, navigation, mobile and readability screenshots",
    )
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ScreenshotMode],
        default=ScreenshotMode.BOTH.value,
        help="Which viewports to capture when screenshots are enabled",
    )
    parser.add_argument("--psi", action="store_true", help="Include Google PageSpeed Insights scores")
    parser.add_argument(
        "--strategy",
        choices=["mobile", "desktop"],
        default=settings.PAGESPEED_STRATEGY,
        help="PageSpeed Insights strategy",
    )
    parser.add_argument("--ai", action="store_true", help="Include the AI visual analysis")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Where to write the report; .html renders a document, anything else is JSON",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging("DEBUG" if args.verbose else settings.LOG_LEVEL)

    if not is_valid_url(args.url):
        logger.error("Invalid URL: %s", args.url)
        return 2

    config = ReportConfig(
        take_screenshots=args.screenshots,
        screenshot_mode=args.mode,
        include_performance_score=args.psi,
        include_ai_analysis=args.ai,
        strategy=args.strategy,
    )

    start = time.perf_counter()
    try:
        report = asyncio.run(generate_report(args.url, config))
    except (NavigationError, PipelineTimeoutError) as exc:
        logger.error("Failed to generate report: %s", exc)
        return 1

    output = args.output or Path(report_filename(report))
    save_report(report, output)
    logger.info(
        "UI/UX report generated in %.2fs (%d step failures)",
        time.perf_counter() - start,
        len(report.errors),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
