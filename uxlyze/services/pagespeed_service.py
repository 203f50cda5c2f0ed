# uxlyze/services/pagespeed_service.py
import logging
from typing import Any, Dict, Literal, Optional

import httpx

from uxlyze.core.config import settings
from uxlyze.core.exceptions import PageSpeedError
from uxlyze.models import Audit, CategoryScores, LoadingMetric, PageSpeedInsights

logger = logging.getLogger(__name__)

API_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
CATEGORIES = ["performance", "accessibility", "best-practices", "seo"]


def parse_pagespeed_response(data: Dict[str, Any]) -> PageSpeedInsights:
    """
    Reduces a raw PageSpeed Insights payload to category scores, audits and
    field (loading experience) metrics.
    """
    lighthouse_result = data.get("lighthouseResult", {})
    categories = lighthouse_result.get("categories", {})
    loading_experience = data.get("loadingExperience", {})

    return PageSpeedInsights(
        categories=CategoryScores(
            performance=categories.get("performance", {}).get("score"),
            accessibility=categories.get("accessibility", {}).get("score"),
            best_practices=categories.get("best-practices", {}).get("score"),
            seo=categories.get("seo", {}).get("score"),
        ),
        audits={
            audit_id: Audit(
                score=audit.get("score"),
                title=audit.get("title", ""),
                display_value=audit.get("displayValue", ""),
            )
            for audit_id, audit in lighthouse_result.get("audits", {}).items()
        },
        loading_experience={
            name: LoadingMetric(percentile=metric.get("percentile"), category=metric.get("category", ""))
            for name, metric in loading_experience.get("metrics", {}).items()
        },
        overall_category=loading_experience.get("overall_category"),
    )


async def get_pagespeed_insights(
    url: str,
    strategy: Optional[Literal["mobile", "desktop"]] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> PageSpeedInsights:
    """
    Asynchronously calls the Google PageSpeed Insights API.

    Args:
        url: The target website URL.
        strategy: The analysis strategy ('mobile' or 'desktop'); defaults to PAGESPEED_STRATEGY.
        client: Optional client to reuse; one is created for the call otherwise.

    Returns:
        The parsed PageSpeedInsights.

    Raises:
        PageSpeedError: If the API call fails or returns an error.
    """
    if not settings.PAGESPEED_API_KEY:
        raise PageSpeedError("PAGESPEED_API_KEY is not set")

    params = [
        ("url", url),
        ("key", settings.PAGESPEED_API_KEY),
        ("strategy", strategy or settings.PAGESPEED_STRATEGY),
    ] + [("category", category) for category in CATEGORIES]

    owns_client = client is None
    client = client or httpx.AsyncClient()
    try:
        logger.info("Fetching PageSpeed Insights for %s", url)
        response = await client.get(API_ENDPOINT, params=params, timeout=settings.PAGESPEED_TIMEOUT)
        response.raise_for_status()  # Raise an exception for bad status codes (4xx or 5xx)
        data = response.json()
    except httpx.HTTPStatusError as e:
        raise PageSpeedError(
            f"Error calling PageSpeed API ({e.response.status_code}): {e.response.text}"
        ) from e
    except httpx.RequestError as e:
        raise PageSpeedError(f"Network error while calling PageSpeed API: {e}") from e
    except ValueError as e:
        raise PageSpeedError(f"PageSpeed API returned invalid JSON: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    if "error" in data:
        error_message = data["error"].get("message", "Unknown API error")
        raise PageSpeedError(f"PageSpeed API Error: {error_message}")

    if "lighthouseResult" not in data:
        raise PageSpeedError("Invalid response from PageSpeed API: 'lighthouseResult' not found.")

    return parse_pagespeed_response(data)
