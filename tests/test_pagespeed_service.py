import httpx
import pytest

from uxlyze.core.config import settings
from uxlyze.core.exceptions import PageSpeedError
from uxlyze.services.pagespeed_service import get_pagespeed_insights

PSI_PAYLOAD = {
    "lighthouseResult": {
        "categories": {
            "performance": {"score": 0.87},
            "accessibility": {"score": 0.95},
            "best-practices": {"score": 1},
            "seo": {"score": 0.9},
        },
        "audits": {
            "first-contentful-paint": {"score": 0.98, "title": "First Contentful Paint", "displayValue": "0.8 s"},
            "uses-http2": {"score": None, "title": "Use HTTP/2"},
        },
    },
    "loadingExperience": {
        "overall_category": "FAST",
        "metrics": {
            "LARGEST_CONTENTFUL_PAINT_MS": {"percentile": 1800, "category": "FAST"},
        },
    },
}


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "PAGESPEED_API_KEY", "test-key")


def client_returning(status_code, payload, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_parses_scores_audits_and_field_metrics():
    seen = []
    async with client_returning(200, PSI_PAYLOAD, seen) as client:
        psi = await get_pagespeed_insights("https://example.org", "mobile", client=client)

    assert psi.categories.performance == 0.87
    assert psi.categories.best_practices == 1
    assert psi.audits["first-contentful-paint"].display_value == "0.8 s"
    assert psi.audits["uses-http2"].score is None
    assert psi.loading_experience["LARGEST_CONTENTFUL_PAINT_MS"].percentile == 1800
    assert psi.overall_category == "FAST"

    params = seen[0].url.params
    assert params["url"] == "https://example.org"
    assert params["strategy"] == "mobile"
    assert params["key"] == "test-key"
    assert params.get_list("category") == ["performance", "accessibility", "best-practices", "seo"]


async def test_http_error_raises_pagespeed_error():
    async with client_returning(500, {"error": {"message": "backend"}}) as client:
        with pytest.raises(PageSpeedError, match="500"):
            await get_pagespeed_insights("https://example.org", client=client)


async def test_api_error_payload_raises_pagespeed_error():
    async with client_returning(200, {"error": {"message": "Quota exceeded"}}) as client:
        with pytest.raises(PageSpeedError, match="Quota exceeded"):
            await get_pagespeed_insights("https://example.org", client=client)


async def test_missing_lighthouse_result_raises_pagespeed_error():
    async with client_returning(200, {"id": "https://example.org"}) as client:
        with pytest.raises(PageSpeedError, match="lighthouseResult"):
            await get_pagespeed_insights("https://example.org", client=client)


async def test_network_error_raises_pagespeed_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(PageSpeedError, match="Network error"):
            await get_pagespeed_insights("https://example.org", client=client)


async def test_missing_api_key_is_an_error(monkeypatch):
    monkeypatch.setattr(settings, "PAGESPEED_API_KEY", "")

    with pytest.raises(PageSpeedError, match="PAGESPEED_API_KEY"):
        await get_pagespeed_insights("https://example.org")
