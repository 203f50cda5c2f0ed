import json

import pytest
from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableLambda

from uxlyze.core.exceptions import AIAnalysisError
from uxlyze.services import llm_service
from uxlyze.services.llm_service import analyze_screenshot, parse_ux_analysis

REPLY = {
    "total_score": 68,
    "website_category": "e-commerce",
    "website_category_score": "74",
    "color_scheme": {"primary_colors": ["#111111"], "accent_colors": ["#ff6600"]},
    "usability": {
        "score": 70,
        "issues": [{"description": "Search is hidden", "location": "header", "severity": "high"}],
        "suggestions": [{"description": "Show the search field", "expected_impact": "More searches"}],
    },
    "typography": {"score": 81},
    "mobile_responsiveness": {"score": 55, "issues": []},
    "notes": {"text": "not a category"},
}


def test_every_scored_object_becomes_a_category():
    analysis = parse_ux_analysis(REPLY)

    assert set(analysis.categories) == {"usability", "typography", "mobile_responsiveness"}
    assert analysis.categories["usability"].issues[0].impact == "high"
    assert analysis.categories["typography"].suggestions == []
    assert analysis.website_category_score == 74.0
    assert analysis.color_scheme.secondary_colors == []


def test_optional_top_level_fields_may_be_missing():
    analysis = parse_ux_analysis({"navigation": {"score": 50}})

    assert analysis.total_score is None
    assert analysis.website_category is None
    assert analysis.color_scheme is None
    assert analysis.categories["navigation"].score == 50


def test_non_object_reply_is_rejected():
    with pytest.raises(AIAnalysisError):
        parse_ux_analysis(["usability"])


async def test_missing_screenshot_is_rejected(tmp_path):
    with pytest.raises(AIAnalysisError, match="does not exist"):
        await analyze_screenshot(tmp_path / "missing.png")


async def test_screenshot_is_sent_as_data_url(tmp_path, monkeypatch):
    image = tmp_path / "shot.png"
    image.write_bytes(b"\x89PNG fake")
    received = []

    def fake_model(messages):
        received.append(messages)
        return AIMessage(content=json.dumps(REPLY))

    monkeypatch.setattr(llm_service, "get_llm", lambda: RunnableLambda(fake_model))

    analysis = await analyze_screenshot(image)

    assert analysis.total_score == 68
    human = received[0][-1]
    image_part = [part for part in human.content if part["type"] == "image_url"][0]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")


async def test_model_failure_raises_ai_analysis_error(tmp_path, monkeypatch):
    image = tmp_path / "shot.png"
    image.write_bytes(b"\x89PNG fake")

    def broken_model(messages):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(llm_service, "get_llm", lambda: RunnableLambda(broken_model))

    with pytest.raises(AIAnalysisError, match="rate limited"):
        await analyze_screenshot(image)


def test_missing_api_key_is_reported(monkeypatch):
    monkeypatch.setattr(llm_service.settings, "GROQ_API_KEY", "")
    llm_service.get_llm.cache_clear()

    with pytest.raises(AIAnalysisError, match="GROQ_API_KEY"):
        llm_service.get_llm()
