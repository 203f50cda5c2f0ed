# uxlyze/services/llm_service.py
import base64
import logging
import mimetypes
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Union

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.output_parsers import JsonOutputParser
from langchain_groq import ChatGroq

from uxlyze.core.config import settings
from uxlyze.core.exceptions import AIAnalysisError
from uxlyze.models import CategoryAnalysis, ColorScheme, UXAnalysis

logger = logging.getLogger(__name__)

# System prompt to define the model's role and the reply shape
SYSTEM_PROMPT = """
You are an expert UI/UX auditor. You are given a full-page screenshot of a website.
Reply with a single JSON object and nothing else, using this shape:

{
  "total_score": number (0-100),
  "website_category": string (e.g. "e-commerce", "blog", "saas"),
  "website_category_score": number (0-100, how well the design fits its category),
  "color_scheme": {"primary_colors": [hex], "secondary_colors": [hex], "accent_colors": [hex]},
  "<category>": {
    "score": number (0-100),
    "issues": [{"description": string, "location": string, "impact": string}],
    "suggestions": [{"description": string, "expected_impact": string}]
  }
}

where <category> is each of: usability, visual_design, typography, cta_design,
navigation, accessibility, user_flow, interactivity.
"""

ANALYSIS_PROMPT = (
    "Conduct a thorough UI & UX analysis of this website and deliver a detailed, "
    "crisp and actionable report.\n\n"
    "Usability: pain points in interaction, navigation flow and ease of use.\n"
    "Visual Design: aesthetics, color consistency, whitespace, visual hierarchy and alignment.\n"
    "Typography: legibility and consistency of font sizes, styles and hierarchy.\n"
    "Button & CTA Design: size, contrast, prominence and clarity of calls to action.\n"
    "Navigation: structure and intuitiveness of menus, dropdowns and breadcrumbs.\n"
    "Accessibility: color contrast, alt text, keyboard and screen reader concerns (WCAG).\n"
    "User Flow & Information Architecture: confusing steps, bottlenecks, redundant actions.\n"
    "Interactivity & Feedback: visual cues for forms, sliders, hover states and micro-interactions.\n\n"
    "Give concrete suggestions for every issue. Keep every entry short and straightforward."
)

TOP_LEVEL_FIELDS = {"total_score", "website_category", "website_category_score", "color_scheme"}


@lru_cache()
def get_llm() -> ChatGroq:
    """Initializes the Groq vision model on first use."""
    if not settings.GROQ_API_KEY:
        raise AIAnalysisError("GROQ_API_KEY is not set")
    return ChatGroq(
        model_name=settings.AI_MODEL,
        groq_api_key=settings.GROQ_API_KEY,
        temperature=settings.AI_TEMPERATURE,
        max_tokens=settings.AI_MAX_TOKENS,
        model_kwargs={"response_format": {"type": "json_object"}},
    )


def _image_data_url(image_path: Path) -> str:
    mime_type = mimetypes.guess_type(image_path.name)[0] or "image/png"
    encoded = base64.b64encode(image_path.read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def _as_float(value: Any) -> Union[float, None]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_ux_analysis(data: Dict[str, Any]) -> UXAnalysis:
    """
    Builds a UXAnalysis from the model's JSON reply.

    The category set differs between model and prompt versions, so every
    top-level object that carries a score is kept as a category. Overall
    score, website category and palette are optional.
    """
    if not isinstance(data, dict):
        raise AIAnalysisError(f"Expected a JSON object, got {type(data).__name__}")

    categories: Dict[str, CategoryAnalysis] = {}
    for name, value in data.items():
        if name in TOP_LEVEL_FIELDS or not isinstance(value, dict) or "score" not in value:
            continue
        categories[name] = CategoryAnalysis.model_validate(value)

    color_scheme = data.get("color_scheme")
    return UXAnalysis(
        total_score=_as_float(data.get("total_score")),
        website_category=data.get("website_category") or None,
        website_category_score=_as_float(data.get("website_category_score")),
        color_scheme=ColorScheme.model_validate(color_scheme) if isinstance(color_scheme, dict) else None,
        categories=categories,
    )


async def analyze_screenshot(image_path: Union[str, Path]) -> UXAnalysis:
    """
    Sends a screenshot to the vision model and returns its UX analysis.

    Args:
        image_path: Path of the PNG screenshot on the local file system.

    Returns:
        The parsed analysis.

    Raises:
        AIAnalysisError: If the image is missing, the call fails or the reply is unusable.
    """
    image_path = Path(image_path)
    if not image_path.is_file():
        raise AIAnalysisError(f"Screenshot {image_path} does not exist")

    messages = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(content=[
            {"type": "text", "text": ANALYSIS_PROMPT},
            {"type": "image_url", "image_url": {"url": _image_data_url(image_path)}},
        ]),
    ]
    chain = get_llm() | JsonOutputParser()
    try:
        data = await chain.ainvoke(messages)
    except Exception as exc:
        raise AIAnalysisError(f"AI analysis request failed: {exc}") from exc

    result = parse_ux_analysis(data)
    logger.info(
        "AI analysis returned %d categories (total score %s)",
        len(result.categories),
        result.total_score,
    )
    return result
