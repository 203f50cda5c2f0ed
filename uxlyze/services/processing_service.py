# uxlyze/services/processing_service.py
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup, escape

from uxlyze.models import Metric, PageSpeedInsights, Report

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"
REPORT_TEMPLATE = "report_template.html"

KEY_AUDITS = [
    "first-contentful-paint", "speed-index", "largest-contentful-paint",
    "interactive", "total-blocking-time", "cumulative-layout-shift"
]


def extract_key_metrics(psi: PageSpeedInsights) -> List[Metric]:
    """
    Extracts key performance metrics for display.

    Args:
        psi: The parsed PageSpeed Insights result.

    Returns:
        A list of Metric objects containing the title and value of each key metric.
    """
    extracted_metrics = []
    for metric_id in KEY_AUDITS:
        audit = psi.audits.get(metric_id)
        extracted_metrics.append(
            Metric(
                title=audit.title if audit and audit.title else metric_id.replace('-', ' ').title(),
                value=audit.display_value if audit and audit.display_value else "N/A"
            )
        )
    return extracted_metrics


def extract_key_audits(psi: PageSpeedInsights) -> List[Dict[str, Any]]:
    """Returns the key Lighthouse audits that are present, with score, title and display value."""
    key_audits = []
    for name in KEY_AUDITS:
        audit = psi.audits.get(name)
        if audit is None:
            logger.debug("Audit not found for: %s", name)
            continue
        key_audits.append({
            "name": name,
            "score": audit.score,
            "title": audit.title,
            "displayValue": audit.display_value,
        })
    return key_audits


def extract_performance_metrics(psi: PageSpeedInsights) -> Dict[str, str]:
    """Formats the field (loading experience) metrics as '<percentile> ms (<category>)'."""
    return {
        name: f"{metric.percentile if metric.percentile is not None else 'N/A'} ms ({metric.category})"
        for name, metric in psi.loading_experience.items()
    }


def report_to_json(report: Report) -> str:
    return report.model_dump_json(indent=2)


def report_filename(report: Report, suffix: str = ".json") -> str:
    host = urlparse(report.url).netloc or report.url.split("://", 1)[-1]
    return f"{host}_ui_and_ux_analysis_report{suffix}"


def _image_tag(screenshot: Optional[str], alt_text: str) -> Markup:
    if not screenshot:
        return Markup("<p>Screenshot not available.</p>")
    return Markup('<img src="data:image/png;base64,{}" alt="{}"/>').format(screenshot, alt_text)


def _nl2br(text: str) -> Markup:
    return Markup("<br/>").join(escape(text).split("\n"))


def _display_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _percentage(score: Optional[float]) -> str:
    return "N/A" if score is None else f"{score * 100:.0f}"


def _as_dict(value: Any) -> Optional[Dict[str, Any]]:
    return value.model_dump() if value is not None else None


@lru_cache()
def get_template_env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["image_tag"] = _image_tag
    env.filters["nl2br"] = _nl2br
    env.filters["display_value"] = _display_value
    env.filters["percentage"] = _percentage
    return env


def render_report_html(report: Report) -> str:
    """
    Renders the report as a standalone HTML document with inlined screenshots.
    """
    psi = report.page_speed_insights
    template = get_template_env().get_template(REPORT_TEMPLATE)
    return template.render(
        report=report,
        screenshots=report.screenshots,
        visual_hierarchy=_as_dict(report.visual_hierarchy),
        navigation=_as_dict(report.navigation),
        key_audits=extract_key_audits(psi) if psi is not None else [],
        performance_metrics=extract_performance_metrics(psi) if psi is not None else {},
    )


def save_report(report: Report, path: Union[str, Path]) -> Path:
    """Writes the report as HTML when the path ends in .html, as JSON otherwise."""
    path = Path(path)
    if path.suffix.lower() in (".html", ".htm"):
        content = render_report_html(report)
    else:
        content = report_to_json(report)
    path.write_text(content, encoding="utf-8")
    logger.info("Report saved to %s", path)
    return path
