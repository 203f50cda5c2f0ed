import json

from uxlyze.models import (
    Audit,
    CategoryAnalysis,
    CategoryScores,
    Issue,
    LoadingMetric,
    MobileFriendliness,
    PageSpeedInsights,
    Readability,
    Report,
    UXAnalysis,
)
from uxlyze.services.processing_service import (
    extract_key_audits,
    extract_key_metrics,
    extract_performance_metrics,
    render_report_html,
    report_filename,
    save_report,
)

PSI = PageSpeedInsights(
    categories=CategoryScores(performance=0.5, accessibility=0.92),
    audits={
        "speed-index": Audit(score=0.7, title="Speed Index", display_value="3.1 s"),
        "uses-http2": Audit(score=1, title="Use HTTP/2"),
    },
    loading_experience={
        "FIRST_INPUT_DELAY_MS": LoadingMetric(percentile=12, category="FAST"),
        "CUMULATIVE_LAYOUT_SHIFT_SCORE": LoadingMetric(category="AVERAGE"),
    },
)


def make_report(**fields):
    return Report(url="https://example.org/shop", title="UI/UX Analysis Report for example.org/shop", **fields)


def test_key_metrics_fill_missing_audits():
    metrics = extract_key_metrics(PSI)

    assert len(metrics) == 6
    by_title = {m.title: m.value for m in metrics}
    assert by_title["Speed Index"] == "3.1 s"
    assert by_title["First Contentful Paint"] == "N/A"


def test_key_audits_only_include_present_audits():
    assert extract_key_audits(PSI) == [
        {"name": "speed-index", "score": 0.7, "title": "Speed Index", "displayValue": "3.1 s"}
    ]


def test_performance_metrics_format():
    assert extract_performance_metrics(PSI) == {
        "FIRST_INPUT_DELAY_MS": "12 ms (FAST)",
        "CUMULATIVE_LAYOUT_SHIFT_SCORE": "N/A ms (AVERAGE)",
    }


def test_html_inlines_screenshots_and_marks_missing_ones():
    report = make_report(
        summary="Website: Shop\nDescription: <b>Deals</b>",
        screenshots={"Desktop": "aGVsbG8=", "Navigation": ""},
        mobile_friendliness=MobileFriendliness(mobile_friendly=False),
        readability=Readability(paragraph_count=30, density="high"),
    )

    page = render_report_html(report)

    assert '<img src="data:image/png;base64,aGVsbG8=" alt="Desktop Screenshot"/>' in page
    assert page.count("<p>Screenshot not available.</p>") == 3
    assert "&lt;b&gt;Deals&lt;/b&gt;" in page
    assert "<strong>Mobile-friendly:</strong> No" in page
    assert "High (30 paragraphs)" in page
    assert "AI UX Analysis" not in page
    assert "<h2>Performance</h2>" not in page


def test_html_includes_ai_and_performance_sections():
    ai = UXAnalysis(
        total_score=64,
        website_category="blog",
        categories={
            "cta_design": CategoryAnalysis(
                score=40, issues=[Issue(description="CTA blends in", location="hero", impact="high")]
            )
        },
    )
    page = render_report_html(make_report(ai_analysis=ai, page_speed_insights=PSI))

    assert "Cta Design (40)" in page
    assert "Issue: CTA blends in (hero, high)" in page
    assert "<li>Performance: 50</li>" in page
    assert "<li>SEO: N/A</li>" in page
    assert "FIRST_INPUT_DELAY_MS: 12 ms (FAST)" in page


def test_save_report_picks_format_from_suffix(tmp_path):
    report = make_report(seo={"description": "Shop"})

    json_path = save_report(report, tmp_path / "report.json")
    html_path = save_report(report, tmp_path / "report.html")

    assert json.loads(json_path.read_text(encoding="utf-8"))["seo"] == {"description": "Shop"}
    assert html_path.read_text(encoding="utf-8").startswith("<html>")


def test_report_filename_uses_host():
    assert report_filename(make_report()) == "example.org_ui_and_ux_analysis_report.json"
    assert report_filename(make_report(), ".html").endswith("_report.html")


def test_html_template_escapes_page_and_model_text():
    ai = UXAnalysis(
        categories={
            "usability": CategoryAnalysis(
                score=55, issues=[Issue(description="<script>alert(1)</script>", location="footer", impact="low")]
            )
        },
    )
    report = make_report(summary="Website: Shop\nDescription: Deals", seo={"og:title": "Tom & Jerry"}, ai_analysis=ai)

    page = render_report_html(report)

    assert "Website: Shop<br/>Description: Deals" in page
    assert "<script>" not in page
    assert "Issue: &lt;script&gt;alert(1)&lt;/script&gt; (footer, low)" in page
    assert "<li>og:title: Tom &amp; Jerry</li>" in page
    assert "<p><strong>Links:</strong> not available</p>" in page
