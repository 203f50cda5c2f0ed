# uxlyze/services/analysis_service.py
"""
DOM analyzers. Each analyzer evaluates one script against the loaded page to
collect raw facts, then summarizes them in Python. Analyzers are stateless and
only read page state through the browser session.
"""
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Tuple
from urllib.parse import urlparse

from uxlyze.models import (
    ColorUsage,
    FontSample,
    FontUsage,
    MobileFriendliness,
    NavigationAnalysis,
    Readability,
    VisualHierarchy,
)
from uxlyze.services.browser_service import BrowserSession

HIGH_DENSITY_PARAGRAPHS = 20
FONT_SAMPLE_CHARS = 100
TRANSPARENT_COLORS = {"rgba(0, 0, 0, 0)", "transparent"}

SUMMARY_SCRIPT = """() => ({
    title: document.title || "",
    description: document.querySelector("meta[name='description']")?.getAttribute("content") || "",
})"""

VISUAL_HIERARCHY_SCRIPT = """() => ({
    h1: document.querySelectorAll("h1").length,
    h2: document.querySelectorAll("h2").length,
    h3: document.querySelectorAll("h3").length,
    images: document.querySelectorAll("img").length,
})"""

NAVIGATION_SCRIPT = """() => ({
    pageUrl: window.location.href,
    navElements: document.querySelectorAll("nav").length,
    links: Array.from(document.querySelectorAll("a")).map((a) => ({
        href: a.href || "",
        rawHref: a.getAttribute("href") || "",
        target: a.getAttribute("target") || "",
    })),
})"""

MOBILE_VIEWPORT_SCRIPT = """() => document.querySelector("meta[name='viewport']")?.getAttribute("content") || \"\""""

READABILITY_SCRIPT = """() => document.querySelectorAll("p").length"""

COLOR_SCRIPT = """() => {
    const seen = new Set();
    document.querySelectorAll("*").forEach((el) => {
        const styles = window.getComputedStyle(el);
        [styles.color, styles.backgroundColor, styles.borderColor].forEach((value) => {
            if (value) seen.add(value);
        });
    });
    return Array.from(seen);
}"""

FONT_SCRIPT = """() => Array.from(document.querySelectorAll("h1, h2, h3, h4, h5, h6, span, p")).map((el) => {
    const styles = window.getComputedStyle(el);
    return {
        tag: el.tagName.toLowerCase(),
        fontFamily: styles.fontFamily || "",
        fontSize: styles.fontSize || "",
        text: (el.textContent || "").trim(),
    };
})"""

SEO_SCRIPT = """() => Array.from(document.querySelectorAll("meta")).map((tag) => [
    tag.getAttribute("name") || tag.getAttribute("property") || "",
    tag.getAttribute("content") || "",
])"""


# --- Summaries (pure) ---

def summarize_navigation(page_url: str, nav_elements: int, links: Iterable[Dict[str, str]]) -> NavigationAnalysis:
    """Classifies links as internal or external by comparing resolved hosts."""
    page_host = (urlparse(page_url).hostname or "").lower()
    total = anchors = new_tab = internal = external = 0
    for link in links:
        total += 1
        if link.get("rawHref", "").startswith("#"):
            anchors += 1
        if link.get("target", "").lower() == "_blank":
            new_tab += 1
        parsed = urlparse(link.get("href", ""))
        if parsed.scheme not in ("http", "https"):
            continue  # mailto:, tel:, javascript: ...
        if (parsed.hostname or "").lower() == page_host:
            internal += 1
        else:
            external += 1
    return NavigationAnalysis(
        total_links=total,
        nav_elements=nav_elements,
        anchor_links=anchors,
        new_tab_links=new_tab,
        internal_links=internal,
        external_links=external,
    )


def summarize_readability(paragraph_count: int) -> Readability:
    density = "high" if paragraph_count > HIGH_DENSITY_PARAGRAPHS else "low"
    return Readability(paragraph_count=paragraph_count, density=density)


def summarize_colors(values: Iterable[str]) -> ColorUsage:
    colors: List[str] = []
    for value in values:
        value = (value or "").strip()
        if not value or value in TRANSPARENT_COLORS or value in colors:
            continue
        colors.append(value)
    return ColorUsage(total_colors=len(colors), colors=colors)


def summarize_fonts(elements: Iterable[Dict[str, str]]) -> FontUsage:
    """
    Groups text-bearing elements by font family, then by tag name. Elements
    sharing the same text and font size collapse into one sample with a count.
    """
    samples: Dict[str, Dict[str, Dict[Tuple[str, str], FontSample]]] = {}
    distribution: Dict[str, Dict[str, int]] = {}
    for el in elements:
        family, size, tag = el.get("fontFamily", ""), el.get("fontSize", ""), el.get("tag", "")
        text = (el.get("text") or "").strip()
        if not family or not text:
            continue
        by_tag = samples.setdefault(family, {}).setdefault(tag, {})
        key = (text, size)
        if key not in by_tag:
            by_tag[key] = FontSample(text=text[:FONT_SAMPLE_CHARS], font_size=size, count=0)
        by_tag[key].count += 1
        sizes = distribution.setdefault(tag, {})
        sizes[size] = sizes.get(size, 0) + 1

    fonts_used = {
        family: {tag: list(by_key.values()) for tag, by_key in tags.items()}
        for family, tags in samples.items()
    }
    return FontUsage(
        total_fonts=len(fonts_used),
        fonts_used=fonts_used,
        font_size_distribution=distribution,
    )


def summarize_meta_tags(pairs: Iterable[Any]) -> Dict[str, str]:
    meta: Dict[str, str] = {}
    for name, content in pairs:
        if name and content:
            meta[name] = content
    return meta


# --- Analyzers ---

async def analyze_summary(session: BrowserSession) -> str:
    data = await session.evaluate(SUMMARY_SCRIPT)
    description = data.get("description") or "No description found"
    return f"Website: {data.get('title', '')}\nDescription: {description}"


async def analyze_visual_hierarchy(session: BrowserSession) -> VisualHierarchy:
    return VisualHierarchy(**await session.evaluate(VISUAL_HIERARCHY_SCRIPT))


async def analyze_navigation(session: BrowserSession) -> NavigationAnalysis:
    data = await session.evaluate(NAVIGATION_SCRIPT)
    return summarize_navigation(data["pageUrl"], data["navElements"], data["links"])


async def analyze_mobile_friendliness(session: BrowserSession) -> MobileFriendliness:
    content = (await session.evaluate(MOBILE_VIEWPORT_SCRIPT) or "").strip()
    return MobileFriendliness(mobile_friendly=bool(content), viewport=content)


async def analyze_readability(session: BrowserSession) -> Readability:
    return summarize_readability(int(await session.evaluate(READABILITY_SCRIPT)))


async def analyze_color_usage(session: BrowserSession) -> ColorUsage:
    return summarize_colors(await session.evaluate(COLOR_SCRIPT))


async def analyze_font_usage(session: BrowserSession) -> FontUsage:
    return summarize_fonts(await session.evaluate(FONT_SCRIPT))


async def analyze_seo(session: BrowserSession) -> Dict[str, str]:
    return summarize_meta_tags(await session.evaluate(SEO_SCRIPT))


# Report field -> analyzer, in execution order
ANALYZERS: List[Tuple[str, Callable[[BrowserSession], Awaitable[Any]]]] = [
    ("summary", analyze_summary),
    ("visual_hierarchy", analyze_visual_hierarchy),
    ("navigation", analyze_navigation),
    ("mobile_friendliness", analyze_mobile_friendliness),
    ("readability", analyze_readability),
    ("color_usage", analyze_color_usage),
    ("font_usage", analyze_font_usage),
    ("seo", analyze_seo),
]
