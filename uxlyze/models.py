# uxlyze/models.py
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# --- Request & configuration ---

class ScreenshotMode(str, Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"
    BOTH = "both"


class ReportConfig(BaseModel):
    """Per-run options. Accepts the camelCase keys stored alongside jobs."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    take_screenshots: bool = Field(
        False,
        validation_alias=AliasChoices("takeScreenshots", "includePreview", "take_screenshots"),
        serialization_alias="takeScreenshots",
    )
    screenshot_mode: ScreenshotMode = Field(
        ScreenshotMode.BOTH,
        validation_alias=AliasChoices("screenshotMode", "screenshot_mode"),
        serialization_alias="screenshotMode",
    )
    include_performance_score: bool = Field(
        False,
        validation_alias=AliasChoices("includePerformanceScore", "includePSI", "include_performance_score"),
        serialization_alias="includePerformanceScore",
    )
    include_ai_analysis: bool = Field(
        False,
        validation_alias=AliasChoices("includeAIAnalysis", "include_ai_analysis"),
        serialization_alias="includeAIAnalysis",
    )
    strategy: Literal["mobile", "desktop"] = "desktop"

    @property
    def wants_desktop(self) -> bool:
        return self.screenshot_mode in (ScreenshotMode.DESKTOP, ScreenshotMode.BOTH)

    @property
    def wants_mobile(self) -> bool:
        return self.screenshot_mode in (ScreenshotMode.MOBILE, ScreenshotMode.BOTH)


class AnalysisRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    config: ReportConfig = Field(default_factory=ReportConfig)


class JobSubmission(AnalysisRequest):
    project_id: Optional[str] = None


# --- DOM analyzer results ---

class VisualHierarchy(BaseModel):
    h1: int
    h2: int
    h3: int
    images: int


class NavigationAnalysis(BaseModel):
    total_links: int
    nav_elements: int
    anchor_links: int
    new_tab_links: int
    internal_links: int
    external_links: int


class MobileFriendliness(BaseModel):
    mobile_friendly: bool
    viewport: str = ""


class Readability(BaseModel):
    paragraph_count: int
    density: Literal["high", "low"]


class ColorUsage(BaseModel):
    total_colors: int
    colors: List[str]


class FontSample(BaseModel):
    text: str
    font_size: str
    count: int


class FontUsage(BaseModel):
    total_fonts: int
    # font family -> tag name -> distinct (text, size) samples
    fonts_used: Dict[str, Dict[str, List[FontSample]]]
    # tag name -> font size -> occurrences
    font_size_distribution: Dict[str, Dict[str, int]]


# --- AI visual analysis ---

class Issue(BaseModel):
    description: str = ""
    location: str = ""
    impact: str = Field("", validation_alias=AliasChoices("impact", "severity"))


class Suggestion(BaseModel):
    description: str = ""
    expected_impact: str = ""


class CategoryAnalysis(BaseModel):
    score: Optional[float] = None
    issues: List[Issue] = Field(default_factory=list)
    suggestions: List[Suggestion] = Field(default_factory=list)


class ColorScheme(BaseModel):
    primary_colors: List[str] = Field(default_factory=list)
    secondary_colors: List[str] = Field(default_factory=list)
    accent_colors: List[str] = Field(default_factory=list)


class UXAnalysis(BaseModel):
    total_score: Optional[float] = None
    website_category: Optional[str] = None
    website_category_score: Optional[float] = None
    color_scheme: Optional[ColorScheme] = None
    # category name (usability, typography, ...) -> analysis
    categories: Dict[str, CategoryAnalysis] = Field(default_factory=dict)


# --- PageSpeed Insights ---

class Audit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    score: Optional[float] = None
    title: str = ""
    display_value: str = Field("", alias="displayValue")


class LoadingMetric(BaseModel):
    percentile: Optional[int] = None
    category: str = ""


class CategoryScores(BaseModel):
    performance: Optional[float] = None
    accessibility: Optional[float] = None
    best_practices: Optional[float] = None
    seo: Optional[float] = None


class PageSpeedInsights(BaseModel):
    categories: CategoryScores = Field(default_factory=CategoryScores)
    audits: Dict[str, Audit] = Field(default_factory=dict)
    loading_experience: Dict[str, LoadingMetric] = Field(default_factory=dict)
    overall_category: Optional[str] = None


class Metric(BaseModel):
    title: str
    value: str


# --- Report ---

class StepFailure(BaseModel):
    kind: Literal["error", "timeout"]
    message: str


class Report(BaseModel):
    url: str
    title: str = ""
    summary: Optional[str] = None
    visual_hierarchy: Optional[VisualHierarchy] = None
    navigation: Optional[NavigationAnalysis] = None
    mobile_friendliness: Optional[MobileFriendliness] = None
    readability: Optional[Readability] = None
    color_usage: Optional[ColorUsage] = None
    font_usage: Optional[FontUsage] = None
    seo: Optional[Dict[str, str]] = None
    # label (Desktop, Navigation, Mobile, Readability) -> base64 PNG, "" when absent
    screenshots: Dict[str, str] = Field(default_factory=dict)
    ai_analysis: Optional[UXAnalysis] = None
    page_speed_insights: Optional[PageSpeedInsights] = None
    # step name -> why that field is missing
    errors: Dict[str, StepFailure] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# --- Jobs ---

class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobRecord(BaseModel):
    id: str
    project_id: Optional[str] = None
    web_url: str
    report_config: ReportConfig = Field(default_factory=ReportConfig)
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None


class QueuedJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_id: int
    report_id: str
    request: AnalysisRequest
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SubmissionResponse(BaseModel):
    job_id: int
    report_id: str
    status: JobStatus
