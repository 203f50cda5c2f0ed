# uxlyze/core/config.py
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """Loads environment variables from .env file."""
    # Credentials
    PAGESPEED_API_KEY: str = ""
    GROQ_API_KEY: str = ""
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # AI visual analysis
    AI_MODEL: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    AI_TEMPERATURE: float = 1.0
    AI_MAX_TOKENS: int = 8192
    AI_TIMEOUT: float = 90.0

    # Browser / pipeline (seconds unless noted)
    HEADLESS: bool = True
    NAVIGATION_TIMEOUT: float = 60.0
    PIPELINE_TIMEOUT: float = 120.0
    STEP_TIMEOUT: float = 30.0
    SCREENSHOT_TIMEOUT: float = 30.0
    SCREENSHOT_SETTLE_SECONDS: float = 2.0
    MOBILE_VIEWPORT_WIDTH: int = 350
    MOBILE_VIEWPORT_FALLBACK_HEIGHT: int = 812
    MOBILE_DEVICE_SCALE: float = 2.0

    # PageSpeed Insights
    PAGESPEED_TIMEOUT: float = 60.0
    PAGESPEED_STRATEGY: Literal["mobile", "desktop"] = "desktop"

    # Job queue
    QUEUE_MAX_SIZE: int = 100
    RATE_LIMIT_MAX_JOBS: int = 5
    RATE_LIMIT_WINDOW: float = 60.0
    RATE_LIMIT_POLL_INTERVAL: float = 1.0

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

# Create a single instance of the settings to be used across the application
settings = Settings()
