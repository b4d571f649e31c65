"""Configuration models for the auth detector."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)


class ViewportConfig(BaseModel):
    width: int = 1920
    height: int = 1080


class TimeoutConfig(BaseModel):
    """All values in seconds."""

    ai_api: float = 60.0
    extraction: float = 35.0
    selector: float = 8.0
    fallback_total: float = 12.0
    fallback_per_attempt: float = 3.0
    navigation: float = 30.0
    network_idle: float = 5.0
    screenshot: float = 10.0
    settle: float = 1.5
    scrape_total: float = 60.0
    modal: float = 3.0
    accessibility: float = 5.0


class LimitConfig(BaseModel):
    max_excerpt: int = 15000
    min_excerpt: int = 20
    max_snippet: int = 1500
    dedup_prefix: int = 100
    single_container_text: int = 10000
    page_container_text: int = 15000
    oauth_block_text: int = 5000
    svg_max: int = 2000
    min_score: int = 12
    top_hits: int = 10


class BrowserConfig(BaseModel):
    headless: bool = True
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    user_agent: str = DEFAULT_USER_AGENT
    timezone_id: str = "UTC"
    blocked_resource_types: list[str] = Field(
        default_factory=lambda: ["image", "font", "media"]
    )
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-blink-features=AutomationControlled",
        ]
    )
    idle_timeout_seconds: float = 300.0
    idle_check_interval_seconds: float = 60.0
    screenshot_quality: int = 80


class DetectorConfig(BaseModel):
    # AI settings
    ai_enabled: bool = True
    ai_model: str = "claude-sonnet-4-20250514"
    ai_max_tokens: int = 4096

    capture_screenshot: bool = True
    trigger_auth_modals: bool = True
    max_parallel_scans: int = 3

    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    limits: LimitConfig = Field(default_factory=LimitConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)

    # Where AI exchanges are dumped for debugging; disabled when unset
    debug_dir: Optional[str] = None

    @classmethod
    def load(cls, path: str | Path) -> "DetectorConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
