"""Code Analytics — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── GitHub ──
    github_token: Optional[str] = None
    github_repos: str = ""  # comma-separated owner/repo
    github_api_base: str = "https://api.github.com"
    github_fetch_pr_details: bool = True  # line stats need one call per merged PR
    github_max_range_days: int = 365

    # ── Cursor Admin API ──
    cursor_api_key: Optional[str] = None
    cursor_api_base: str = "https://api.cursor.com"
    cursor_max_range_days: int = 30

    # ── Claude Code usage report ──
    claude_admin_key: Optional[str] = None
    anthropic_api_base: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"
    claude_max_range_days: int = 90

    # ── HTTP ──
    http_timeout: float = 30.0
    max_retries: int = 3

    # ── Database ──
    database_url: str = ""

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    backfill_hour: int = 3  # Daily backfill at 3 AM UTC
    default_lookback_days: int = 30
    dashboard_max_range_days: int = 366

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/code_analytics.db"
        return "sqlite:///./code_analytics.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
