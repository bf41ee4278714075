"""Code Analytics — Anthropic Claude Code Usage Report Client."""

from typing import Any, Dict, List

from code_analytics.config import settings
from code_analytics.connectors.base import ProviderClient
from code_analytics.core.logging import get_logger

logger = get_logger("claude.client")

PAGE_LIMIT = 1000
MAX_PAGES = 20


class ClaudeClient(ProviderClient):
    """Async client for ``/v1/organizations/usage_report/claude_code``."""

    source = "claude"

    def __init__(self, admin_key: str | None = None, base_url: str | None = None, **kwargs):
        self.admin_key = admin_key or settings.claude_admin_key or ""
        super().__init__(base_url or settings.anthropic_api_base, **kwargs)

    def _headers(self) -> Dict[str, str]:
        return {
            **super()._headers(),
            "x-api-key": self.admin_key,
            "anthropic-version": settings.anthropic_version,
        }

    async def fetch_usage(self, day: str) -> Dict[str, Any]:
        """All usage rows for one UTC day, following ``next_page`` cursors.

        Returns a single payload shaped like one API page.
        """
        rows: List[Dict[str, Any]] = []
        params: Dict[str, Any] = {"starting_at": day, "limit": PAGE_LIMIT}

        for _ in range(MAX_PAGES):
            page = await self._request("GET", "/v1/organizations/usage_report/claude_code", params)
            data = page.get("data") if isinstance(page, dict) else None
            rows.extend(data or [])
            next_page = page.get("next_page") if isinstance(page, dict) else None
            if not (isinstance(page, dict) and page.get("has_more") and next_page):
                break
            params = {**params, "page": next_page}

        logger.info(f"Fetched {len(rows)} Claude Code rows for {day}", extra={"source": self.source, "date": day})
        return {"data": rows, "has_more": False}
