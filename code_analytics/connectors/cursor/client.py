"""Code Analytics — Cursor Admin API Client.

Authentication: Basic Auth with the API key as username and an empty
password. Admin endpoints take POST bodies with epoch-millisecond dates.
"""

from datetime import datetime, timezone
from typing import Any, Dict

import httpx

from code_analytics.config import settings
from code_analytics.connectors.base import ProviderClient
from code_analytics.core.errors import ConfigurationError

MS_PER_DAY = 24 * 60 * 60 * 1000


def _epoch_ms(day: str) -> int:
    parsed = datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


class CursorClient(ProviderClient):
    """Async client for the Cursor team Admin API."""

    source = "cursor"

    def __init__(self, api_key: str | None = None, base_url: str | None = None, **kwargs):
        self.api_key = api_key or settings.cursor_api_key or ""
        super().__init__(base_url or settings.cursor_api_base, **kwargs)

    def _auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self.api_key, "")

    async def fetch_daily_usage(self, start_date: str, end_date: str) -> Dict[str, Any]:
        """``/teams/daily-usage-data`` for whole UTC days ``start_date``..``end_date``."""
        start_ms = _epoch_ms(start_date)
        # End of the last day, inclusive
        end_ms = _epoch_ms(end_date) + MS_PER_DAY - 1
        if end_ms - start_ms > settings.cursor_max_range_days * MS_PER_DAY:
            raise ConfigurationError(
                f"Cursor date range cannot exceed {settings.cursor_max_range_days} days"
            )
        return await self._request(
            "POST", "/teams/daily-usage-data", json_body={"startDate": start_ms, "endDate": end_ms}
        )

    async def fetch_spend(self) -> Dict[str, Any]:
        """Current billing-cycle spend per team member."""
        return await self._request("POST", "/teams/spend", json_body={})

