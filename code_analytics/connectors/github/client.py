"""Code Analytics — GitHub REST Client.

Pull requests are listed newest-first and paging stops once a page
reaches PRs created before the requested window.
"""

from typing import Any, Dict, List

from code_analytics.config import settings
from code_analytics.connectors.base import ProviderClient
from code_analytics.core.accessors import date_key
from code_analytics.core.logging import get_logger

logger = get_logger("github.client")

PER_PAGE = 100
MAX_PAGES = 50


class GitHubClient(ProviderClient):
    """Async client for the GitHub REST API v3."""

    source = "github"

    def __init__(self, token: str | None = None, base_url: str | None = None, **kwargs):
        self.token = token or settings.github_token or ""
        super().__init__(base_url or settings.github_api_base, **kwargs)

    def _headers(self) -> Dict[str, str]:
        return {
            **super()._headers(),
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3+json",
        }

    async def _paginated_get(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Fetch every page of a list endpoint."""
        items: List[Dict[str, Any]] = []
        for page in range(1, MAX_PAGES + 1):
            batch = await self._request("GET", path, {**params, "per_page": PER_PAGE, "page": page})
            if not isinstance(batch, list) or not batch:
                break
            items.extend(batch)
            if len(batch) < PER_PAGE:
                break
        else:
            logger.warning(
                f"Stopped at {MAX_PAGES} pages of {path}; later results dropped",
                extra={"source": self.source, "endpoint": path},
            )
        return items

    async def fetch_pull_requests(
        self, owner: str, repo: str, start_date: str, end_date: str
    ) -> List[Dict[str, Any]]:
        """PRs in ``owner/repo`` created between ``start_date`` and ``end_date`` inclusive."""
        path = f"/repos/{owner}/{repo}/pulls"
        params = {"state": "all", "sort": "created", "direction": "desc"}
        prs: List[Dict[str, Any]] = []

        for page in range(1, MAX_PAGES + 1):
            batch = await self._request("GET", path, {**params, "per_page": PER_PAGE, "page": page})
            if not isinstance(batch, list) or not batch:
                break
            for pr in batch:
                created = date_key(pr.get("created_at"))
                if start_date <= created <= end_date:
                    prs.append(pr)
            oldest = date_key(batch[-1].get("created_at"), default="")
            if len(batch) < PER_PAGE or (oldest and oldest < start_date):
                break
        else:
            logger.warning(
                f"Stopped at {MAX_PAGES} pages of PRs for {owner}/{repo}; older PRs in the window dropped",
                extra={"source": self.source, "endpoint": path},
            )

        logger.info(f"Fetched {len(prs)} PRs from {owner}/{repo}", extra={"source": self.source})
        return prs

    async def fetch_pull_request(self, owner: str, repo: str, number: int) -> Dict[str, Any]:
        """Single PR detail (carries additions/deletions)."""
        return await self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}")

    async def fetch_comments(self, owner: str, repo: str, since: str) -> List[Dict[str, Any]]:
        """Review comments and PR conversation comments updated since ``since``."""
        params = {"since": f"{since}T00:00:00Z"}
        review = await self._paginated_get(f"/repos/{owner}/{repo}/pulls/comments", params)
        issue = await self._paginated_get(f"/repos/{owner}/{repo}/issues/comments", params)
        # Issue comments also cover plain issues; only those on PRs are kept later by number
        return review + issue
