"""Code Analytics — Backfill Pipeline.

Runs the full data flow for one provider over a date window:
  validate → fetch per day (sequentially) → parse → upsert per key

Configuration problems raise before anything is fetched. A provider
failure on one day (or one repository) is logged, recorded in the result
and skipped; the remaining days still run.
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlmodel import Session

from code_analytics.config import settings
from code_analytics.connectors.base import ProviderAPIError, ProviderClient
from code_analytics.connectors.claude.client import ClaudeClient
from code_analytics.connectors.claude.transformer import parse_claude_usage
from code_analytics.connectors.cursor.client import CursorClient
from code_analytics.connectors.cursor.transformer import parse_daily_usage, parse_spend
from code_analytics.connectors.github.client import GitHubClient
from code_analytics.connectors.github.transformer import calculate_cycle_time, parse_pull_requests
from code_analytics.core.accessors import date_key, safe_number
from code_analytics.core.aggregate import merge_aggregates
from code_analytics.core.dates import date_range, days_in_range, require_date_range
from code_analytics.core.errors import ConfigurationError
from code_analytics.core.logging import get_logger
from code_analytics.core.metric_registry import (
    CLAUDE_DAILY,
    CURSOR_DAILY_USAGE,
    CURSOR_SPEND,
    GITHUB_DERIVED,
    GITHUB_PULL_REQUESTS,
    SOURCES,
)
from code_analytics.models.dashboard_models import BackfillResult
from code_analytics.models.raw_models import CommentRecord, PullRequestRecord
from code_analytics.storage.identity_store import get_config
from code_analytics.storage.metric_store import save_metric

logger = get_logger("analyzer.pipeline")

GITHUB_REPOS_KEY = "github_repos"


# ─────────────────────────────────────────────
# CONFIGURATION
# ─────────────────────────────────────────────


def resolve_repos(session: Session) -> List[str]:
    """Repositories to read, from the config table if set, else the environment."""
    stored = get_config(session, GITHUB_REPOS_KEY)
    raw = stored if stored is not None else settings.github_repos
    return [r.strip() for r in raw.split(",") if r.strip()]


def _split_repo(repo: str) -> tuple[str, str]:
    owner, _, name = repo.partition("/")
    if not owner or not name or "/" in name:
        raise ConfigurationError(f"GitHub repository must be 'owner/repo', got {repo!r}")
    return owner, name


def _max_range_days(source: str) -> int:
    return {
        "github": settings.github_max_range_days,
        "cursor": settings.cursor_max_range_days,
        "claude": settings.claude_max_range_days,
    }[source]


def validate_backfill(
    session: Session,
    source: str,
    start_date: Optional[str],
    end_date: Optional[str],
    client: Optional[ProviderClient] = None,
) -> tuple[str, str]:
    """Raise ConfigurationError for anything that would make the backfill pointless."""
    if source not in SOURCES:
        raise ConfigurationError(f"Unknown source {source!r}; expected one of {', '.join(SOURCES)}")

    start_date, end_date = require_date_range(start_date, end_date)
    limit = _max_range_days(source)
    if days_in_range(start_date, end_date) > limit:
        raise ConfigurationError(f"{source} backfill range cannot exceed {limit} days")

    if client is None:
        credential = {
            "github": settings.github_token,
            "cursor": settings.cursor_api_key,
            "claude": settings.claude_admin_key,
        }[source]
        if not credential:
            raise ConfigurationError(f"No API credentials configured for {source}")

    if source == "github":
        repos = resolve_repos(session)
        if not repos:
            raise ConfigurationError("No GitHub repositories configured")
        for repo in repos:
            _split_repo(repo)

    return start_date, end_date


def configured_sources(session: Session) -> List[str]:
    """Sources with credentials (and, for GitHub, repositories) in place."""
    sources = []
    if settings.github_token and resolve_repos(session):
        sources.append("github")
    if settings.cursor_api_key:
        sources.append("cursor")
    if settings.claude_admin_key:
        sources.append("claude")
    return sources


def _make_client(source: str) -> ProviderClient:
    if source == "github":
        return GitHubClient()
    if source == "cursor":
        return CursorClient()
    return ClaudeClient()


# ─────────────────────────────────────────────
# PER-SOURCE BACKFILLS
# ─────────────────────────────────────────────


async def _backfill_github(
    session: Session,
    client: GitHubClient,
    start_date: str,
    end_date: str,
    result: BackfillResult,
) -> None:
    days = date_range(start_date, end_date)
    parts: Dict[str, list] = defaultdict(list)
    succeeded = 0

    for repo in resolve_repos(session):
        owner, name = _split_repo(repo)
        try:
            prs = await client.fetch_pull_requests(owner, name, start_date, end_date)
            if settings.github_fetch_pr_details:
                prs = [await _with_details(client, owner, name, pr) for pr in prs]
            comments = await client.fetch_comments(owner, name, start_date)
        except ProviderAPIError as e:
            logger.error(f"GitHub fetch failed for {repo}: {e}", extra={"source": "github", "status_code": e.status_code})
            result.failed.append(repo)
            continue
        succeeded += 1

        # Comments belong to the day their PR was created
        prs_by_day: Dict[str, list] = defaultdict(list)
        day_by_number: Dict[int, str] = {}
        for pr in prs:
            day = date_key(pr.get("created_at"))
            prs_by_day[day].append(pr)
            number = int(safe_number(pr.get("number")))
            if number:
                day_by_number[number] = day
        comments_by_day: Dict[str, list] = defaultdict(list)
        for comment in comments:
            if not isinstance(comment, dict):
                continue
            day = day_by_number.get(CommentRecord.model_validate(comment).pr_number or 0)
            if day is not None:
                comments_by_day[day].append(comment)

        for day in days:
            parts[day].append(parse_pull_requests(prs_by_day.get(day, []), comments_by_day.get(day, [])))

    # A day built from a subset of repos would overwrite complete totals
    if result.failed:
        logger.warning(
            f"{len(result.failed)} of {succeeded + len(result.failed)} GitHub repositories failed; nothing saved",
            extra={"source": "github"},
        )
        return

    for day in days:
        aggregate = merge_aggregates(parts[day], GITHUB_DERIVED)
        save_metric(session, *GITHUB_PULL_REQUESTS, day, aggregate)
        result.saved += 1


async def _with_details(client: GitHubClient, owner: str, repo: str, pr: Dict[str, Any]) -> Dict[str, Any]:
    """The list endpoint omits additions/deletions; merged PRs need them."""
    if not isinstance(pr, dict) or calculate_cycle_time(PullRequestRecord.model_validate(pr)) is None:
        return pr
    if "additions" in pr and "deletions" in pr:
        return pr
    detail = await client.fetch_pull_request(owner, repo, int(safe_number(pr.get("number"))))
    return {**pr, **detail} if isinstance(detail, dict) else pr


async def _backfill_cursor(
    session: Session,
    client: CursorClient,
    start_date: str,
    end_date: str,
    result: BackfillResult,
) -> None:
    for day in date_range(start_date, end_date):
        try:
            response = await client.fetch_daily_usage(day, day)
        except ProviderAPIError as e:
            logger.error(f"Cursor usage fetch failed: {e}", extra={"source": "cursor", "date": day})
            result.failed.append(day)
            continue
        save_metric(session, *CURSOR_DAILY_USAGE, day, parse_daily_usage(response))
        result.saved += 1

    # Spend is a billing-cycle snapshot, recorded once per backfill
    try:
        response = await client.fetch_spend()
    except ProviderAPIError as e:
        logger.error(f"Cursor spend fetch failed: {e}", extra={"source": "cursor", "date": end_date})
        result.failed.append("spend")
        return
    save_metric(session, *CURSOR_SPEND, end_date, parse_spend(response))
    result.saved += 1


async def _backfill_claude(
    session: Session,
    client: ClaudeClient,
    start_date: str,
    end_date: str,
    result: BackfillResult,
) -> None:
    for day in date_range(start_date, end_date):
        try:
            response = await client.fetch_usage(day)
        except ProviderAPIError as e:
            logger.error(f"Claude Code usage fetch failed: {e}", extra={"source": "claude", "date": day})
            result.failed.append(day)
            continue
        save_metric(session, *CLAUDE_DAILY, day, parse_claude_usage(response))
        result.saved += 1


_BACKFILLS = {
    "github": _backfill_github,
    "cursor": _backfill_cursor,
    "claude": _backfill_claude,
}


async def run_backfill(
    session: Session,
    source: str,
    start_date: Optional[str],
    end_date: Optional[str],
    client: Optional[ProviderClient] = None,
) -> BackfillResult:
    """Fetch, parse and store ``source`` for every day in the window."""
    start_date, end_date = validate_backfill(session, source, start_date, end_date, client)
    logger.info(f"Starting {source} backfill: {start_date} → {end_date}", extra={"source": source})

    result = BackfillResult(source=source, start_date=start_date, end_date=end_date)
    owns_client = client is None
    client = client or _make_client(source)
    try:
        await _BACKFILLS[source](session, client, start_date, end_date, result)
    finally:
        if owns_client:
            await client.close()

    result.message = f"Saved {result.saved} {source} records for {start_date} → {end_date}"
    if result.failed:
        result.message += f"; failed: {', '.join(result.failed)}"
    logger.info(result.message, extra={"source": source})
    return result
