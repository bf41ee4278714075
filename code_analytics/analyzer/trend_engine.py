"""Code Analytics — Trend Engine.

Builds day-by-day chart series across providers on one shared date axis.
Every series has exactly one value per day in the window; days without a
stored record are 0. With ``user`` set, only by_user rows that resolve to
that member contribute.
"""

from typing import Dict, Iterable, List, Mapping, Optional

from code_analytics.analyzer.identity import IdentityKind, IdentityResolver
from code_analytics.analyzer.team_engine import MEMBER_SOURCES, collect_members
from code_analytics.core.accessors import Number, capped_percent, dig
from code_analytics.core.dates import date_range
from code_analytics.core.logging import get_logger
from code_analytics.core.metric_registry import CLAUDE_DAILY, CURSOR_DAILY_USAGE, GITHUB_PULL_REQUESTS
from code_analytics.models.dashboard_models import DailySeries
from code_analytics.models.normalized_models import NormalizedAggregate, StoredMetric

logger = get_logger("analyzer.trend")

SERIES = (
    "pr_count",
    "merged_count",
    "lines_shipped",
    "lines_removed",
    "claude_lines",
    "cursor_lines",
    "ai_lines",
    "ai_percent",
    "claude_sessions",
    "cursor_active_users",
    "cost_dollars",
)

_KIND_BY_KEY = {key: kind for key, kind in MEMBER_SOURCES.values()}


def _day_row(
    aggregate: NormalizedAggregate,
    key: tuple,
    resolver: IdentityResolver,
    user: Optional[str],
) -> Dict[str, Number]:
    """Totals for the day, or the sum of the member's by_user rows."""
    if user is None:
        return dict(aggregate.totals)
    kind = _KIND_BY_KEY[key]
    row: Dict[str, Number] = {}
    for provider_key, values in aggregate.by_user.items():
        if not resolver.matches(user, provider_key, kind):
            continue
        for name, value in values.items():
            row[name] = row.get(name, 0) + value
    if key == CURSOR_DAILY_USAGE:
        row["active_users"] = 1 if dig(row, "active_days") else 0
    return row


def build_daily_series(
    records: Iterable[StoredMetric],
    start_date: str,
    end_date: str,
    mappings: Iterable = (),
    user: Optional[str] = None,
) -> DailySeries:
    records = list(records)
    mappings = list(mappings)
    resolver = IdentityResolver(mappings)
    dates = date_range(start_date, end_date)

    # date → storage key → row
    days: Dict[str, Dict[tuple, Mapping[str, Number]]] = {d: {} for d in dates}
    for record in records:
        key = (record.source, record.metric_kind)
        if record.date not in days or key not in (GITHUB_PULL_REQUESTS, CURSOR_DAILY_USAGE, CLAUDE_DAILY):
            continue
        days[record.date][key] = _day_row(record.aggregate, key, resolver, user)

    series: Dict[str, List[float]] = {name: [] for name in SERIES}
    for day in dates:
        github = days[day].get(GITHUB_PULL_REQUESTS, {})
        usage = days[day].get(CURSOR_DAILY_USAGE, {})
        claude = days[day].get(CLAUDE_DAILY, {})

        shipped = dig(github, "lines_added")
        claude_lines = dig(claude, "lines_added")
        cursor_lines = dig(usage, "accepted_lines_added")
        ai_lines = claude_lines + cursor_lines

        series["pr_count"].append(dig(github, "pr_count"))
        series["merged_count"].append(dig(github, "merged_count"))
        series["lines_shipped"].append(shipped)
        series["lines_removed"].append(dig(github, "lines_removed"))
        series["claude_lines"].append(claude_lines)
        series["cursor_lines"].append(cursor_lines)
        series["ai_lines"].append(ai_lines)
        series["ai_percent"].append(round(capped_percent(ai_lines, shipped), 4))
        series["claude_sessions"].append(dig(claude, "sessions"))
        series["cursor_active_users"].append(dig(usage, "active_users"))
        # Cursor spend is a running snapshot, not a daily figure
        series["cost_dollars"].append(round(dig(claude, "cost_cents") / 100, 2))

    users = [m.identifier for m in collect_members(records, mappings)]
    logger.info(f"Daily series: {len(dates)} days, user={user or 'all'}")
    return DailySeries(
        start_date=start_date,
        end_date=end_date,
        user=user,
        dates=dates,
        series=series,
        users=users,
    )
