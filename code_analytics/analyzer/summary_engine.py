"""Code Analytics — Summary Engine.

Folds every stored record in a range into organization totals per
provider. Counters are summed, spend snapshots take the newest record,
cycle time is averaged over days that merged something, and active users
are counted once no matter how many days they were active.
"""

from typing import Iterable

from code_analytics.analyzer.folding import fold_totals, group_records
from code_analytics.core.logging import get_logger
from code_analytics.core.metric_registry import (
    CLAUDE_DAILY,
    CURSOR_DAILY_USAGE,
    CURSOR_SPEND,
    GITHUB_PULL_REQUESTS,
)
from code_analytics.models.dashboard_models import (
    ClaudeSummary,
    CursorSummary,
    DashboardSummary,
    GitHubSummary,
)
from code_analytics.models.normalized_models import StoredMetric

logger = get_logger("analyzer.summary")


def fold_sources(records: Iterable[StoredMetric]) -> dict:
    """Folded totals for every known storage key (empty keys fold to zeros)."""
    grouped = group_records(records)
    return {
        key: fold_totals(key, [agg for _, agg in grouped.get(key, [])])
        for key in (GITHUB_PULL_REQUESTS, CURSOR_DAILY_USAGE, CURSOR_SPEND, CLAUDE_DAILY)
    }


def build_summary(
    records: Iterable[StoredMetric],
    start_date: str = "",
    end_date: str = "",
) -> DashboardSummary:
    folded = fold_sources(records)
    github = folded[GITHUB_PULL_REQUESTS]
    usage = folded[CURSOR_DAILY_USAGE]
    spend = folded[CURSOR_SPEND]
    claude = folded[CLAUDE_DAILY]

    summary = DashboardSummary(
        start_date=start_date,
        end_date=end_date,
        github=GitHubSummary(
            pr_count=int(github["pr_count"]),
            merged_count=int(github["merged_count"]),
            avg_cycle_time_hours=round(github["avg_cycle_time_hours"], 4),
            total_comments=int(github["total_comments"]),
            lines_added=int(github["lines_added"]),
            lines_removed=int(github["lines_removed"]),
        ),
        cursor=CursorSummary(
            active_users=int(usage["active_users"]),
            total_lines_added=int(usage["total_lines_added"]),
            accepted_lines_added=int(usage["accepted_lines_added"]),
            total_requests=int(usage["total_requests"]),
            ai_code_percent=round(usage["ai_code_percent"], 4),
            tab_accept_rate=round(usage["tab_accept_rate"], 4),
            total_spend_dollars=round(spend["total_spend_dollars"], 2),
            total_included_spend_dollars=round(spend["total_included_spend_dollars"], 2),
            total_usage_dollars=round(spend["total_usage_dollars"], 2),
        ),
        claude=ClaudeSummary(
            sessions=int(claude["sessions"]),
            lines_added=int(claude["lines_added"]),
            lines_removed=int(claude["lines_removed"]),
            commits=int(claude["commits"]),
            pull_requests=int(claude["pull_requests"]),
            tokens_input=int(claude["tokens_input"]),
            tokens_output=int(claude["tokens_output"]),
            cost_dollars=round(claude["cost_dollars"], 2),
            tool_acceptance_rate=round(claude["tool_acceptance_rate"], 4),
        ),
    )
    logger.info(f"Summary built for {start_date or '?'} → {end_date or '?'}")
    return summary
