"""Code Analytics — Team Engine.

Per-member view across providers. Each provider's by_user rows are folded
over the range, joined through the identity mappings, and only then are
ratios derived, so a member who appears under two keys gets one ratio
over their combined counters.
"""

from typing import Iterable, List

from code_analytics.analyzer.folding import derive, fold_by_user, group_records
from code_analytics.analyzer.identity import IdentityKind, IdentityResolver, MemberIdentity, reconcile
from code_analytics.core.logging import get_logger
from code_analytics.core.metric_registry import (
    CLAUDE_DAILY,
    CURSOR_DAILY_USAGE,
    CURSOR_SPEND,
    GITHUB_PULL_REQUESTS,
)
from code_analytics.models.dashboard_models import TeamMemberRow, TeamView
from code_analytics.models.normalized_models import StoredMetric

logger = get_logger("analyzer.team")

# member source label → (storage key, how by_user is keyed)
MEMBER_SOURCES = {
    "github": (GITHUB_PULL_REQUESTS, IdentityKind.GITHUB),
    "cursor_usage": (CURSOR_DAILY_USAGE, IdentityKind.EMAIL),
    "cursor_spend": (CURSOR_SPEND, IdentityKind.EMAIL),
    "claude": (CLAUDE_DAILY, IdentityKind.EMAIL),
}


def collect_members(records: Iterable[StoredMetric], mappings: Iterable = ()) -> List[MemberIdentity]:
    """Reconciled members with folded, derived metric rows per source."""
    grouped = group_records(records)
    resolver = IdentityResolver(mappings)

    rows_by_source = {}
    for label, (key, kind) in MEMBER_SOURCES.items():
        aggregates = [agg for _, agg in grouped.get(key, [])]
        rows_by_source[label] = (kind, fold_by_user(key, aggregates))

    members = reconcile(resolver, rows_by_source)
    for member in members:
        for label, row in member.metrics.items():
            derive(MEMBER_SOURCES[label][0], row)
    return members


def to_team_row(member: MemberIdentity) -> TeamMemberRow:
    github = member.metrics.get("github", {})
    usage = member.metrics.get("cursor_usage", {})
    spend = member.metrics.get("cursor_spend", {})
    claude = member.metrics.get("claude", {})

    cursor_dollars = spend.get("total_usage_dollars", 0)
    claude_dollars = claude.get("cost_dollars", 0)

    return TeamMemberRow(
        identifier=member.identifier,
        is_unmapped=member.is_unmapped,
        github_username=member.github_username,
        github_pr_count=int(github.get("pr_count", 0)),
        github_merged_count=int(github.get("merged_count", 0)),
        github_avg_cycle_time_hours=round(github.get("avg_cycle_time_hours", 0), 4),
        github_comments_made=int(github.get("comments_made", 0)),
        github_comments_received=int(github.get("comments_received", 0)),
        github_lines_added=int(github.get("lines_added", 0)),
        github_lines_removed=int(github.get("lines_removed", 0)),
        cursor_lines_added=int(usage.get("total_lines_added", 0)),
        cursor_accepted_lines=int(usage.get("accepted_lines_added", 0)),
        cursor_ai_code_percent=round(usage.get("ai_code_percent", 0), 4),
        cursor_tab_accept_rate=round(usage.get("tab_accept_rate", 0), 4),
        cursor_requests=int(usage.get("total_requests", 0)),
        cursor_active_days=int(usage.get("active_days", 0)),
        cursor_total_usage_dollars=round(cursor_dollars, 2),
        claude_sessions=int(claude.get("sessions", 0)),
        claude_lines_added=int(claude.get("lines_added", 0)),
        claude_commits=int(claude.get("commits", 0)),
        claude_pull_requests=int(claude.get("pull_requests", 0)),
        claude_cost_dollars=round(claude_dollars, 2),
        claude_tool_acceptance_rate=round(claude.get("tool_acceptance_rate", 0), 4),
        total_lines_added=int(usage.get("total_lines_added", 0) + claude.get("lines_added", 0)),
        total_cost_dollars=round(cursor_dollars + claude_dollars, 2),
    )


def build_team_view(
    records: Iterable[StoredMetric],
    mappings: Iterable = (),
    start_date: str = "",
    end_date: str = "",
) -> TeamView:
    members = [to_team_row(m) for m in collect_members(records, mappings)]
    unmapped = sum(1 for m in members if m.is_unmapped)
    logger.info(f"Team view: {len(members)} members, {unmapped} unmapped")
    return TeamView(start_date=start_date, end_date=end_date, members=members, unmapped_count=unmapped)
