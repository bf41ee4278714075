"""Code Analytics — AI Adoption Engine.

Relates AI tool output to what actually shipped. "Shipped" lines are the
lines added by merged pull requests; AI lines are Claude Code lines plus
Cursor accepted lines. Both shares are capped at 100 because AI lines can
exceed merged lines (abandoned branches, rewritten suggestions).
"""

from typing import Dict, Iterable, List

from code_analytics.analyzer.summary_engine import fold_sources
from code_analytics.analyzer.team_engine import collect_members
from code_analytics.core.accessors import Number, capped_percent
from code_analytics.core.logging import get_logger
from code_analytics.core.metric_registry import (
    CLAUDE_DAILY,
    CURSOR_DAILY_USAGE,
    CURSOR_SPEND,
    GITHUB_PULL_REQUESTS,
)
from code_analytics.models.dashboard_models import (
    AdoptionMemberRow,
    AdoptionSummary,
    AdoptionView,
    ClaudeBreakdown,
    CursorBreakdown,
    ToolBreakdown,
)
from code_analytics.models.normalized_models import StoredMetric

logger = get_logger("analyzer.adoption")


def _claude_breakdown(claude: Dict[str, Number]) -> ClaudeBreakdown:
    return ClaudeBreakdown(
        sessions=int(claude.get("sessions", 0)),
        lines_added=int(claude.get("lines_added", 0)),
        pull_requests=int(claude.get("pull_requests", 0)),
        acceptance_rate=round(claude.get("tool_acceptance_rate", 0), 4),
        cost_dollars=round(claude.get("cost_dollars", 0), 2),
    )


def _cursor_breakdown(usage: Dict[str, Number], spend: Dict[str, Number]) -> CursorBreakdown:
    return CursorBreakdown(
        total_lines_added=int(usage.get("total_lines_added", 0)),
        accepted_lines_added=int(usage.get("accepted_lines_added", 0)),
        ai_percent=round(usage.get("ai_code_percent", 0), 4),
        acceptance_rate=round(usage.get("tab_accept_rate", 0), 4),
        cost_dollars=round(spend.get("total_usage_dollars", 0), 2),
    )


def _ai_lines(usage: Dict[str, Number], claude: Dict[str, Number]) -> Number:
    return claude.get("lines_added", 0) + usage.get("accepted_lines_added", 0)


def build_adoption_view(
    records: Iterable[StoredMetric],
    mappings: Iterable = (),
    start_date: str = "",
    end_date: str = "",
) -> AdoptionView:
    records = list(records)
    folded = fold_sources(records)
    github = folded[GITHUB_PULL_REQUESTS]
    usage = folded[CURSOR_DAILY_USAGE]
    spend = folded[CURSOR_SPEND]
    claude = folded[CLAUDE_DAILY]

    ai_lines = _ai_lines(usage, claude)
    summary = AdoptionSummary(
        pr_lines_added=int(github["lines_added"]),
        pr_lines_removed=int(github["lines_removed"]),
        merged_count=int(github["merged_count"]),
        avg_cycle_time_hours=round(github["avg_cycle_time_hours"], 4),
        ai_lines_added=int(ai_lines),
        ai_shipped_percent=round(capped_percent(ai_lines, github["lines_added"]), 4),
        ai_attributed_pr_percent=round(capped_percent(claude["pull_requests"], github["pr_count"]), 4),
        cost_dollars=round(claude["cost_dollars"] + spend["total_usage_dollars"], 2),
    )

    by_user: List[AdoptionMemberRow] = []
    for member in collect_members(records, mappings):
        gh = member.metrics.get("github", {})
        m_usage = member.metrics.get("cursor_usage", {})
        m_spend = member.metrics.get("cursor_spend", {})
        m_claude = member.metrics.get("claude", {})
        member_ai = _ai_lines(m_usage, m_claude)
        by_user.append(
            AdoptionMemberRow(
                identifier=member.identifier,
                is_unmapped=member.is_unmapped,
                pr_lines_added=int(gh.get("lines_added", 0)),
                merged_count=int(gh.get("merged_count", 0)),
                avg_cycle_time_hours=round(gh.get("avg_cycle_time_hours", 0), 4),
                ai_lines_added=int(member_ai),
                ai_shipped_percent=round(capped_percent(member_ai, gh.get("lines_added", 0)), 4),
                cost_dollars=round(m_claude.get("cost_dollars", 0) + m_spend.get("total_usage_dollars", 0), 2),
                claude=_claude_breakdown(m_claude),
                cursor=_cursor_breakdown(m_usage, m_spend),
            )
        )
    by_user.sort(key=lambda row: row.pr_lines_added, reverse=True)

    logger.info(
        f"Adoption: {summary.ai_shipped_percent}% of {summary.pr_lines_added} shipped lines from AI tools"
    )
    return AdoptionView(
        start_date=start_date,
        end_date=end_date,
        summary=summary,
        tool_breakdown=ToolBreakdown(
            claude=_claude_breakdown(claude),
            cursor=_cursor_breakdown(usage, spend),
        ),
        by_user=by_user,
    )
