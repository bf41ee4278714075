"""Code Analytics — Cursor Raw → Normalized Transformer.

Admin API payloads (daily usage, team spend) are the source of truth.
The legacy enterprise parsers (AI-commit attribution, DAU) are kept for
teams still exporting those reports; the backfill does not call them.
"""

from typing import Any, Dict, Optional

from code_analytics.core.accessors import date_key, first_present, safe_ratio
from code_analytics.core.aggregate import AggregateBuilder, percent
from code_analytics.core.logging import get_logger
from code_analytics.core.metric_registry import (
    CURSOR_SPEND_DERIVED,
    CURSOR_USAGE_COUNTERS,
    CURSOR_USAGE_DERIVED,
)
from code_analytics.models.normalized_models import NormalizedAggregate
from code_analytics.models.raw_models import (
    AiCommitRecord,
    DailyUsageRecord,
    DailyUsageResponse,
    DauRecord,
    MemberSpendRecord,
    SpendResponse,
)

logger = get_logger("cursor.transformer")

SPEND_FIELDS = ("spend_cents", "included_spend_cents", "fast_premium_requests")


def _usage_values(record: DailyUsageRecord) -> Dict[str, float]:
    requests = record.composer_requests + record.chat_requests + record.agent_requests
    return {
        "total_lines_added": record.total_lines_added,
        "total_lines_deleted": record.total_lines_deleted,
        "accepted_lines_added": record.accepted_lines_added,
        "total_tabs_shown": record.total_tabs_shown,
        "total_tabs_accepted": record.total_tabs_accepted,
        "composer_requests": record.composer_requests,
        "chat_requests": record.chat_requests,
        "agent_requests": record.agent_requests,
        "total_requests": requests,
        "active_days": 1 if record.is_active else 0,
    }


def parse_daily_usage(response: Optional[Dict[str, Any]]) -> NormalizedAggregate:
    """Aggregate ``/teams/daily-usage-data`` rows.

    ``active_users`` counts distinct emails flagged active: across the whole
    payload in totals, within each day in ``by_date``. A member active on
    three days is one active user whose line counts still sum all three.
    """
    builder = AggregateBuilder(
        CURSOR_USAGE_COUNTERS + ("active_users",),
        user_fields=CURSOR_USAGE_COUNTERS + ("active_days",),
        date_fields=CURSOR_USAGE_COUNTERS + ("active_users",),
        distinct=("active_users",),
    )
    rows = DailyUsageResponse.model_validate(response or {}).data

    for row in rows:
        record = DailyUsageRecord.model_validate(row)
        email = first_present(record.email)
        day = date_key(record.date)
        builder.add(email, day, _usage_values(record))
        if record.is_active:
            builder.mark("active_users", email, day)

    aggregate = builder.finish(CURSOR_USAGE_DERIVED)
    logger.info(
        f"Parsed {len(rows)} Cursor usage rows: {aggregate.totals['active_users']} active users, "
        f"{aggregate.totals['ai_code_percent']:.1f}% AI code"
    )
    return aggregate


def parse_spend(response: Optional[Dict[str, Any]]) -> NormalizedAggregate:
    """Aggregate ``/teams/spend`` per member.

    Dollars are derived from summed cents. ``total_usage_dollars`` includes
    the plan's included usage, so a member with no overage still shows cost.
    """
    builder = AggregateBuilder(SPEND_FIELDS, date_fields=())
    members = SpendResponse.model_validate(response or {}).team_member_spend

    for member in members:
        record = MemberSpendRecord.model_validate(member)
        builder.add(
            first_present(record.email),
            None,
            {
                "spend_cents": record.spend_cents,
                "included_spend_cents": record.included_spend_cents,
                "fast_premium_requests": record.fast_premium_requests,
            },
        )

    aggregate = builder.finish(CURSOR_SPEND_DERIVED)
    logger.info(
        f"Parsed spend for {len(members)} members: ${aggregate.totals['total_usage_dollars']:.2f} total usage"
    )
    return aggregate


# ─────────────────────────────────────────────
# LEGACY ENTERPRISE API
# ─────────────────────────────────────────────

AI_COMMIT_FIELDS = ("total_lines", "tab_lines", "composer_lines", "non_ai_lines", "ai_lines")


def parse_ai_commits(response: Optional[Dict[str, Any]]) -> NormalizedAggregate:
    """AI attribution from ``/analytics/ai-code/commits``.

    ``ai_percent`` here is (tab + composer) / total lines, which differs
    from the Admin API's accepted-lines definition.
    """
    builder = AggregateBuilder(AI_COMMIT_FIELDS, date_fields=())
    for row in DailyUsageResponse.model_validate(response or {}).data:
        commit = AiCommitRecord.model_validate(row)
        ai_lines = commit.tab_lines_added + commit.composer_lines_added
        builder.add(
            first_present(commit.user_email),
            None,
            {
                "total_lines": commit.total_lines_added,
                "tab_lines": commit.tab_lines_added,
                "composer_lines": commit.composer_lines_added,
                "non_ai_lines": commit.non_ai_lines_added,
                "ai_lines": ai_lines,
            },
        )
    return builder.finish([percent("ai_percent", "ai_lines", "total_lines")])


def parse_dau(response: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Daily active users from ``/analytics/team/dau``; ``avg_dau`` over reported days."""
    by_date: Dict[str, float] = {}
    for row in DailyUsageResponse.model_validate(response or {}).data:
        record = DauRecord.model_validate(row)
        by_date[date_key(record.date)] = record.dau
    total = sum(by_date.values())
    return {
        "by_date": by_date,
        "avg_dau": safe_ratio(total, len(by_date)),
    }
