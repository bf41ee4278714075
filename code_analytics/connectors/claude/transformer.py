"""Code Analytics — Claude Code Usage Report → Normalized Aggregate."""

from typing import Any, Dict, Optional

from code_analytics.core.accessors import date_key, first_present
from code_analytics.core.aggregate import AggregateBuilder
from code_analytics.core.logging import get_logger
from code_analytics.core.metric_registry import CLAUDE_COUNTERS, CLAUDE_DERIVED
from code_analytics.models.normalized_models import NormalizedAggregate
from code_analytics.models.raw_models import ClaudeUsageRecord, ClaudeUsageResponse

logger = get_logger("claude.transformer")


def _record_values(record: ClaudeUsageRecord) -> Dict[str, float]:
    """Flatten one usage row. Cost and tokens add up across every model used."""
    core = record.core_metrics
    tools = record.tool_actions
    values = {
        "sessions": core.num_sessions,
        "lines_added": core.lines_of_code.added,
        "lines_removed": core.lines_of_code.removed,
        "commits": core.commits_by_claude_code,
        "pull_requests": core.pull_requests_by_claude_code,
        "edit_accepted": tools.edit_tool.accepted,
        "edit_rejected": tools.edit_tool.rejected,
        "write_accepted": tools.write_tool.accepted,
        "write_rejected": tools.write_tool.rejected,
        "notebook_edit_accepted": tools.notebook_edit_tool.accepted,
        "notebook_edit_rejected": tools.notebook_edit_tool.rejected,
        "cost_cents": 0,
        "tokens_input": 0,
        "tokens_output": 0,
        "tokens_cache_read": 0,
        "tokens_cache_creation": 0,
    }
    for model in record.models:
        values["cost_cents"] += model.estimated_cost.amount
        values["tokens_input"] += model.tokens.input
        values["tokens_output"] += model.tokens.output
        values["tokens_cache_read"] += model.tokens.cache_read
        values["tokens_cache_creation"] += model.tokens.cache_creation
    return values


def parse_claude_usage(response: Optional[Dict[str, Any]]) -> NormalizedAggregate:
    """Aggregate a ``usage_report/claude_code`` page.

    Rows are attributed to the actor's email, else the API key name,
    else ``"unknown"``.
    """
    builder = AggregateBuilder(CLAUDE_COUNTERS)
    rows = ClaudeUsageResponse.model_validate(response or {}).data

    for row in rows:
        record = ClaudeUsageRecord.model_validate(row)
        actor = first_present(record.actor.email_address, record.actor.api_key_name)
        builder.add(actor, date_key(record.date), _record_values(record))

    aggregate = builder.finish(CLAUDE_DERIVED)
    logger.info(
        f"Parsed {len(rows)} Claude Code rows: {aggregate.totals['sessions']} sessions, "
        f"${aggregate.totals['cost_dollars']:.2f}"
    )
    return aggregate
