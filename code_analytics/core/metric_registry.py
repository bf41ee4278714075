"""Code Analytics — Unified Metric Registry.

Defines the canonical set of metrics per provider, their classification
and the policy the summary engine uses to fold daily records into one
value. When adding a provider, register its metrics here so the engines
treat them uniformly.
"""

from enum import Enum
from typing import Dict, List, Optional

from code_analytics.core.aggregate import Derived, dollars, percent


class MetricType(str, Enum):
    """How a metric is categorised."""

    VOLUME = "volume"  # Raw counts: PRs, sessions, lines
    COST = "cost"  # Monetary: spend, cost (cents)
    DURATION = "duration"  # Elapsed time: cycle time hours
    DERIVED = "derived"  # Computed after accumulation: percentages, dollars


class AggregationPolicy(str, Enum):
    """How daily records combine across a date range."""

    SUM = "sum"  # Daily deltas
    LATEST = "latest"  # Running totals reported by the provider; the newest record wins
    MEAN = "mean"  # Mean over the records that reported a nonzero value
    DISTINCT = "distinct"  # Distinct by_user keys whose flag field is nonzero


class MetricDefinition:
    """Describes a single metric."""

    def __init__(
        self,
        name: str,
        metric_type: MetricType,
        unit: str = "",
        description: str = "",
        policy: AggregationPolicy = AggregationPolicy.SUM,
        flag_field: Optional[str] = None,
    ):
        self.name = name
        self.metric_type = metric_type
        self.unit = unit
        self.description = description
        self.policy = policy
        self.flag_field = flag_field

    def __repr__(self) -> str:
        return f"<Metric {self.name} ({self.metric_type.value}, {self.policy.value})>"


# Storage keys: (source, metric_kind)
GITHUB_PULL_REQUESTS = ("github", "pull_requests")
CURSOR_DAILY_USAGE = ("cursor", "daily_usage")
CURSOR_SPEND = ("cursor", "spend")
CLAUDE_DAILY = ("claude", "daily")

SOURCES = ("github", "cursor", "claude")


# ─────────────────────────────────────────────
# GITHUB: pull request metrics
# ─────────────────────────────────────────────

GITHUB_METRICS: Dict[str, MetricDefinition] = {
    "pr_count": MetricDefinition("pr_count", MetricType.VOLUME, "count", "Pull requests opened"),
    "merged_count": MetricDefinition("merged_count", MetricType.VOLUME, "count", "Pull requests merged"),
    "total_cycle_time_hours": MetricDefinition(
        "total_cycle_time_hours", MetricType.DURATION, "hours", "Summed open-to-merge time"
    ),
    "avg_cycle_time_hours": MetricDefinition(
        "avg_cycle_time_hours",
        MetricType.DURATION,
        "hours",
        "Mean open-to-merge time",
        policy=AggregationPolicy.MEAN,
    ),
    "total_comments": MetricDefinition("total_comments", MetricType.VOLUME, "count", "PR discussion comments"),
    "lines_added": MetricDefinition("lines_added", MetricType.VOLUME, "lines", "Lines added by merged PRs"),
    "lines_removed": MetricDefinition("lines_removed", MetricType.VOLUME, "lines", "Lines removed by merged PRs"),
    "comments_made": MetricDefinition("comments_made", MetricType.VOLUME, "count", "Review comments written"),
    "comments_received": MetricDefinition(
        "comments_received", MetricType.VOLUME, "count", "Review comments received from others"
    ),
}

GITHUB_DERIVED: List[Derived] = [
    Derived("avg_cycle_time_hours", ("total_cycle_time_hours",), ("merged_count",)),
]


# ─────────────────────────────────────────────
# CURSOR: Admin API daily usage and spend
# ─────────────────────────────────────────────

CURSOR_USAGE_COUNTERS = (
    "total_lines_added",
    "total_lines_deleted",
    "accepted_lines_added",
    "total_tabs_shown",
    "total_tabs_accepted",
    "composer_requests",
    "chat_requests",
    "agent_requests",
    "total_requests",
)

CURSOR_USAGE_METRICS: Dict[str, MetricDefinition] = {
    **{
        name: MetricDefinition(name, MetricType.VOLUME, "count")
        for name in CURSOR_USAGE_COUNTERS
    },
    "active_users": MetricDefinition(
        "active_users",
        MetricType.VOLUME,
        "count",
        "Distinct members active in the range",
        policy=AggregationPolicy.DISTINCT,
        flag_field="active_days",
    ),
}

CURSOR_USAGE_DERIVED: List[Derived] = [
    percent("ai_code_percent", "accepted_lines_added", "total_lines_added"),
    percent("tab_accept_rate", "total_tabs_accepted", "total_tabs_shown"),
]

CURSOR_SPEND_METRICS: Dict[str, MetricDefinition] = {
    name: MetricDefinition(name, MetricType.COST, unit, policy=AggregationPolicy.LATEST)
    for name, unit in (
        ("spend_cents", "cents"),
        ("included_spend_cents", "cents"),
        ("fast_premium_requests", "count"),
    )
}

CURSOR_SPEND_DERIVED: List[Derived] = [
    dollars("total_spend_dollars", "spend_cents"),
    dollars("total_included_spend_dollars", "included_spend_cents"),
    dollars("total_usage_dollars", "spend_cents", "included_spend_cents"),
]


# ─────────────────────────────────────────────
# CLAUDE CODE: usage report
# ─────────────────────────────────────────────

CLAUDE_COUNTERS = (
    "sessions",
    "lines_added",
    "lines_removed",
    "commits",
    "pull_requests",
    "edit_accepted",
    "edit_rejected",
    "write_accepted",
    "write_rejected",
    "notebook_edit_accepted",
    "notebook_edit_rejected",
    "cost_cents",
    "tokens_input",
    "tokens_output",
    "tokens_cache_read",
    "tokens_cache_creation",
)

CLAUDE_METRICS: Dict[str, MetricDefinition] = {
    name: MetricDefinition(
        name,
        MetricType.COST if name == "cost_cents" else MetricType.VOLUME,
        "cents" if name == "cost_cents" else "count",
    )
    for name in CLAUDE_COUNTERS
}

CLAUDE_ACCEPTED = ("edit_accepted", "write_accepted", "notebook_edit_accepted")
CLAUDE_REJECTED = ("edit_rejected", "write_rejected", "notebook_edit_rejected")

CLAUDE_DERIVED: List[Derived] = [
    dollars("cost_dollars", "cost_cents"),
    percent("tool_acceptance_rate", CLAUDE_ACCEPTED, CLAUDE_ACCEPTED + CLAUDE_REJECTED),
]


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────

REGISTRY: Dict[tuple, Dict[str, MetricDefinition]] = {
    GITHUB_PULL_REQUESTS: GITHUB_METRICS,
    CURSOR_DAILY_USAGE: CURSOR_USAGE_METRICS,
    CURSOR_SPEND: CURSOR_SPEND_METRICS,
    CLAUDE_DAILY: CLAUDE_METRICS,
}

DERIVED: Dict[tuple, List[Derived]] = {
    GITHUB_PULL_REQUESTS: GITHUB_DERIVED,
    CURSOR_DAILY_USAGE: CURSOR_USAGE_DERIVED,
    CURSOR_SPEND: CURSOR_SPEND_DERIVED,
    CLAUDE_DAILY: CLAUDE_DERIVED,
}


def get_metric(source: str, metric_kind: str, name: str) -> MetricDefinition | None:
    """Look up a metric by storage key and name."""
    return REGISTRY.get((source, metric_kind), {}).get(name)


def metrics_by_policy(policy: AggregationPolicy) -> list[MetricDefinition]:
    """Return all metrics folded with a given policy."""
    return [m for metrics in REGISTRY.values() for m in metrics.values() if m.policy == policy]
