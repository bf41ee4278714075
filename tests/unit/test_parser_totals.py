"""Totals agree with their breakdowns for every additive metric.

Each parser's ``totals`` must equal the sum over ``by_user`` rows and over
``by_date`` rows, including rows attributed to "unknown" users or days.
"""

import pytest

from code_analytics.connectors.claude.transformer import parse_claude_usage
from code_analytics.connectors.cursor.transformer import parse_daily_usage, parse_spend
from code_analytics.connectors.github.transformer import parse_pull_requests
from code_analytics.core.metric_registry import (
    CLAUDE_DAILY,
    CURSOR_DAILY_USAGE,
    CURSOR_SPEND,
    GITHUB_PULL_REQUESTS,
    REGISTRY,
    AggregationPolicy,
)

NON_ADDITIVE = (AggregationPolicy.MEAN, AggregationPolicy.DISTINCT)


def _github():
    prs = [
        {
            "number": 1,
            "user": {"login": "alice-gh"},
            "created_at": "2026-01-05T08:00:00Z",
            "merged_at": "2026-01-05T11:30:00Z",
            "additions": 40,
            "deletions": 4,
            "comments": 2,
        },
        {
            "number": 2,
            "user": None,
            "created_at": "2026-01-06T08:00:00Z",
            "merged_at": "2026-01-07T08:00:00Z",
            "additions": 7,
            "deletions": 1,
        },
        {"number": 3, "user": {"login": "bob-gh"}, "created_at": None, "additions": 9},
    ]
    comments = [
        {"user": {"login": "bob-gh"}, "pull_request_url": "https://api.github.com/repos/a/b/pulls/1"},
        {"user": {"login": "alice-gh"}, "pull_request_url": "https://api.github.com/repos/a/b/pulls/1"},
        {"user": {}, "issue_url": "https://api.github.com/repos/a/b/issues/3"},
        {"user": {"login": "carol-gh"}, "pull_request_url": "https://api.github.com/repos/a/b/pulls/99"},
    ]
    return parse_pull_requests(prs, comments)


def _cursor_usage():
    def row(email, day, active, added):
        return {
            "email": email,
            "date": day,
            "isActive": active,
            "totalLinesAdded": added,
            "totalLinesDeleted": 2,
            "acceptedLinesAdded": added // 2,
            "totalTabsShown": 6,
            "totalTabsAccepted": 3,
            "composerRequests": 1,
            "chatRequests": 2,
            "agentRequests": 3,
        }

    return parse_daily_usage(
        {
            "data": [
                row("alice@x.com", "2026-01-05", True, 100),
                row("alice@x.com", "2026-01-06", True, 50),
                row(None, "2026-01-05", False, 10),
                row("bob@x.com", None, True, 30),
            ]
        }
    )


def _cursor_spend():
    return parse_spend(
        {
            "teamMemberSpend": [
                {"email": "alice@x.com", "spendCents": 250, "includedSpendCents": 2000, "fastPremiumRequests": 4},
                {"email": None, "spendCents": 90},
                {"email": "bob@x.com", "includedSpendCents": 500, "fastPremiumRequests": 1},
            ]
        }
    )


def _claude():
    def row(actor, day, sessions, cost):
        return {
            "date": day,
            "actor": actor,
            "core_metrics": {
                "num_sessions": sessions,
                "lines_of_code": {"added": sessions * 10, "removed": sessions},
                "commits_by_claude_code": 1,
                "pull_requests_by_claude_code": 1,
            },
            "tool_actions": {
                "edit_tool": {"accepted": 3, "rejected": 1},
                "write_tool": {"accepted": 1, "rejected": 0},
                "notebook_edit_tool": {"accepted": 0, "rejected": 2},
            },
            "model_breakdown": [
                {"tokens": {"input": 10, "output": 5, "cache_read": 2, "cache_creation": 1}, "estimated_cost": {"amount": cost}}
            ],
        }

    return parse_claude_usage(
        {
            "data": [
                row({"type": "user_actor", "email_address": "alice@x.com"}, "2026-01-05T00:00:00Z", 3, 120),
                row({"type": "api_actor", "api_key_name": "ci-bot"}, "2026-01-05T00:00:00Z", 1, 40),
                row({}, "2026-01-06T00:00:00Z", 2, 15),
                row({"type": "user_actor", "email_address": "alice@x.com"}, None, 4, 60),
            ]
        }
    )


CASES = [
    pytest.param(GITHUB_PULL_REQUESTS, _github, id="github"),
    pytest.param(CURSOR_DAILY_USAGE, _cursor_usage, id="cursor-usage"),
    pytest.param(CURSOR_SPEND, _cursor_spend, id="cursor-spend"),
    pytest.param(CLAUDE_DAILY, _claude, id="claude"),
]


def _additive(key):
    return [name for name, metric in REGISTRY[key].items() if metric.policy not in NON_ADDITIVE]


@pytest.mark.parametrize("key,build", CASES)
def test_totals_equal_sum_over_users(key, build):
    agg = build()
    assert "unknown" in agg.by_user

    checked = 0
    for name in _additive(key):
        if not any(name in row for row in agg.by_user.values()):
            continue
        checked += 1
        assert agg.totals[name] == pytest.approx(sum(row.get(name, 0) for row in agg.by_user.values())), name
    assert checked


@pytest.mark.parametrize("key,build", [c for c in CASES if c.id != "cursor-spend"])
def test_totals_equal_sum_over_dates(key, build):
    agg = build()
    assert "unknown" in agg.by_date

    checked = 0
    for name in _additive(key):
        if not any(name in row for row in agg.by_date.values()):
            continue
        checked += 1
        assert agg.totals[name] == pytest.approx(sum(row.get(name, 0) for row in agg.by_date.values())), name
    assert checked


def test_spend_has_no_date_breakdown():
    assert _cursor_spend().by_date == {}
