"""Tests for the Claude Code usage report parser."""

import pytest

from code_analytics.connectors.claude.transformer import parse_claude_usage


def _row(actor=None, day="2026-01-05T00:00:00Z", sessions=3, added=120, accepted=(8, 1), rejected=(2, 1), models=None):
    return {
        "date": day,
        "actor": actor,
        "core_metrics": {
            "num_sessions": sessions,
            "lines_of_code": {"added": added, "removed": 20},
            "commits_by_claude_code": 2,
            "pull_requests_by_claude_code": 1,
        },
        "tool_actions": {
            "edit_tool": {"accepted": accepted[0], "rejected": rejected[0]},
            "write_tool": {"accepted": accepted[1], "rejected": rejected[1]},
        },
        "model_breakdown": models
        if models is not None
        else [
            {
                "model": "claude-sonnet",
                "tokens": {"input": 100, "output": 50, "cache_read": 10, "cache_creation": 5},
                "estimated_cost": {"amount": 150, "currency": "USD"},
            },
            {"model": "claude-haiku", "tokens": {"input": 10, "output": 5}, "estimated_cost": {"amount": 50}},
        ],
    }


ALICE = {"type": "user_actor", "email_address": "alice@x.com"}


class TestParseClaudeUsage:
    def test_costs_and_tokens_sum_across_models(self):
        agg = parse_claude_usage({"data": [_row(ALICE)]})

        assert agg.totals["cost_cents"] == 200
        assert agg.totals["cost_dollars"] == 2.0
        assert agg.totals["tokens_input"] == 110
        assert agg.totals["tokens_cache_creation"] == 5

    def test_tool_acceptance_rate(self):
        agg = parse_claude_usage({"data": [_row(ALICE)]})
        # 9 accepted of 12 decisions
        assert agg.totals["tool_acceptance_rate"] == pytest.approx(75.0)

    def test_no_tool_decisions_gives_zero_rate(self):
        agg = parse_claude_usage({"data": [_row(ALICE, accepted=(0, 0), rejected=(0, 0))]})
        assert agg.totals["tool_acceptance_rate"] == 0

    def test_actor_attribution(self):
        rows = [
            _row(ALICE),
            _row({"type": "api_actor", "api_key_name": "ci-key"}),
            _row(None),
        ]
        agg = parse_claude_usage({"data": rows})

        assert set(agg.by_user) == {"alice@x.com", "ci-key", "unknown"}
        assert agg.totals["sessions"] == 9

    def test_all_three_granularities(self):
        rows = [_row(ALICE, day="2026-01-05T00:00:00Z"), _row(ALICE, day="2026-01-06T00:00:00Z", sessions=1)]
        agg = parse_claude_usage({"data": rows})

        assert agg.by_user["alice@x.com"]["sessions"] == 4
        assert agg.by_date["2026-01-05"]["sessions"] == 3
        assert agg.by_date["2026-01-06"]["cost_dollars"] == 2.0

    def test_null_nested_objects(self):
        row = _row(ALICE, models=[])
        row["core_metrics"] = None
        row["tool_actions"] = "garbage"
        agg = parse_claude_usage({"data": [row]})

        assert agg.totals["sessions"] == 0
        assert agg.totals["cost_dollars"] == 0
        assert agg.by_user["alice@x.com"]["lines_added"] == 0

    def test_empty_payload(self):
        agg = parse_claude_usage(None)
        assert agg.totals["sessions"] == 0
        assert agg.by_date == {}
