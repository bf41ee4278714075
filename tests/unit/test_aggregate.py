"""Tests for safe accessors and the aggregate builder."""

import math

import pytest

from code_analytics.core.accessors import capped_percent, date_key, dig, first_present, safe_number, safe_ratio
from code_analytics.core.aggregate import (
    AggregateBuilder,
    Derived,
    MetricTable,
    apply_derived,
    dollars,
    merge_aggregates,
    percent,
)


class TestSafeNumber:
    @pytest.mark.parametrize(
        "value,expected",
        [(3, 3), (2.5, 2.5), ("7", 7), ("1.5", 1.5), (None, 0), (True, 0), ("abc", 0), (math.nan, 0), (math.inf, 0), ([], 0)],
    )
    def test_coercion(self, value, expected):
        assert safe_number(value) == expected

    def test_dig_walks_nested_shapes(self):
        data = {"a": {"b": [{"c": "4"}]}}
        assert dig(data, "a", "b", 0, "c") == 4
        assert dig(data, "a", "missing") == 0
        assert dig(data, "a", "b", 5, "c") == 0
        assert dig(None, "a") == 0

    def test_first_present(self):
        assert first_present(None, "  ", "key") == "key"
        assert first_present(None) == "unknown"


class TestRatios:
    def test_zero_denominator(self):
        assert safe_ratio(5, 0) == 0.0
        assert capped_percent(5, 0) == 0.0

    def test_capped_at_hundred(self):
        assert capped_percent(300, 100) == 100.0
        assert capped_percent(30, 100) == 30.0


class TestDateKey:
    def test_iso_keeps_its_own_day(self):
        assert date_key("2026-01-05T23:30:00-05:00") == "2026-01-05"

    def test_epoch_ms_is_utc(self):
        assert date_key(0) == "1970-01-01"

    def test_garbage(self):
        assert date_key(None) == "unknown"
        assert date_key("yesterday") == "unknown"
        assert date_key("2026-13-45") == "unknown"


class TestMetricTable:
    def test_get_or_insert_zeroed_row(self):
        table = MetricTable(("a", "b"))
        table.add("x", {"a": 2, "ignored": 9})
        table.add("x", {"a": 1, "b": 4})

        assert table.row("x") == {"a": 3, "b": 4}
        assert table.row("new") == {"a": 0, "b": 0}
        assert len(table) == 2

    def test_snapshot_is_sorted_copy(self):
        table = MetricTable(("a",))
        table.add("z", {"a": 1})
        table.add("m", {"a": 1})
        snap = table.snapshot()
        snap["m"]["a"] = 99

        assert list(snap) == ["m", "z"]
        assert table.row("m")["a"] == 1


class TestDerived:
    def test_percent_and_dollars(self):
        row = {"ok": 3, "bad": 1, "cents": 250}
        apply_derived(row, [percent("rate", "ok", ("ok", "bad")), dollars("usd", "cents")])
        assert row["rate"] == 75.0
        assert row["usd"] == 2.5

    def test_skipped_when_inputs_missing(self):
        row = {"ok": 3}
        apply_derived(row, [Derived("rate", ("ok",), ("total",))])
        assert "rate" not in row


class TestAggregateBuilder:
    def test_three_granularities_and_distinct(self):
        builder = AggregateBuilder(("n", "seen"), user_fields=("n",), distinct=("seen",))
        builder.add("a", "2026-01-01", {"n": 1})
        builder.add("a", "2026-01-02", {"n": 2})
        builder.add("b", "2026-01-02", {"n": 4})
        builder.mark("seen", "a", "2026-01-01")
        builder.mark("seen", "a", "2026-01-02")
        builder.mark("seen", "b", "2026-01-02")
        agg = builder.finish()

        assert agg.totals == {"n": 7, "seen": 2}
        assert agg.by_user == {"a": {"n": 3}, "b": {"n": 4}}
        assert agg.by_date["2026-01-01"] == {"n": 1, "seen": 1}
        assert agg.by_date["2026-01-02"] == {"n": 6, "seen": 2}

    def test_ratio_derived_after_accumulation(self):
        builder = AggregateBuilder(("ok", "total"))
        builder.add("a", None, {"ok": 1, "total": 1})
        builder.add("a", None, {"ok": 0, "total": 3})
        agg = builder.finish([percent("rate", "ok", "total")])
        # 1/4, not the mean of 100% and 0%
        assert agg.totals["rate"] == 25.0


class TestMergeAggregates:
    def test_sums_and_rederives(self):
        first = AggregateBuilder(("ok", "total"))
        first.add("a", "2026-01-01", {"ok": 1, "total": 1})
        second = AggregateBuilder(("ok", "total"))
        second.add("a", "2026-01-01", {"ok": 0, "total": 3})
        second.add("b", "2026-01-01", {"ok": 2, "total": 2})
        derived = [percent("rate", "ok", "total")]

        merged = merge_aggregates([first.finish(derived), second.finish(derived)], derived)

        assert merged.totals == {"ok": 3, "total": 6, "rate": 50.0}
        assert merged.by_user["a"]["rate"] == 25.0
        assert merged.by_date["2026-01-01"]["total"] == 6

    def test_nothing_to_merge(self):
        merged = merge_aggregates([])
        assert merged.totals == {}
