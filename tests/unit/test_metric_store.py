"""Tests for the metric and identity stores."""

from sqlmodel import select

from code_analytics.models.normalized_models import NormalizedAggregate, StoredMetric
from code_analytics.storage.identity_store import delete_mapping, get_config, list_mappings, save_config, upsert_mapping
from code_analytics.storage.metric_store import get_all_metrics, get_metrics, save_metric


def _aggregate(n):
    return NormalizedAggregate(
        totals={"sessions": n, "cost_dollars": n / 4},
        by_user={"b@x.com": {"sessions": n}, "a@x.com": {"sessions": 0}},
        by_date={"2026-01-05": {"sessions": n}},
    )


class TestSaveMetric:
    def test_saving_twice_is_idempotent(self, db_session):
        first = save_metric(db_session, "claude", "daily", "2026-01-05", _aggregate(3))
        payload = first.payload_json
        second = save_metric(db_session, "claude", "daily", "2026-01-05", _aggregate(3))

        rows = db_session.exec(select(StoredMetric)).all()
        assert len(rows) == 1
        assert second.id == first.id
        assert rows[0].payload_json == payload

    def test_payload_is_canonical(self):
        a = NormalizedAggregate(totals={"x": 1, "y": 2})
        b = NormalizedAggregate(totals={"y": 2, "x": 1})
        assert a.to_payload_json() == b.to_payload_json()

    def test_last_write_wins(self, db_session):
        save_metric(db_session, "claude", "daily", "2026-01-05", _aggregate(3))
        save_metric(db_session, "claude", "daily", "2026-01-05", NormalizedAggregate(totals={"commits": 1}))

        stored = get_metrics(db_session, "claude", "daily", "2026-01-05", "2026-01-05")[0]
        # Replaced, not merged
        assert stored.aggregate.totals == {"commits": 1}

    def test_round_trips_through_storage(self, db_session):
        save_metric(db_session, "claude", "daily", "2026-01-05", _aggregate(3))
        stored = get_metrics(db_session, "claude", "daily", "2026-01-01", "2026-01-31")[0]

        assert stored.aggregate == _aggregate(3)
        assert stored.to_dict()["data"]["totals"]["sessions"] == 3


class TestRangeReads:
    def test_filters_and_ordering(self, db_session):
        for day in ("2026-01-07", "2026-01-05", "2026-01-06"):
            save_metric(db_session, "claude", "daily", day, _aggregate(1))
        save_metric(db_session, "cursor", "spend", "2026-01-06", _aggregate(1))
        save_metric(db_session, "cursor", "daily_usage", "2026-02-01", _aggregate(1))

        claude = get_metrics(db_session, "claude", "daily", "2026-01-05", "2026-01-06")
        assert [m.date for m in claude] == ["2026-01-05", "2026-01-06"]

        everything = get_all_metrics(db_session, "2026-01-01", "2026-01-31")
        assert [(m.source, m.date) for m in everything] == [
            ("claude", "2026-01-05"),
            ("claude", "2026-01-06"),
            ("claude", "2026-01-07"),
            ("cursor", "2026-01-06"),
        ]
        assert len(get_all_metrics(db_session, "2026-01-01", "2026-12-31", source="cursor")) == 2


class TestIdentityStore:
    def test_upsert_list_delete(self, db_session):
        upsert_mapping(db_session, "b@x.com", "bee")
        upsert_mapping(db_session, "a@x.com", "ay")
        upsert_mapping(db_session, "a@x.com", "ay-2")

        assert [(m.email, m.github_username) for m in list_mappings(db_session)] == [
            ("a@x.com", "ay-2"),
            ("b@x.com", "bee"),
        ]
        assert delete_mapping(db_session, "a@x.com") is True
        assert delete_mapping(db_session, "a@x.com") is False

    def test_config_entries(self, db_session):
        assert get_config(db_session, "github_repos") is None
        save_config(db_session, "github_repos", "acme/api")
        save_config(db_session, "github_repos", "acme/api,acme/web")
        assert get_config(db_session, "github_repos") == "acme/api,acme/web"
