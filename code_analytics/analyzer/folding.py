"""Code Analytics — Range Folding.

Combines the daily StoredMetric rows of one (source, metric_kind) into a
single row using each metric's registered aggregation policy. Ratios are
recomputed from the folded counters, never averaged.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from code_analytics.core.accessors import Number, dig, safe_ratio
from code_analytics.core.aggregate import Derived
from code_analytics.core.metric_registry import DERIVED, REGISTRY, AggregationPolicy
from code_analytics.models.normalized_models import NormalizedAggregate, StoredMetric

Key = Tuple[str, str]


def group_records(records: Iterable[StoredMetric]) -> Dict[Key, List[Tuple[str, NormalizedAggregate]]]:
    """(source, metric_kind) → [(date, aggregate)] sorted by date."""
    grouped: Dict[Key, List[Tuple[str, NormalizedAggregate]]] = defaultdict(list)
    for record in records:
        grouped[(record.source, record.metric_kind)].append((record.date, record.aggregate))
    for rows in grouped.values():
        rows.sort(key=lambda item: item[0])
    return grouped


def fold_totals(key: Key, aggregates: Sequence[NormalizedAggregate]) -> Dict[str, Number]:
    """Fold organization totals across days with the registry policies."""
    metrics = REGISTRY[key]
    folded: Dict[str, Number] = {}

    for name, metric in metrics.items():
        values = [dig(a.totals, name) for a in aggregates]
        if metric.policy == AggregationPolicy.SUM:
            folded[name] = sum(values)
        elif metric.policy == AggregationPolicy.LATEST:
            folded[name] = values[-1] if values else 0
        elif metric.policy == AggregationPolicy.MEAN:
            reported = [v for v in values if v]
            folded[name] = safe_ratio(sum(reported), len(reported))
        elif metric.policy == AggregationPolicy.DISTINCT:
            folded[name] = len(
                {
                    user.lower()
                    for a in aggregates
                    for user, row in a.by_user.items()
                    if dig(row, metric.flag_field)
                }
            )

    return _derive(folded, DERIVED[key], skip=metrics)


def fold_by_user(key: Key, aggregates: Sequence[NormalizedAggregate]) -> Dict[str, Dict[str, Number]]:
    """Fold per-user counters across days. Derived fields are dropped.

    SUM fields accumulate over every day; LATEST fields come from the newest
    aggregate only, so a member missing from the newest snapshot has no
    LATEST values.
    """
    metrics = REGISTRY[key]
    derived_names = {d.name for d in DERIVED[key]}
    rows: Dict[str, Dict[str, Number]] = {}

    for aggregate in aggregates:
        for user, row in aggregate.by_user.items():
            for name, value in row.items():
                metric = metrics.get(name)
                if name in derived_names or (metric and metric.policy != AggregationPolicy.SUM):
                    continue
                target = rows.setdefault(user, {})
                target[name] = target.get(name, 0) + dig(row, name)

    latest_fields = [m.name for m in metrics.values() if m.policy == AggregationPolicy.LATEST]
    if latest_fields and aggregates:
        for user, row in aggregates[-1].by_user.items():
            target = rows.setdefault(user, {})
            for name in latest_fields:
                target[name] = dig(row, name)

    return rows


def derive(key: Key, row: Dict[str, Number]) -> Dict[str, Number]:
    """Fill the derived metrics registered for ``key`` into ``row``."""
    return _derive(row, DERIVED[key])


def _derive(row: Dict[str, Number], derived: Sequence[Derived], skip=()) -> Dict[str, Number]:
    for d in derived:
        if d.name in skip:
            continue
        row[d.name] = d.compute(row)
    return row
