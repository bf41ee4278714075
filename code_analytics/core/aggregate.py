"""Code Analytics — Aggregate Builder.

Folds normalized records into the three dimensions every parser emits:
organization totals, per-user rows and per-date rows. Rows are created
through an explicit get-or-insert, and ratios are derived exactly once
after every record has been folded.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence, Set, Tuple

from code_analytics.core.accessors import Number, safe_ratio
from code_analytics.models.normalized_models import NormalizedAggregate


@dataclass(frozen=True)
class Derived:
    """A metric computed from other metrics of the same row.

    With a denominator: ``sum(numerator) / sum(denominator) * scale``
    (0 when the denominator is 0). Without one: ``sum(numerator) / divisor``,
    which covers plain unit conversions such as cents to dollars.
    """

    name: str
    numerator: Tuple[str, ...]
    denominator: Tuple[str, ...] = ()
    scale: float = 1.0
    divisor: float = 1.0

    @property
    def inputs(self) -> Tuple[str, ...]:
        return self.numerator + self.denominator

    def compute(self, row: Mapping[str, Number]) -> float:
        num = sum(row.get(f, 0) for f in self.numerator)
        if not self.denominator:
            return num / self.divisor
        den = sum(row.get(f, 0) for f in self.denominator)
        return safe_ratio(num, den, self.scale)


def percent(name: str, numerator, denominator) -> Derived:
    """Shorthand for a zero-safe percentage."""
    num = (numerator,) if isinstance(numerator, str) else tuple(numerator)
    den = (denominator,) if isinstance(denominator, str) else tuple(denominator)
    return Derived(name, num, den, scale=100.0)


def dollars(name: str, *cents_fields: str) -> Derived:
    return Derived(name, tuple(cents_fields), divisor=100.0)


def apply_derived(row: Dict[str, Number], derived: Iterable[Derived]) -> Dict[str, Number]:
    """Fill derived metrics into ``row`` wherever all their inputs exist."""
    for d in derived:
        if all(f in row for f in d.inputs):
            row[d.name] = d.compute(row)
    return row


class MetricTable:
    """Keyed accumulators sharing one field layout."""

    def __init__(self, fields: Sequence[str]):
        self.fields = tuple(fields)
        self._rows: Dict[str, Dict[str, Number]] = {}

    def row(self, key: str) -> Dict[str, Number]:
        """Return the accumulator for ``key``, inserting a zeroed one if new."""
        existing = self._rows.get(key)
        if existing is None:
            existing = dict.fromkeys(self.fields, 0)
            self._rows[key] = existing
        return existing

    def add(self, key: str, values: Mapping[str, Number]) -> None:
        row = self.row(key)
        for name in self.fields:
            if name in values:
                row[name] += values[name]

    def __contains__(self, key: str) -> bool:
        return key in self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def keys(self):
        return self._rows.keys()

    def snapshot(self) -> Dict[str, Dict[str, Number]]:
        return {k: dict(self._rows[k]) for k in sorted(self._rows)}


class AggregateBuilder:
    """Accumulates one provider payload into a NormalizedAggregate."""

    def __init__(
        self,
        fields: Sequence[str],
        user_fields: Optional[Sequence[str]] = None,
        date_fields: Optional[Sequence[str]] = None,
        distinct: Sequence[str] = (),
    ):
        self.totals: Dict[str, Number] = dict.fromkeys(fields, 0)
        self.by_user = MetricTable(fields if user_fields is None else user_fields)
        self.by_date = MetricTable(fields if date_fields is None else date_fields)
        self._distinct = tuple(distinct)
        self._seen: Dict[str, Set[str]] = {name: set() for name in self._distinct}
        self._seen_by_date: Dict[Tuple[str, str], Set[str]] = {}

    def add(self, user: str, day: Optional[str], values: Mapping[str, Number]) -> None:
        """Fold ``values`` into totals, the user's row and (if given) the day's row."""
        for name in self.totals:
            if name in values:
                self.totals[name] += values[name]
        self.by_user.add(user, values)
        if day is not None:
            self.by_date.add(day, values)

    def mark(self, name: str, user: str, day: Optional[str] = None) -> None:
        """Record ``user`` towards the distinct count ``name``."""
        self._seen[name].add(user)
        self.by_user.row(user)
        if day is not None:
            self.by_date.row(day)
            self._seen_by_date.setdefault((name, day), set()).add(user)

    def finish(self, derived: Sequence[Derived] = ()) -> NormalizedAggregate:
        totals = dict(self.totals)
        for name in self._distinct:
            totals[name] = len(self._seen[name])
        by_user = self.by_user.snapshot()
        by_date = self.by_date.snapshot()
        for name in self._distinct:
            for day, row in by_date.items():
                if name in row:
                    row[name] = len(self._seen_by_date.get((name, day), ()))
        apply_derived(totals, derived)
        for row in by_user.values():
            apply_derived(row, derived)
        for row in by_date.values():
            apply_derived(row, derived)
        return NormalizedAggregate(totals=totals, by_user=by_user, by_date=by_date)


def merge_aggregates(
    aggregates: Iterable[NormalizedAggregate],
    derived: Sequence[Derived] = (),
) -> NormalizedAggregate:
    """Sum several aggregates field by field and re-derive ratios.

    Only valid for summable fields; distinct counts would be double counted.
    """
    skip = {d.name for d in derived}
    totals: Dict[str, Number] = {}
    by_user: Dict[str, Dict[str, Number]] = {}
    by_date: Dict[str, Dict[str, Number]] = {}

    def fold(target: Dict[str, Number], row: Mapping[str, Number]) -> None:
        for name, value in row.items():
            if name not in skip:
                target[name] = target.get(name, 0) + value

    for aggregate in aggregates:
        fold(totals, aggregate.totals)
        for key, row in aggregate.by_user.items():
            fold(by_user.setdefault(key, {}), row)
        for key, row in aggregate.by_date.items():
            fold(by_date.setdefault(key, {}), row)

    apply_derived(totals, derived)
    for row in list(by_user.values()) + list(by_date.values()):
        apply_derived(row, derived)
    return NormalizedAggregate(
        totals=totals,
        by_user={k: by_user[k] for k in sorted(by_user)},
        by_date={k: by_date[k] for k in sorted(by_date)},
    )
