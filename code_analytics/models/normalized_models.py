"""Code Analytics — Normalized Metric Models (Universal Schema).

Every parser folds its provider payload into a NormalizedAggregate, and
every aggregate is stored as one StoredMetric row per
(source, metric_kind, date).
"""

import json
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field as PydanticField
from sqlmodel import SQLModel, Field, UniqueConstraint

Number = Union[int, float]


class NormalizedAggregate(BaseModel):
    """The ``{totals, by_user, by_date}`` shape produced by every parser."""

    totals: Dict[str, Number] = PydanticField(default_factory=dict)
    by_user: Dict[str, Dict[str, Number]] = PydanticField(default_factory=dict)
    by_date: Dict[str, Dict[str, Number]] = PydanticField(default_factory=dict)

    def to_payload_json(self) -> str:
        """Canonical JSON: identical aggregates serialize identically."""
        return json.dumps(self.model_dump(), sort_keys=True)

    @classmethod
    def from_payload_json(cls, payload_json: str) -> "NormalizedAggregate":
        return cls.model_validate(json.loads(payload_json or "{}"))


class StoredMetric(SQLModel, table=True):
    """One normalized aggregate for a provider, metric kind and day.

    Unique constraint on (source, metric_kind, date) makes every write an
    upsert; re-running a backfill replaces the payload, it never merges.
    """

    __tablename__ = "metrics"
    __table_args__ = (
        UniqueConstraint("source", "metric_kind", "date", name="uq_metric_key"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    source: str = Field(index=True, description="github | cursor | claude")
    metric_kind: str = Field(index=True, description="pull_requests | daily_usage | spend | daily")
    date: str = Field(index=True, description="YYYY-MM-DD")
    payload_json: str = Field(description="NormalizedAggregate as canonical JSON")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def aggregate(self) -> NormalizedAggregate:
        return NormalizedAggregate.from_payload_json(self.payload_json)

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "metric_kind": self.metric_kind,
            "date": self.date,
            "data": json.loads(self.payload_json),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class IdentityMapping(SQLModel, table=True):
    """Operator-maintained link between a team email and a GitHub login."""

    __tablename__ = "identity_mappings"

    email: str = Field(primary_key=True)
    github_username: str = Field(index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConfigEntry(SQLModel, table=True):
    """Operator-editable key/value settings (e.g. github_repos)."""

    __tablename__ = "config"

    key: str = Field(primary_key=True)
    value: str = Field(default="")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
