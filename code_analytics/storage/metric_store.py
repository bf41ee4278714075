"""Code Analytics — Metric Store.

Upsert-by-key persistence of normalized aggregates, and range reads for
the dashboard engines.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from code_analytics.core.logging import get_logger
from code_analytics.models.normalized_models import NormalizedAggregate, StoredMetric

logger = get_logger("storage.metrics")


def save_metric(
    session: Session,
    source: str,
    metric_kind: str,
    date: str,
    aggregate: NormalizedAggregate,
) -> StoredMetric:
    """Insert or replace the payload stored under (source, metric_kind, date).

    Last write wins; the previous payload is discarded, never merged.
    """
    payload_json = aggregate.to_payload_json()
    existing = session.exec(
        select(StoredMetric).where(
            StoredMetric.source == source,
            StoredMetric.metric_kind == metric_kind,
            StoredMetric.date == date,
        )
    ).first()

    if existing:
        existing.payload_json = payload_json
        existing.updated_at = datetime.now(timezone.utc)
        metric = existing
    else:
        metric = StoredMetric(
            source=source,
            metric_kind=metric_kind,
            date=date,
            payload_json=payload_json,
        )
    session.add(metric)
    session.commit()
    session.refresh(metric)
    logger.info(
        f"Saved {source}/{metric_kind} ({'replaced' if existing else 'new'})",
        extra={"source": source, "date": date},
    )
    return metric


def get_metrics(
    session: Session,
    source: str,
    metric_kind: str,
    start_date: str,
    end_date: str,
) -> List[StoredMetric]:
    """Stored metrics for one source/kind within [start_date, end_date], by date."""
    return list(
        session.exec(
            select(StoredMetric)
            .where(
                StoredMetric.source == source,
                StoredMetric.metric_kind == metric_kind,
                StoredMetric.date >= start_date,
                StoredMetric.date <= end_date,
            )
            .order_by(StoredMetric.date)
        ).all()
    )


def get_all_metrics(
    session: Session,
    start_date: str,
    end_date: str,
    source: Optional[str] = None,
) -> List[StoredMetric]:
    """Every stored metric in range, ordered by source, kind and date."""
    query = select(StoredMetric).where(
        StoredMetric.date >= start_date,
        StoredMetric.date <= end_date,
    )
    if source:
        query = query.where(StoredMetric.source == source)
    query = query.order_by(StoredMetric.source, StoredMetric.metric_kind, StoredMetric.date)
    return list(session.exec(query).all())
