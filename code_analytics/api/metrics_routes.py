"""Code Analytics — Metrics & Backfill API Routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from code_analytics.analyzer.pipeline import run_backfill
from code_analytics.connectors.base import ProviderAPIError
from code_analytics.core.dates import resolve_dates
from code_analytics.core.errors import ConfigurationError
from code_analytics.core.logging import get_logger
from code_analytics.database import get_session
from code_analytics.models.dashboard_models import BackfillResult
from code_analytics.storage.metric_store import get_all_metrics, get_metrics

logger = get_logger("api.metrics")

router = APIRouter(prefix="/api", tags=["Metrics"])


# ── Request / Response Models ──


class BackfillRequest(BaseModel):
    """Request body for POST /api/backfill."""

    source: str
    """One of: "github", "cursor", "claude"."""
    start_date: str
    """Start date in YYYY-MM-DD format."""
    end_date: str
    """End date in YYYY-MM-DD format (inclusive)."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"source": "claude", "start_date": "2026-02-01", "end_date": "2026-02-07"},
            ]
        }
    }


class BackfillResponse(BaseModel):
    status: str = "success"
    result: BackfillResult


# ── Endpoints ──


@router.get("/metrics")
async def list_metrics(
    source: Optional[str] = Query(None, description="github | cursor | claude"),
    metric_kind: Optional[str] = Query(None, description="e.g. daily_usage (requires source)"),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    session: Session = Depends(get_session),
):
    """Stored metric records in the window, payloads decoded."""
    date_start, date_stop = resolve_dates(None, start_date, end_date)
    if metric_kind and not source:
        raise HTTPException(status_code=400, detail="metric_kind requires source")

    if source and metric_kind:
        records = get_metrics(session, source, metric_kind, date_start, date_stop)
    else:
        records = get_all_metrics(session, date_start, date_stop, source=source)

    return {
        "status": "success",
        "start_date": date_start,
        "end_date": date_stop,
        "count": len(records),
        "metrics": [r.to_dict() for r in records],
    }


@router.post("/backfill", response_model=BackfillResponse)
async def trigger_backfill(
    request: BackfillRequest,
    session: Session = Depends(get_session),
):
    """Fetch and store one provider's metrics for every day in the window.

    Days the provider fails on are skipped and listed under ``failed``.
    """
    try:
        result = await run_backfill(session, request.source, request.start_date, request.end_date)
        return BackfillResponse(result=result)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderAPIError as e:
        logger.error(f"Backfill failed: {e}", extra={"source": request.source, "status_code": e.status_code})
        raise HTTPException(status_code=502, detail=f"{request.source} API error: {str(e)}")
    except Exception as e:
        logger.error(f"Backfill failed: {e}", extra={"source": request.source})
        raise HTTPException(status_code=500, detail=f"Backfill failed: {str(e)}")
