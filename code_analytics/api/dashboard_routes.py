"""Code Analytics — Dashboard API Routes.

Every view reads stored metrics only; nothing here calls a provider.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from code_analytics.analyzer.adoption_engine import build_adoption_view
from code_analytics.analyzer.summary_engine import build_summary
from code_analytics.analyzer.team_engine import build_team_view
from code_analytics.analyzer.trend_engine import build_daily_series
from code_analytics.config import settings
from code_analytics.core.dates import days_in_range, resolve_dates
from code_analytics.core.logging import get_logger
from code_analytics.database import get_session
from code_analytics.models.dashboard_models import AdoptionView, DailySeries, DashboardSummary, TeamView
from code_analytics.storage.identity_store import list_mappings
from code_analytics.storage.metric_store import get_all_metrics

logger = get_logger("api.dashboard")

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])

DATE_RANGE_HELP = "One of: yesterday, last_7d, last_14d, last_30d, this_month"


def _window(date_range: Optional[str], start_date: Optional[str], end_date: Optional[str]) -> tuple[str, str]:
    start, end = resolve_dates(date_range, start_date, end_date)
    if start > end:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    if days_in_range(start, end) > settings.dashboard_max_range_days:
        raise HTTPException(
            status_code=400,
            detail=f"Date range exceeds {settings.dashboard_max_range_days} days",
        )
    return start, end


@router.get("/summary", response_model=DashboardSummary)
async def dashboard_summary(
    date_range: Optional[str] = Query(None, description=DATE_RANGE_HELP),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    start, end = _window(date_range, start_date, end_date)
    try:
        return build_summary(get_all_metrics(session, start, end), start, end)
    except Exception as e:
        logger.error(f"Summary failed: {e}")
        raise HTTPException(status_code=500, detail=f"Summary failed: {str(e)}")


@router.get("/team", response_model=TeamView)
async def dashboard_team(
    date_range: Optional[str] = Query(None, description=DATE_RANGE_HELP),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """One row per team member, GitHub logins joined to emails via identity mappings."""
    start, end = _window(date_range, start_date, end_date)
    try:
        return build_team_view(get_all_metrics(session, start, end), list_mappings(session), start, end)
    except Exception as e:
        logger.error(f"Team view failed: {e}")
        raise HTTPException(status_code=500, detail=f"Team view failed: {str(e)}")


@router.get("/ai-metrics", response_model=AdoptionView)
async def dashboard_ai_metrics(
    date_range: Optional[str] = Query(None, description=DATE_RANGE_HELP),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """AI share of shipped code, tool breakdown and per-member adoption."""
    start, end = _window(date_range, start_date, end_date)
    try:
        return build_adoption_view(get_all_metrics(session, start, end), list_mappings(session), start, end)
    except Exception as e:
        logger.error(f"AI metrics failed: {e}")
        raise HTTPException(status_code=500, detail=f"AI metrics failed: {str(e)}")


@router.get("/ai-metrics/daily", response_model=DailySeries)
async def dashboard_ai_metrics_daily(
    date_range: Optional[str] = Query(None, description=DATE_RANGE_HELP),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    user: Optional[str] = Query(None, description="Member identifier (email, or GitHub login if unmapped)"),
    session: Session = Depends(get_session),
):
    start, end = _window(date_range, start_date, end_date)
    try:
        return build_daily_series(
            get_all_metrics(session, start, end), start, end, list_mappings(session), user=user
        )
    except Exception as e:
        logger.error(f"Daily series failed: {e}")
        raise HTTPException(status_code=500, detail=f"Daily series failed: {str(e)}")
