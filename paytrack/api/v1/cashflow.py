"""GET /v1/cashflow/forecast - Month-by-month outflow projection"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from paytrack.api.dependencies import get_today
from paytrack.api.v1.schemas import ForecastResponse, ForecastSummarySchema, MonthlyForecastSchema
from paytrack.domain.models import FORECAST_CATEGORIES
from paytrack.infrastructure.database.session import get_db
from paytrack.services.cashflow import forecast_with_summary

router = APIRouter()


@router.get("/cashflow/forecast", response_model=ForecastResponse)
def get_forecast(
    months: Optional[int] = Query(None, description="Months ahead, starting with the current month"),
    include: Optional[List[str]] = Query(None, description="Categories counted in totals; default all"),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Project outflows by month from budget items, pending schedule entries,
    unpaid obligation balances and this window's settlements.

    Returns:
        One bucket per month plus a summary over the included categories
    """
    categories = list(include) if include else list(FORECAST_CATEGORIES)
    buckets, summary = forecast_with_summary(db, months, categories, today)
    return ForecastResponse(
        include=categories,
        months=[MonthlyForecastSchema.from_domain(m, categories) for m in buckets],
        summary=ForecastSummarySchema.from_domain(summary),
    )
