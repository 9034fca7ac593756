"""Cash-flow projection over current state: loads the four sources and hands them to the pure projector"""

from datetime import date
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from paytrack.config import settings
from paytrack.domain.exceptions import InvalidArgument
from paytrack.domain.forecast import project_cash_flow, summarize_forecast
from paytrack.domain.models import ForecastSummary, MonthlyForecast
from paytrack.infrastructure.database.repositories import (
    BudgetRepository,
    ObligationRepository,
    PaymentRecordRepository,
    ScheduleRepository,
    to_budget_item,
    to_obligation,
    to_payment_record,
    to_schedule_entry,
)
from paytrack.infrastructure.observability.metrics import forecast_duration_histogram
from paytrack.utils.date_utils import add_months


def project_from_store(
    db: Session,
    months_ahead: Optional[int] = None,
    today: Optional[date] = None,
) -> List[MonthlyForecast]:
    """
    Project outflows for ``months_ahead`` months starting with today's month.

    Read-only: nothing is written, and the result depends only on stored
    state and ``today``.
    """
    today = today or date.today()
    months_ahead = settings.forecast_months_default if months_ahead is None else months_ahead
    if months_ahead < 1 or months_ahead > settings.forecast_months_max:
        raise InvalidArgument(f"months_ahead must be between 1 and {settings.forecast_months_max}")

    window_start = today.replace(day=1)
    window_end = add_months(window_start, months_ahead)

    with forecast_duration_histogram.time():
        obligations = [to_obligation(row) for row in ObligationRepository(db).list()]
        budget_items = [to_budget_item(row) for row in BudgetRepository(db).list_items(converted=False)]
        entries = [to_schedule_entry(row) for row in ScheduleRepository(db).list_between(window_start, window_end)]
        records = [
            to_payment_record(row)
            for row in PaymentRecordRepository(db).list(date_from=window_start, date_to=window_end)
        ]

        return project_cash_flow(
            obligations=obligations,
            budget_items=budget_items,
            schedule_entries=entries,
            payment_records=records,
            months_ahead=months_ahead,
            today=today,
            places=settings.money_places,
        )


def forecast_with_summary(
    db: Session,
    months_ahead: Optional[int] = None,
    categories: Optional[Iterable[str]] = None,
    today: Optional[date] = None,
) -> Tuple[List[MonthlyForecast], ForecastSummary]:
    buckets = project_from_store(db, months_ahead, today)
    return buckets, summarize_forecast(buckets, categories, settings.money_places)
