"""
Cash-flow projection engine.

Aggregates four differently-shaped sources onto one monthly timeline:
- budget items not yet converted into obligations
- schedule entries still pending
- open obligations (outstanding balance on their due month)
- settled payment records, split into on-time and carried-over

Everything here is pure: inputs are plain dataclasses, ``today`` is passed
in, and nothing is written anywhere.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from paytrack.domain import money
from paytrack.domain.exceptions import InvalidArgument
from paytrack.domain.installments import split_installments
from paytrack.domain.models import (
    BUDGET_INSTALLMENT,
    BUDGET_MONTHLY,
    CATEGORY_BUDGET,
    CATEGORY_ESTIMATED,
    CATEGORY_PAID_CARRIED_OVER,
    CATEGORY_PAID_THIS_MONTH,
    CATEGORY_RECURRING,
    CATEGORY_SCHEDULED,
    FORECAST_CATEGORIES,
    PAID,
    RECURRING,
    BudgetItem,
    ForecastLine,
    ForecastSummary,
    InstallmentPeriod,
    MonthlyForecast,
    Obligation,
    PaymentRecord,
    Pending,
    ScheduleEntry,
)
from paytrack.utils.date_utils import add_months, month_key, month_sequence


def budget_item_periods(item: BudgetItem, places: int = money.DEFAULT_PLACES) -> List[InstallmentPeriod]:
    """
    Dated amounts a budget item stands for, whether projected or converted.

    - monthly:     monthly_amount every month for month_count months
    - installment: installment_amount per period, or the planned amount split
                   exactly across installment_count periods
    - single:      planned amount once, on end date (else start date)

    Periods start on the item's start date, else its plan's. Items without a
    usable date or with a non-positive amount yield nothing.
    """
    start = item.start_date or item.plan_start_date

    if item.payment_type == BUDGET_MONTHLY:
        count = item.month_count or 1
        amount = item.monthly_amount or Decimal("0")
        if amount <= 0 or start is None:
            return []
        return [InstallmentPeriod(period=k + 1, due_date=add_months(start, k), amount=amount) for k in range(count)]

    if item.payment_type == BUDGET_INSTALLMENT:
        count = item.installment_count or 1
        if start is None:
            return []
        if item.installment_amount and item.installment_amount > 0:
            return [
                InstallmentPeriod(period=k + 1, due_date=add_months(start, k), amount=item.installment_amount)
                for k in range(count)
            ]
        if item.planned_amount <= 0:
            return []
        return split_installments(item.planned_amount, count, start, places)

    target = item.end_date or item.start_date
    if target is None or item.planned_amount <= 0:
        return []
    return [InstallmentPeriod(period=1, due_date=target, amount=item.planned_amount)]


def expand_budget_item(item: BudgetItem, places: int = money.DEFAULT_PLACES) -> List[ForecastLine]:
    """
    Generate the projected outflows of a budget item.

    Converted items produce nothing; their obligations are counted instead.
    """
    if item.is_converted:
        return []

    periods = budget_item_periods(item, places)
    if item.payment_type == BUDGET_MONTHLY:
        label = "monthly {period}/{count}"
    elif item.payment_type == BUDGET_INSTALLMENT:
        label = "installment {period}/{count}"
    else:
        label = "single"
    return [
        ForecastLine(
            source_id=item.id,
            name=f"{item.name} ({label.format(period=p.period, count=len(periods))})",
            amount=p.amount,
            date=p.due_date,
            project=item.plan_name,
        )
        for p in periods
    ]


def _empty_bucket(month_start: date) -> MonthlyForecast:
    return MonthlyForecast(
        month=month_key(month_start),
        month_start=month_start,
        subtotals={category: Decimal("0") for category in FORECAST_CATEGORIES},
        details={category: [] for category in FORECAST_CATEGORIES},
    )


def _add(bucket: Optional[MonthlyForecast], category: str, line: ForecastLine) -> None:
    if bucket is None:
        # outside the projection window
        return
    bucket.subtotals[category] += line.amount
    bucket.details[category].append(line)


def project_cash_flow(
    obligations: Iterable[Obligation],
    budget_items: Iterable[BudgetItem],
    schedule_entries: Iterable[ScheduleEntry],
    payment_records: Iterable[PaymentRecord],
    months_ahead: int,
    today: date,
    places: int = money.DEFAULT_PLACES,
    project_names: Optional[Dict[int, str]] = None,
) -> List[MonthlyForecast]:
    """
    Build one MonthlyForecast per month, starting with today's month.

    Args:
        obligations: Obligations to project; soft-deleted ones are ignored
        budget_items: Planned items; converted ones are ignored
        schedule_entries: Explicit schedule; completed/superseded are ignored
        payment_records: Settlements; attributed against their obligation
        months_ahead: Number of buckets to produce (>= 1)
        today: Reference date for the first bucket
        places: Decimal places of the smallest currency unit
        project_names: Optional project id -> name map for line items

    Returns:
        Ordered list of buckets, len == months_ahead
    """
    if isinstance(months_ahead, bool) or not isinstance(months_ahead, int) or months_ahead < 1:
        raise InvalidArgument(f"months_ahead must be an integer >= 1, got {months_ahead!r}")

    project_names = project_names or {}
    buckets = [_empty_bucket(start) for start in month_sequence(today, months_ahead)]
    by_month: Dict[str, MonthlyForecast] = {b.month: b for b in buckets}

    # a. Budget
    for item in budget_items:
        for line in expand_budget_item(item, places):
            _add(by_month.get(month_key(line.date)), CATEGORY_BUDGET, line)

    # b. Scheduled
    for entry in schedule_entries:
        if not isinstance(entry.state, Pending):
            continue
        line = ForecastLine(
            source_id=entry.id,
            name=entry.obligation_name or f"Schedule #{entry.obligation_id}",
            amount=entry.scheduled_amount,
            date=entry.scheduled_date,
        )
        _add(by_month.get(month_key(entry.scheduled_date)), CATEGORY_SCHEDULED, line)

    # c. Outstanding obligations
    live: Dict[int, Obligation] = {}
    for obligation in obligations:
        if obligation.is_deleted:
            continue
        live[obligation.id] = obligation
        if obligation.status == PAID or obligation.outstanding <= 0:
            continue
        line = ForecastLine(
            source_id=obligation.id,
            name=obligation.name,
            amount=obligation.outstanding,
            date=obligation.relevant_date,
            project=project_names.get(obligation.project_id),
        )
        category = CATEGORY_RECURRING if obligation.payment_type == RECURRING else CATEGORY_ESTIMATED
        _add(by_month.get(month_key(obligation.relevant_date)), category, line)

    # d. Settled
    for record in payment_records:
        obligation = live.get(record.obligation_id)
        if obligation is None or record.amount_paid <= 0:
            continue
        paid_month = month_key(record.payment_date)
        due_month = month_key(obligation.relevant_date)
        line = ForecastLine(
            source_id=record.id,
            name=obligation.name,
            amount=record.amount_paid,
            date=record.payment_date,
            project=project_names.get(obligation.project_id),
            origin_month=due_month,
        )
        category = CATEGORY_PAID_THIS_MONTH if paid_month == due_month else CATEGORY_PAID_CARRIED_OVER
        _add(by_month.get(paid_month), category, line)

    for bucket in buckets:
        for lines in bucket.details.values():
            lines.sort(key=lambda line: (line.date or date.min, line.source_id or 0, line.name))

    return buckets


def summarize_forecast(
    buckets: Sequence[MonthlyForecast],
    categories: Optional[Iterable[str]] = None,
    places: int = money.DEFAULT_PLACES,
) -> ForecastSummary:
    """Totals, average, extremes and first-to-second month trend for the chosen categories"""
    chosen = tuple(FORECAST_CATEGORIES if categories is None else categories)
    unknown = set(chosen) - set(FORECAST_CATEGORIES)
    if unknown:
        raise InvalidArgument(f"Unknown forecast categories: {sorted(unknown)}")

    if not buckets:
        zero = money.quantize(Decimal("0"), places)
        return ForecastSummary(zero, zero, None, None, zero, 0.0)

    totals = [(b.month, b.total(chosen)) for b in buckets]
    grand_total = sum((t for _, t in totals), Decimal("0"))
    peak = max(totals, key=lambda mt: mt[1])
    lowest = min(totals, key=lambda mt: mt[1])

    current = totals[0][1]
    following = totals[1][1] if len(totals) > 1 else Decimal("0")
    trend = following - current
    trend_percent = float(trend / current * 100) if current > 0 else 0.0

    return ForecastSummary(
        total=grand_total,
        monthly_average=money.quantize(grand_total / len(totals), places),
        peak_month=peak[0],
        lowest_month=lowest[0],
        trend=trend,
        trend_percent=round(trend_percent, 2),
    )
