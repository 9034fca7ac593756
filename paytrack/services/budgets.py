"""Budget plans, budget items and their conversion into real obligations"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from paytrack.config import settings
from paytrack.domain import money
from paytrack.domain.exceptions import ConversionError, InvalidArgument, NotFound
from paytrack.domain.forecast import budget_item_periods
from paytrack.domain.models import (
    BUDGET_INSTALLMENT,
    BUDGET_MONTHLY,
    BUDGET_PAYMENT_TYPES,
    BUDGET_SINGLE,
    INSTALLMENT,
    RECURRING,
    SINGLE,
    BudgetItem,
    InstallmentPeriod,
    Obligation,
)
from paytrack.domain.status import derive_status
from paytrack.infrastructure.database.models import BudgetPlan
from paytrack.infrastructure.database.repositories import (
    BudgetRepository,
    to_budget_item,
    to_obligation,
)
from paytrack.infrastructure.database.session import atomic
from paytrack.infrastructure.observability.metrics import record_obligations_created
from paytrack.services.obligations import persist_obligations


def _amount(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return money.exact(value, settings.money_places)


def create_budget_plan(
    db: Session,
    plan_name: str,
    start_date: date,
    end_date: date,
    project_id: Optional[int] = None,
) -> BudgetPlan:
    if not plan_name or not plan_name.strip():
        raise InvalidArgument("plan_name is required")
    if end_date < start_date:
        raise InvalidArgument("end_date must not be before start_date")
    with atomic(db):
        plan = BudgetRepository(db).create_plan(plan_name.strip(), start_date, end_date, project_id)
    return plan


def add_budget_item(
    db: Session,
    plan_id: int,
    name: str,
    planned_amount: Any,
    payment_type: str = BUDGET_SINGLE,
    monthly_amount: Any = None,
    month_count: Optional[int] = None,
    installment_amount: Any = None,
    installment_count: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category_id: Optional[int] = None,
) -> BudgetItem:
    """
    Add a planned expenditure line to a budget plan.

    Raises:
        NotFound: Plan missing
        InvalidArgument: Unknown payment type or negative/zero counts
    """
    if not name or not name.strip():
        raise InvalidArgument("name is required")
    if payment_type not in BUDGET_PAYMENT_TYPES:
        raise InvalidArgument(f"payment_type must be one of {BUDGET_PAYMENT_TYPES}, got {payment_type!r}")
    for label, count in (("month_count", month_count), ("installment_count", installment_count)):
        if count is not None and count < 1:
            raise InvalidArgument(f"{label} must be >= 1")

    planned = _amount(planned_amount)
    if planned < 0:
        raise InvalidArgument("planned_amount must be >= 0")

    item = BudgetItem(
        id=None,
        budget_plan_id=plan_id,
        name=name.strip(),
        planned_amount=planned,
        payment_type=payment_type,
        monthly_amount=_amount(monthly_amount),
        month_count=month_count,
        installment_amount=_amount(installment_amount),
        installment_count=installment_count,
        start_date=start_date,
        end_date=end_date,
    )

    repo = BudgetRepository(db)
    with atomic(db):
        if repo.get_plan(plan_id) is None:
            raise NotFound("Budget plan", plan_id)
        row = repo.add_item(plan_id, item, category_id)
        created = to_budget_item(row)
    return created


def list_budget_items(
    db: Session,
    plan_id: Optional[int] = None,
    converted: Optional[bool] = None,
) -> List[BudgetItem]:
    return [to_budget_item(row) for row in BudgetRepository(db).list_items(plan_id, converted)]


_CONVERTED_TYPES = {
    BUDGET_MONTHLY: RECURRING,
    BUDGET_INSTALLMENT: INSTALLMENT,
    BUDGET_SINGLE: SINGLE,
}


def _obligations_from_periods(
    item: BudgetItem,
    periods: List[InstallmentPeriod],
    today: date,
    project_id: Optional[int],
    category_id: Optional[int],
) -> List[Obligation]:
    payment_type = _CONVERTED_TYPES[item.payment_type]
    grouped = payment_type != SINGLE
    group = str(uuid.uuid4()) if grouped else None
    count = len(periods)
    zero = money.quantize(Decimal("0"), settings.money_places)
    return [
        Obligation(
            id=None,
            name=f"{item.name} ({p.period}/{count})" if grouped else item.name,
            total_amount=p.amount,
            paid_amount=zero,
            status=derive_status(zero, p.amount, p.due_date, today),
            payment_type=payment_type,
            start_date=p.due_date if grouped else min(item.start_date or p.due_date, p.due_date),
            due_date=p.due_date,
            project_id=project_id,
            category_id=category_id,
            installment_group=group,
            period_index=p.period if grouped else None,
            period_count=count if grouped else None,
            notes="[budget conversion]",
        )
        for p in periods
    ]


def convert_budget_item(db: Session, item_id: int, today: Optional[date] = None) -> List[Obligation]:
    """
    Materialize a budget item into obligations and flag it converted.

    The obligations carry exactly the dated amounts the projector shows for the
    item (see ``budget_item_periods``), so converting only moves them from
    "budget" to "estimated" or "recurring":

    - single:      one single obligation due on end date (else start date)
    - monthly:     one recurring obligation per month
    - installment: an installment group, one obligation per period

    Raises:
        NotFound: Item missing
        ConversionError: Item already converted, or it has no dated amount
        ConcurrentModification: Converted concurrently by another request
    """
    today = today or date.today()
    repo = BudgetRepository(db)

    with atomic(db):
        row = repo.get_item(item_id)
        if row is None:
            raise NotFound("Budget item", item_id)
        item = to_budget_item(row)
        if item.is_converted:
            raise ConversionError(f"Budget item {item_id} is already converted")

        periods = budget_item_periods(item, settings.money_places)
        if not periods:
            raise ConversionError(f"Budget item {item_id} has no dated, positive amount to convert")

        project_id = row.plan.project_id if row.plan is not None else None
        obligations = _obligations_from_periods(item, periods, today, project_id, row.category_id)

        rows = persist_obligations(db, obligations)
        repo.mark_converted(item_id, rows[0].id)
        created = [to_obligation(r) for r in rows]

    record_obligations_created(_CONVERTED_TYPES[item.payment_type], len(created))
    return created
