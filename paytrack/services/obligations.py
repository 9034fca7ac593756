"""Obligation lifecycle: creation (with installment groups), updates, soft delete, status refresh"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from paytrack.config import settings
from paytrack.domain import money
from paytrack.domain.exceptions import InvalidArgument, NotFound
from paytrack.domain.installments import split_installments
from paytrack.domain.models import (
    INSTALLMENT,
    OBLIGATION_STATUSES,
    OVERDUE,
    PAYMENT_TYPES,
    IntegratedView,
    Obligation,
    Pending,
)
from paytrack.domain.schedule import entries_in_month
from paytrack.domain.status import derive_status, status_for
from paytrack.infrastructure.database.models import PaymentItem
from paytrack.infrastructure.database.repositories import (
    ObligationRepository,
    PaymentRecordRepository,
    ScheduleRepository,
    to_obligation,
    to_payment_record,
    to_schedule_entry,
)
from paytrack.infrastructure.database.session import atomic
from paytrack.infrastructure.observability.logging import log_obligation_created
from paytrack.infrastructure.observability.metrics import (
    record_obligations_created,
    status_refresh_counter,
)

UPDATABLE_FIELDS = {
    "name",
    "total_amount",
    "start_date",
    "due_date",
    "end_date",
    "project_id",
    "category_id",
    "notes",
}

# domain field -> column
_COLUMNS = {"name": "item_name"}


def build_obligations(
    name: str,
    total_amount: Decimal,
    payment_type: str,
    start_date: date,
    today: date,
    period_count: Optional[int] = None,
    due_date: Optional[date] = None,
    end_date: Optional[date] = None,
    project_id: Optional[int] = None,
    category_id: Optional[int] = None,
    notes: Optional[str] = None,
    places: int = money.DEFAULT_PLACES,
) -> List[Obligation]:
    """
    Validate input and build unsaved obligations.

    Installments become one obligation per period sharing a group id; each
    period is due on its own month and the first carries the remainder.
    """
    if not name or not name.strip():
        raise InvalidArgument("name is required")
    if payment_type not in PAYMENT_TYPES:
        raise InvalidArgument(f"payment_type must be one of {PAYMENT_TYPES}, got {payment_type!r}")
    if total_amount < 0:
        raise InvalidArgument(f"total_amount must be >= 0, got {total_amount}")
    if end_date is not None and end_date < start_date:
        raise InvalidArgument("end_date must not be before start_date")

    if payment_type != INSTALLMENT:
        return [
            Obligation(
                id=None,
                name=name.strip(),
                total_amount=total_amount,
                paid_amount=money.quantize(Decimal("0"), places),
                status=derive_status(Decimal("0"), total_amount, due_date, today),
                payment_type=payment_type,
                start_date=start_date,
                due_date=due_date,
                end_date=end_date,
                project_id=project_id,
                category_id=category_id,
                notes=notes,
            )
        ]

    if period_count is None:
        raise InvalidArgument("period_count is required for installment obligations")

    periods = split_installments(total_amount, period_count, start_date, places)
    group = str(uuid.uuid4())
    return [
        Obligation(
            id=None,
            name=f"{name.strip()} ({p.period}/{period_count})",
            total_amount=p.amount,
            paid_amount=money.quantize(Decimal("0"), places),
            status=derive_status(Decimal("0"), p.amount, p.due_date, today),
            payment_type=INSTALLMENT,
            start_date=p.due_date,
            due_date=p.due_date,
            project_id=project_id,
            category_id=category_id,
            installment_group=group,
            period_index=p.period,
            period_count=period_count,
            notes=notes,
        )
        for p in periods
    ]


def persist_obligations(db: Session, obligations: List[Obligation]) -> List[PaymentItem]:
    """Insert without committing; the caller owns the transaction"""
    repo = ObligationRepository(db)
    return [repo.create(o) for o in obligations]


def create_obligation(
    db: Session,
    name: str,
    total_amount: Any,
    payment_type: str,
    start_date: date,
    period_count: Optional[int] = None,
    due_date: Optional[date] = None,
    end_date: Optional[date] = None,
    project_id: Optional[int] = None,
    category_id: Optional[int] = None,
    notes: Optional[str] = None,
    today: Optional[date] = None,
    request_id: Optional[str] = None,
) -> Union[Obligation, List[Obligation]]:
    """
    Create an obligation.

    Returns:
        The obligation, or for installments the full generated set in period order

    Raises:
        InvalidArgument: Bad type, negative total, periods < 1
    """
    today = today or date.today()
    places = settings.money_places
    obligations = build_obligations(
        name=name,
        total_amount=money.exact(total_amount, places),
        payment_type=payment_type,
        start_date=start_date,
        today=today,
        period_count=period_count,
        due_date=due_date,
        end_date=end_date,
        project_id=project_id,
        category_id=category_id,
        notes=notes,
        places=places,
    )

    with atomic(db):
        rows = persist_obligations(db, obligations)
        created = [to_obligation(row) for row in rows]

    record_obligations_created(payment_type, len(created))
    log_obligation_created(
        [o.id for o in created],
        payment_type,
        sum((o.total_amount for o in created), Decimal("0")),
        request_id,
    )

    if payment_type == INSTALLMENT:
        return created
    return created[0]


def _load(db: Session, obligation_id: int) -> PaymentItem:
    row = ObligationRepository(db).get(obligation_id)
    if row is None:
        raise NotFound("Obligation", obligation_id)
    return row


def _current(row: PaymentItem, today: date) -> Obligation:
    obligation = to_obligation(row)
    obligation.status = status_for(obligation, today)
    return obligation


def get_obligation(db: Session, obligation_id: int, today: Optional[date] = None) -> Obligation:
    """Fetch an obligation with status derived for ``today``"""
    return _current(_load(db, obligation_id), today or date.today())


def list_obligations(
    db: Session,
    status: Optional[str] = None,
    payment_type: Optional[str] = None,
    project_id: Optional[int] = None,
    category_id: Optional[int] = None,
    installment_group: Optional[str] = None,
    today: Optional[date] = None,
) -> List[Obligation]:
    if status is not None and status not in OBLIGATION_STATUSES:
        raise InvalidArgument(f"status must be one of {OBLIGATION_STATUSES}")
    if payment_type is not None and payment_type not in PAYMENT_TYPES:
        raise InvalidArgument(f"payment_type must be one of {PAYMENT_TYPES}")

    today = today or date.today()
    rows = ObligationRepository(db).list(
        payment_type=payment_type,
        project_id=project_id,
        category_id=category_id,
        installment_group=installment_group,
    )
    obligations = [_current(row, today) for row in rows]
    if status is not None:
        # filter on the derived status so stale rows are not missed
        obligations = [o for o in obligations if o.status == status]
    return obligations


def update_obligation(
    db: Session,
    obligation_id: int,
    fields: Dict[str, Any],
    today: Optional[date] = None,
) -> Obligation:
    """
    Apply a partial update and re-derive status in the same write.

    Raises:
        InvalidArgument: Unknown field, cleared start date, end before start,
            or total below what is already paid
        NotFound: Obligation missing or deleted
        ConcurrentModification: Row changed since it was read
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise InvalidArgument(f"Fields cannot be updated: {sorted(unknown)}")

    today = today or date.today()
    places = settings.money_places

    with atomic(db):
        row = _load(db, obligation_id)
        current = to_obligation(row)

        changes = dict(fields)
        if "name" in changes and (not changes["name"] or not str(changes["name"]).strip()):
            raise InvalidArgument("name must not be empty")
        if "start_date" in changes and changes["start_date"] is None:
            raise InvalidArgument("start_date cannot be cleared")
        if "total_amount" in changes:
            new_total = money.exact(changes["total_amount"], places)
            if new_total < 0:
                raise InvalidArgument("total_amount must be >= 0")
            if new_total < current.paid_amount:
                raise InvalidArgument(
                    f"total_amount {new_total} is below the amount already paid ({current.paid_amount})"
                )
            changes["total_amount"] = new_total

        start = changes.get("start_date", current.start_date)
        end = changes.get("end_date", current.end_date)
        if end is not None and end < start:
            raise InvalidArgument("end_date must not be before start_date")

        total = changes.get("total_amount", current.total_amount)
        due = changes.get("due_date", current.due_date)
        values = {_COLUMNS.get(k, k): v for k, v in changes.items()}
        values["status"] = derive_status(current.paid_amount, total, due, today)

        ObligationRepository(db).compare_and_set(obligation_id, current.version, values)

    return get_obligation(db, obligation_id, today)


def delete_obligation(db: Session, obligation_id: int) -> None:
    """Soft delete; records and schedule entries stay for audit"""
    with atomic(db):
        row = _load(db, obligation_id)
        ObligationRepository(db).soft_delete(obligation_id, row.version)


def refresh_statuses(db: Session, today: Optional[date] = None) -> int:
    """
    Persist the derived status of every open obligation.

    Time passing turns pending/partial rows overdue; this brings stored
    status back in line. Returns the number of rows changed.
    """
    today = today or date.today()
    repo = ObligationRepository(db)
    changed = 0
    with atomic(db):
        for row in repo.list_open():
            obligation = to_obligation(row)
            status = status_for(obligation, today)
            if status != obligation.status:
                repo.compare_and_set(row.id, obligation.version, {"status": status})
                changed += 1
    status_refresh_counter.inc(changed)
    return changed


def list_overdue_obligations(db: Session, today: Optional[date] = None) -> Dict[str, List[Obligation]]:
    """Overdue obligations split into this month's and earlier months'"""
    today = today or date.today()
    month_start = today.replace(day=1)
    overdue = [
        o for o in (_current(row, today) for row in ObligationRepository(db).list_open())
        if o.status == OVERDUE
    ]
    return {
        "current_month": [o for o in overdue if o.due_date >= month_start],
        "previous_months": [o for o in overdue if o.due_date < month_start],
    }


def get_integrated_view(
    db: Session,
    obligation_id: int,
    today: Optional[date] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> IntegratedView:
    """
    Obligation merged with its settlements and full schedule history.

    scheduled_total covers pending entries, limited to (year, month) when given.
    """
    today = today or date.today()
    obligation = get_obligation(db, obligation_id, today)

    records = [to_payment_record(r) for r in PaymentRecordRepository(db).list(obligation_id=obligation_id)]
    entries = [to_schedule_entry(e) for e in ScheduleRepository(db).list_for_item(obligation_id)]

    if year is not None and month is not None:
        if not 1 <= month <= 12:
            raise InvalidArgument(f"month must be 1-12, got {month}")
        counted = entries_in_month(entries, year, month)
    else:
        counted = entries
    places = settings.money_places
    scheduled_total = money.total(
        (e.scheduled_amount for e in counted if isinstance(e.state, Pending)), places
    )
    actual_paid = money.total((r.amount_paid for r in records), places)
    return IntegratedView(
        obligation=obligation,
        records=records,
        schedule_entries=entries,
        actual_paid=actual_paid,
        scheduled_total=scheduled_total,
        pending_amount=obligation.total_amount - actual_paid,
        has_overdue_schedule=any(e.is_overdue(today) for e in entries),
    )
