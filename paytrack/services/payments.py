"""Payment recording - the only write path that changes paid_amount"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from paytrack.config import settings
from paytrack.domain import money
from paytrack.domain.exceptions import (
    ConcurrentModification,
    InvalidArgument,
    NotFound,
    OverpaymentRejected,
)
from paytrack.domain.models import PAID, Obligation, PaymentRecord
from paytrack.domain.schedule import complete
from paytrack.domain.status import derive_status
from paytrack.infrastructure.database.repositories import (
    ObligationRepository,
    PaymentRecordRepository,
    ScheduleRepository,
    to_obligation,
    to_payment_record,
    to_schedule_entry,
)
from paytrack.infrastructure.database.session import atomic
from paytrack.infrastructure.observability.logging import log_payment
from paytrack.infrastructure.observability.metrics import record_payment_outcome

logger = logging.getLogger(__name__)


def record_payment(
    db: Session,
    obligation_id: int,
    amount: Any,
    payment_date: date,
    payment_method: Optional[str] = None,
    notes: Optional[str] = None,
    schedule_entry_id: Optional[int] = None,
    today: Optional[date] = None,
    request_id: Optional[str] = None,
) -> Obligation:
    """
    Append a settlement and move the obligation's paid amount and status.

    Flow (one transaction):
    1. Load obligation (must exist and not be deleted)
    2. Reject amount <= 0, or amount beyond the outstanding balance
    3. Conditional UPDATE of paid_amount/status guarded by version
    4. Insert the immutable payment record
    5. Complete the named schedule entry; complete all pending entries once paid

    Raises:
        InvalidArgument: amount <= 0 or finer than the currency unit, or schedule entry belongs elsewhere
        NotFound: Obligation or schedule entry missing
        OverpaymentRejected: amount + paid_amount > total_amount
        ConcurrentModification: Another writer updated the obligation first
    """
    today = today or date.today()
    places = settings.money_places
    amount = money.exact(amount, places)
    if amount <= 0:
        raise InvalidArgument(f"amount must be > 0, got {amount}")

    obligations = ObligationRepository(db)
    schedules = ScheduleRepository(db)

    try:
        with atomic(db):
            row = obligations.get(obligation_id)
            if row is None:
                raise NotFound("Obligation", obligation_id)
            current = to_obligation(row)

            if amount > current.outstanding:
                raise OverpaymentRejected(obligation_id, amount, max(current.outstanding, Decimal("0")))

            new_paid = current.paid_amount + amount
            status = derive_status(new_paid, current.total_amount, current.due_date, today)
            obligations.compare_and_set(
                obligation_id,
                current.version,
                {"paid_amount": new_paid, "status": status},
            )

            PaymentRecordRepository(db).add(obligation_id, amount, payment_date, payment_method, notes)

            if schedule_entry_id is not None:
                entry = schedules.get(schedule_entry_id)
                if entry is None:
                    raise NotFound("Schedule entry", schedule_entry_id)
                if entry.payment_item_id != obligation_id:
                    raise InvalidArgument(
                        f"Schedule entry {schedule_entry_id} belongs to obligation {entry.payment_item_id}"
                    )
                # raises InvalidArgument unless the entry is still pending
                complete(to_schedule_entry(entry))
                schedules.mark_completed(schedule_entry_id)

            if status == PAID:
                schedules.complete_pending_for_item(obligation_id)

    except OverpaymentRejected as e:
        record_payment_outcome("overpayment")
        logger.warning(str(e), extra={"request_id": request_id, "obligation_id": obligation_id})
        raise
    except ConcurrentModification as e:
        record_payment_outcome("conflict")
        logger.warning(str(e), extra={"request_id": request_id, "obligation_id": obligation_id})
        raise

    record_payment_outcome("recorded")
    log_payment(obligation_id, amount, new_paid, status, request_id)

    return to_obligation(obligations.get(obligation_id))


def list_payment_records(
    db: Session,
    obligation_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[PaymentRecord]:
    if date_from is not None and date_to is not None and date_from > date_to:
        raise InvalidArgument("date_from must not be after date_to")
    rows = PaymentRecordRepository(db).list(obligation_id, date_from, date_to)
    return [to_payment_record(row) for row in rows]
