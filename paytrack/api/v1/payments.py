"""POST /v1/obligations/{id}/payments - Record a settlement; GET /v1/payments - list records"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from paytrack.api.dependencies import get_request_id, get_today
from paytrack.api.v1.schemas import ObligationSchema, PaymentCreate, PaymentRecordSchema
from paytrack.infrastructure.database.session import get_db
from paytrack.services.payments import list_payment_records, record_payment

router = APIRouter()


@router.post("/obligations/{obligation_id}/payments", response_model=ObligationSchema, status_code=201)
def create_payment(
    obligation_id: int,
    body: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Record a payment against an obligation.

    Returns:
        The obligation with its new paid amount and status

    Errors:
        409 overpayment_rejected with max_acceptable when amount exceeds the balance
        409 concurrent_modification (retryable) when another payment landed first
    """
    obligation = record_payment(
        db,
        obligation_id=obligation_id,
        amount=body.amount,
        payment_date=body.payment_date,
        payment_method=body.payment_method,
        notes=body.notes,
        schedule_entry_id=body.schedule_entry_id,
        today=today,
        request_id=get_request_id(request),
    )
    return ObligationSchema.from_domain(obligation)


@router.get("/payments", response_model=List[PaymentRecordSchema])
def list_payments(
    obligation_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    records = list_payment_records(db, obligation_id, date_from, date_to)
    return [PaymentRecordSchema.from_domain(r) for r in records]
