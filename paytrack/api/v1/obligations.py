"""/v1/obligations - Obligation lifecycle, status refresh and integrated view"""

from datetime import date
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from paytrack.api.dependencies import get_request_id, get_today
from paytrack.api.v1.schemas import (
    IntegratedViewResponse,
    ObligationCreate,
    ObligationSchema,
    ObligationUpdate,
    OverdueResponse,
    RefreshResponse,
)
from paytrack.infrastructure.database.session import get_db
from paytrack.services import obligations as service

router = APIRouter()


@router.post(
    "/obligations",
    response_model=Union[List[ObligationSchema], ObligationSchema],
    status_code=201,
)
def create_obligation(
    body: ObligationCreate,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Create an obligation.

    Installment obligations expand into one row per period; the response is
    then the whole group in period order.
    """
    created = service.create_obligation(
        db,
        name=body.name,
        total_amount=body.total_amount,
        payment_type=body.payment_type,
        start_date=body.start_date,
        period_count=body.period_count,
        due_date=body.due_date,
        end_date=body.end_date,
        project_id=body.project_id,
        category_id=body.category_id,
        notes=body.notes,
        today=today,
        request_id=get_request_id(request),
    )
    if isinstance(created, list):
        return [ObligationSchema.from_domain(o) for o in created]
    return ObligationSchema.from_domain(created)


@router.get("/obligations", response_model=List[ObligationSchema])
def list_obligations(
    status: Optional[str] = Query(None, description="pending | partial | paid | overdue"),
    payment_type: Optional[str] = Query(None, description="single | installment | recurring"),
    project_id: Optional[int] = None,
    category_id: Optional[int] = None,
    installment_group: Optional[str] = None,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    obligations = service.list_obligations(
        db,
        status=status,
        payment_type=payment_type,
        project_id=project_id,
        category_id=category_id,
        installment_group=installment_group,
        today=today,
    )
    return [ObligationSchema.from_domain(o) for o in obligations]


@router.get("/obligations/overdue", response_model=OverdueResponse)
def list_overdue(db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Overdue obligations split into this month's and earlier months'"""
    split = service.list_overdue_obligations(db, today)
    return OverdueResponse(
        current_month=[ObligationSchema.from_domain(o) for o in split["current_month"]],
        previous_months=[ObligationSchema.from_domain(o) for o in split["previous_months"]],
    )


@router.post("/obligations/refresh-status", response_model=RefreshResponse)
def refresh_status(db: Session = Depends(get_db), today: date = Depends(get_today)):
    return RefreshResponse(changed=service.refresh_statuses(db, today))


@router.get("/obligations/{obligation_id}", response_model=ObligationSchema)
def get_obligation(obligation_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)):
    return ObligationSchema.from_domain(service.get_obligation(db, obligation_id, today))


@router.patch("/obligations/{obligation_id}", response_model=ObligationSchema)
def update_obligation(
    obligation_id: int,
    body: ObligationUpdate,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Partial update; status is re-derived from the new total and due date"""
    updated = service.update_obligation(db, obligation_id, body.model_dump(exclude_unset=True), today)
    return ObligationSchema.from_domain(updated)


@router.delete("/obligations/{obligation_id}", status_code=204)
def delete_obligation(obligation_id: int, db: Session = Depends(get_db)):
    service.delete_obligation(db, obligation_id)
    return Response(status_code=204)


@router.get("/obligations/{obligation_id}/integrated", response_model=IntegratedViewResponse)
def get_integrated_view(
    obligation_id: int,
    year: Optional[int] = Query(None, description="Limit scheduled_total to this month"),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Obligation with its payment records and full schedule history.

    Returns:
        Actual paid (sum of records), pending scheduled total and overdue flag
    """
    view = service.get_integrated_view(db, obligation_id, today, year, month)
    return IntegratedViewResponse.from_domain(view, today)
