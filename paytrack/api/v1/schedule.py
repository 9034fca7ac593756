"""/v1/schedule - Planned settlement dates, monthly stats and rescheduling"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from paytrack.api.dependencies import get_request_id, get_today
from paytrack.api.v1.schemas import (
    RescheduleRequest,
    ScheduleCreate,
    ScheduleEntrySchema,
    ScheduleStatsResponse,
)
from paytrack.infrastructure.database.session import get_db
from paytrack.services import schedules as service

router = APIRouter()


@router.post("/schedule", response_model=ScheduleEntrySchema, status_code=201)
def create_schedule_entry(
    body: ScheduleCreate,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    entry = service.create_schedule_entry(
        db,
        obligation_id=body.obligation_id,
        scheduled_date=body.scheduled_date,
        scheduled_amount=body.scheduled_amount,
        notes=body.notes,
    )
    return ScheduleEntrySchema.from_domain(entry, today)


@router.get("/schedule/overdue", response_model=List[ScheduleEntrySchema])
def list_overdue_schedule(db: Session = Depends(get_db), today: date = Depends(get_today)):
    return [ScheduleEntrySchema.from_domain(e, today) for e in service.list_overdue_schedule(db, today)]


@router.get("/schedule/stats/{year}/{month}", response_model=ScheduleStatsResponse)
def get_schedule_stats(
    year: int,
    month: int,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Daily and monthly scheduled totals for a month.

    Superseded entries are excluded; overdue_count is system-wide.
    """
    return ScheduleStatsResponse.from_domain(service.get_schedule_stats(db, year, month, today))


@router.get("/schedule/{year}/{month}", response_model=List[ScheduleEntrySchema])
def list_schedule(
    year: int,
    month: int,
    include_superseded: bool = Query(False, description="Include superseded history"),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    entries = service.list_schedule(db, year, month, include_superseded)
    return [ScheduleEntrySchema.from_domain(e, today) for e in entries]


@router.post("/schedule/{entry_id}/reschedule", response_model=ScheduleEntrySchema, status_code=201)
def reschedule(
    entry_id: int,
    body: RescheduleRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Move a pending entry to a new date.

    Returns:
        The successor entry; the original stays on its date as superseded
    """
    successor = service.reschedule_entry(
        db,
        entry_id,
        body.new_date,
        notes=body.notes,
        request_id=get_request_id(request),
    )
    return ScheduleEntrySchema.from_domain(successor, today)


@router.get("/obligations/{obligation_id}/schedule", response_model=List[ScheduleEntrySchema])
def list_obligation_schedule(
    obligation_id: int,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Audit trail: every entry for the obligation, superseded ones included"""
    entries = service.list_entries_for_obligation(db, obligation_id)
    return [ScheduleEntrySchema.from_domain(e, today) for e in entries]
