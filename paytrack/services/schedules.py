"""Schedule tracking: planned settlement dates, monthly stats, supersede-on-reschedule"""

from datetime import date
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from paytrack.config import settings
from paytrack.domain import money
from paytrack.domain.exceptions import InvalidArgument, NotFound
from paytrack.domain.models import ScheduleEntry, ScheduleStats
from paytrack.domain.schedule import compute_schedule_stats, plan_reschedule, supersede
from paytrack.infrastructure.database.repositories import (
    ObligationRepository,
    ScheduleRepository,
    to_schedule_entry,
)
from paytrack.infrastructure.database.session import atomic
from paytrack.infrastructure.observability.logging import log_reschedule
from paytrack.infrastructure.observability.metrics import reschedule_counter
from paytrack.utils.date_utils import month_bounds


def _check_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise InvalidArgument(f"month must be 1-12, got {month}")
    if not 1 <= year <= 9999:
        raise InvalidArgument(f"year out of range: {year}")


def create_schedule_entry(
    db: Session,
    obligation_id: int,
    scheduled_date: date,
    scheduled_amount: Any,
    notes: Optional[str] = None,
) -> ScheduleEntry:
    """Plan a settlement for an existing obligation"""
    amount = money.exact(scheduled_amount, settings.money_places)
    if amount <= 0:
        raise InvalidArgument(f"scheduled_amount must be > 0, got {amount}")

    with atomic(db):
        if ObligationRepository(db).get(obligation_id) is None:
            raise NotFound("Obligation", obligation_id)
        row = ScheduleRepository(db).create(
            obligation_id=obligation_id,
            scheduled_date=scheduled_date,
            scheduled_amount=amount,
            notes=notes,
            original_due_date=scheduled_date,
        )
        entry = to_schedule_entry(row)
    return entry


def list_schedule(
    db: Session,
    year: int,
    month: int,
    include_superseded: bool = False,
) -> List[ScheduleEntry]:
    """Entries dated within the month; superseded history only on request"""
    _check_month(year, month)
    first_day, last_day = month_bounds(year, month)
    rows = ScheduleRepository(db).list_between(
        first_day,
        last_day,
        include_superseded=include_superseded,
        limit=settings.schedule_list_limit,
    )
    return [to_schedule_entry(row) for row in rows]


def get_schedule_stats(db: Session, year: int, month: int, today: Optional[date] = None) -> ScheduleStats:
    """Per-day and total scheduled amounts for the month, plus the system-wide overdue count"""
    _check_month(year, month)
    today = today or date.today()
    first_day, last_day = month_bounds(year, month)
    repo = ScheduleRepository(db)
    entries = [to_schedule_entry(row) for row in repo.list_between(first_day, last_day)]
    return compute_schedule_stats(entries, year, month, today, overdue_count=repo.count_overdue(today))


def list_overdue_schedule(db: Session, today: Optional[date] = None) -> List[ScheduleEntry]:
    rows = ScheduleRepository(db).list_overdue(today or date.today())
    return [to_schedule_entry(row) for row in rows]


def list_entries_for_obligation(db: Session, obligation_id: int) -> List[ScheduleEntry]:
    """Full audit trail for one obligation, superseded entries included"""
    if ObligationRepository(db).get(obligation_id) is None:
        raise NotFound("Obligation", obligation_id)
    return [to_schedule_entry(row) for row in ScheduleRepository(db).list_for_item(obligation_id)]


def reschedule_entry(
    db: Session,
    entry_id: int,
    new_date: date,
    notes: Optional[str] = None,
    request_id: Optional[str] = None,
) -> ScheduleEntry:
    """
    Replace a pending entry with a new one on ``new_date``.

    The original keeps its date and becomes superseded, pointing at its
    successor. The supersede is a conditional update on status, so two
    concurrent reschedules cannot both win.

    Raises:
        NotFound: Entry missing, or its obligation was deleted
        InvalidArgument: Entry is not pending
        ConcurrentModification: Entry was superseded or completed meanwhile
    """
    repo = ScheduleRepository(db)
    with atomic(db):
        row = repo.get(entry_id)
        if row is None:
            raise NotFound("Schedule entry", entry_id)

        current = to_schedule_entry(row)
        successor = plan_reschedule(current, new_date, notes)
        new_row = repo.create(
            obligation_id=successor.obligation_id,
            scheduled_date=successor.scheduled_date,
            scheduled_amount=successor.scheduled_amount,
            notes=successor.notes,
            original_due_date=successor.original_due_date,
            reschedule_count=successor.reschedule_count,
        )
        superseded = supersede(current, new_row.id)
        repo.mark_superseded(entry_id, superseded.superseded_by)
        created = to_schedule_entry(new_row)

    reschedule_counter.inc()
    log_reschedule(entry_id, created.id, new_date.isoformat(), request_id)
    return created
