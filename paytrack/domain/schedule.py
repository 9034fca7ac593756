"""Schedule entry rules: month filtering, overdue state, reschedule and completion"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from paytrack.domain.exceptions import InvalidArgument
from paytrack.domain.models import (
    Completed,
    DailyScheduleStat,
    Pending,
    ScheduleEntry,
    ScheduleStats,
    Superseded,
)
from paytrack.utils.date_utils import month_bounds


def entries_in_month(
    entries: Iterable[ScheduleEntry],
    year: int,
    month: int,
    include_superseded: bool = False,
) -> List[ScheduleEntry]:
    """Entries scheduled within the calendar month, ordered by date"""
    first_day, last_day = month_bounds(year, month)
    selected = [
        e for e in entries
        if first_day <= e.scheduled_date <= last_day
        and (include_superseded or not isinstance(e.state, Superseded))
    ]
    return sorted(selected, key=lambda e: (e.scheduled_date, e.id or 0))


def overdue_entries(entries: Iterable[ScheduleEntry], today: date) -> List[ScheduleEntry]:
    """Pending entries whose date has passed, oldest first"""
    return sorted(
        (e for e in entries if e.is_overdue(today)),
        key=lambda e: (e.scheduled_date, e.id or 0),
    )


def compute_schedule_stats(
    entries: Iterable[ScheduleEntry],
    year: int,
    month: int,
    today: date,
    overdue_count: Optional[int] = None,
) -> ScheduleStats:
    """
    Per-day and aggregate scheduled amounts for a month.

    Superseded entries are history and do not count toward the month.
    The overdue count covers every entry, not only the queried month; pass
    ``overdue_count`` when it was counted elsewhere and ``entries`` only
    holds the month.
    """
    entries = list(entries)
    month_entries = entries_in_month(entries, year, month)

    daily: Dict[date, DailyScheduleStat] = {}
    for entry in month_entries:
        stat = daily.setdefault(entry.scheduled_date, DailyScheduleStat(amount=Decimal("0"), count=0))
        stat.amount += entry.scheduled_amount
        stat.count += 1

    if overdue_count is None:
        overdue_count = len(overdue_entries(entries, today))

    return ScheduleStats(
        year=year,
        month=month,
        total_amount=sum((e.scheduled_amount for e in month_entries), Decimal("0")),
        total_count=len(month_entries),
        overdue_count=overdue_count,
        daily=daily,
    )


def plan_reschedule(entry: ScheduleEntry, new_date: date, notes: Optional[str] = None) -> ScheduleEntry:
    """
    Build the successor of a pending entry.

    The original keeps its date; the caller persists the successor and then
    marks the original Superseded(successor id).
    """
    if not isinstance(entry.state, Pending):
        raise InvalidArgument(f"Schedule entry {entry.id} is {entry.status}; only pending entries can be rescheduled")

    return ScheduleEntry(
        id=None,
        obligation_id=entry.obligation_id,
        scheduled_date=new_date,
        scheduled_amount=entry.scheduled_amount,
        state=Pending(),
        original_due_date=entry.original_due_date or entry.scheduled_date,
        reschedule_count=entry.reschedule_count + 1,
        notes=notes if notes is not None else entry.notes,
        obligation_name=entry.obligation_name,
    )


def supersede(entry: ScheduleEntry, successor_id: int) -> ScheduleEntry:
    if not isinstance(entry.state, Pending):
        raise InvalidArgument(f"Schedule entry {entry.id} is {entry.status}; cannot supersede")
    return replace(entry, state=Superseded(superseded_by=successor_id))


def complete(entry: ScheduleEntry) -> ScheduleEntry:
    if not isinstance(entry.state, Pending):
        raise InvalidArgument(f"Schedule entry {entry.id} is {entry.status}; cannot complete")
    return replace(entry, state=Completed())
