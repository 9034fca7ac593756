"""Unit tests for schedule entry rules"""

import pytest
from datetime import date
from decimal import Decimal
from paytrack.domain.exceptions import InvalidArgument
from paytrack.domain.models import Completed, Pending, ScheduleEntry, Superseded
from paytrack.domain.schedule import (
    complete,
    compute_schedule_stats,
    entries_in_month,
    overdue_entries,
    plan_reschedule,
    supersede,
)

TODAY = date(2024, 3, 15)


def entry(id, day, amount="1000", state=None, **kwargs):
    return ScheduleEntry(
        id=id,
        obligation_id=kwargs.pop("obligation_id", 1),
        scheduled_date=day,
        scheduled_amount=Decimal(amount),
        state=state or Pending(),
        **kwargs,
    )


def test_entries_in_month_hides_superseded_by_default():
    entries = [
        entry(1, date(2024, 3, 20), state=Superseded(superseded_by=2)),
        entry(2, date(2024, 3, 25)),
        entry(3, date(2024, 4, 1)),
    ]

    assert [e.id for e in entries_in_month(entries, 2024, 3)] == [2]
    assert [e.id for e in entries_in_month(entries, 2024, 3, include_superseded=True)] == [1, 2]


def test_overdue_only_pending_past_entries():
    entries = [
        entry(1, date(2024, 3, 1)),
        entry(2, date(2024, 3, 2), state=Completed()),
        entry(3, date(2024, 3, 3), state=Superseded(superseded_by=4)),
        entry(4, date(2024, 3, 15)),
    ]

    assert [e.id for e in overdue_entries(entries, TODAY)] == [1]


def test_schedule_stats():
    entries = [
        entry(1, date(2024, 3, 10), "500"),
        entry(2, date(2024, 3, 10), "700"),
        entry(3, date(2024, 3, 20), "300"),
        entry(4, date(2024, 3, 5), "900", state=Superseded(superseded_by=3)),
        entry(5, date(2024, 2, 1), "100"),  # other month, still overdue
    ]

    stats = compute_schedule_stats(entries, 2024, 3, TODAY)

    assert stats.total_amount == Decimal("1500")
    assert stats.total_count == 3
    assert stats.daily[date(2024, 3, 10)].amount == Decimal("1200")
    assert stats.daily[date(2024, 3, 10)].count == 2
    assert date(2024, 3, 5) not in stats.daily
    assert stats.overdue_count == 3  # entries 1, 2 and 5


def test_plan_reschedule_builds_successor():
    original = entry(1, date(2024, 3, 10), notes="first")

    successor = plan_reschedule(original, date(2024, 4, 10))

    assert successor.id is None
    assert successor.scheduled_date == date(2024, 4, 10)
    assert successor.scheduled_amount == original.scheduled_amount
    assert successor.original_due_date == date(2024, 3, 10)
    assert successor.reschedule_count == 1
    assert successor.notes == "first"
    assert isinstance(successor.state, Pending)
    # the original is untouched
    assert original.scheduled_date == date(2024, 3, 10)


def test_plan_reschedule_keeps_first_due_date_across_chain():
    second = entry(2, date(2024, 4, 10), original_due_date=date(2024, 3, 10), reschedule_count=1)

    third = plan_reschedule(second, date(2024, 5, 10), notes="again")

    assert third.original_due_date == date(2024, 3, 10)
    assert third.reschedule_count == 2
    assert third.notes == "again"


@pytest.mark.parametrize("state", [Completed(), Superseded(superseded_by=9)])
def test_only_pending_entries_move(state):
    e = entry(1, date(2024, 3, 10), state=state)

    with pytest.raises(InvalidArgument):
        plan_reschedule(e, date(2024, 4, 1))
    with pytest.raises(InvalidArgument):
        supersede(e, 2)
    with pytest.raises(InvalidArgument):
        complete(e)


def test_supersede_and_complete():
    e = entry(1, date(2024, 3, 10))

    superseded = supersede(e, 7)
    assert superseded.status == "superseded"
    assert superseded.superseded_by == 7
    assert superseded.scheduled_date == date(2024, 3, 10)
    assert not superseded.is_overdue(TODAY)

    done = complete(e)
    assert done.status == "completed"
    assert done.superseded_by is None
