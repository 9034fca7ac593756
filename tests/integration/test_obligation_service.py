"""Integration tests for obligation lifecycle against the database"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from paytrack.domain.exceptions import ConcurrentModification, InvalidArgument, NotFound
from paytrack.infrastructure.database.models import PaymentItem
from paytrack.infrastructure.database.repositories import ObligationRepository
from paytrack.services.obligations import (
    create_obligation,
    delete_obligation,
    get_integrated_view,
    get_obligation,
    list_obligations,
    list_overdue_obligations,
    refresh_statuses,
    update_obligation,
)
from paytrack.services.payments import record_payment
from paytrack.services.schedules import create_schedule_entry

TODAY = date(2024, 3, 15)


def test_create_single_obligation(db: Session):
    obligation = create_obligation(
        db,
        name="Server rack",
        total_amount="12,500",
        payment_type="single",
        start_date=date(2024, 3, 1),
        due_date=date(2024, 4, 30),
        today=TODAY,
    )

    assert obligation.id is not None
    assert obligation.total_amount == Decimal("12500")
    assert obligation.paid_amount == Decimal("0")
    assert obligation.status == "pending"


def test_create_installment_group(db: Session):
    periods = create_obligation(
        db,
        name="Forklift",
        total_amount=Decimal("100000"),
        payment_type="installment",
        period_count=3,
        start_date=date(2026, 1, 15),
        today=TODAY,
    )

    assert [p.total_amount for p in periods] == [Decimal("33334"), Decimal("33333"), Decimal("33333")]
    assert [p.due_date for p in periods] == [date(2026, 1, 15), date(2026, 2, 15), date(2026, 3, 15)]
    assert [p.name for p in periods] == ["Forklift (1/3)", "Forklift (2/3)", "Forklift (3/3)"]
    assert len({p.installment_group for p in periods}) == 1
    assert list_obligations(db, installment_group=periods[0].installment_group, today=TODAY) == periods


def test_create_installment_requires_period_count(db: Session):
    with pytest.raises(InvalidArgument):
        create_obligation(db, "Forklift", Decimal("1000"), "installment", date(2024, 1, 1), today=TODAY)

    assert db.query(PaymentItem).count() == 0


def test_create_rejects_negative_total(db: Session):
    with pytest.raises(InvalidArgument):
        create_obligation(db, "Refund", Decimal("-5"), "single", date(2024, 1, 1), today=TODAY)


def test_past_due_obligation_is_overdue(db: Session):
    obligation = create_obligation(
        db, "Insurance", Decimal("50000"), "single", date(2024, 1, 1), due_date=date(2024, 2, 1), today=TODAY
    )

    assert obligation.status == "overdue"


def test_update_total_rederives_status(db: Session):
    obligation = create_obligation(db, "Licenses", Decimal("1000"), "single", date(2024, 3, 1), today=TODAY)
    record_payment(db, obligation.id, Decimal("1000"), date(2024, 3, 10), today=TODAY)

    updated = update_obligation(db, obligation.id, {"total_amount": Decimal("1500")}, today=TODAY)

    assert updated.status == "partial"
    assert db.get(PaymentItem, obligation.id).status == "partial"


def test_update_rejects_total_below_paid(db: Session):
    obligation = create_obligation(db, "Licenses", Decimal("1000"), "single", date(2024, 3, 1), today=TODAY)
    record_payment(db, obligation.id, Decimal("600"), date(2024, 3, 10), today=TODAY)

    with pytest.raises(InvalidArgument):
        update_obligation(db, obligation.id, {"total_amount": Decimal("500")}, today=TODAY)


def test_update_rejects_unknown_fields(db: Session):
    obligation = create_obligation(db, "Licenses", Decimal("1000"), "single", date(2024, 3, 1), today=TODAY)

    with pytest.raises(InvalidArgument):
        update_obligation(db, obligation.id, {"paid_amount": Decimal("1000")}, today=TODAY)


def test_stale_version_write_is_rejected(db: Session):
    obligation = create_obligation(db, "Licenses", Decimal("1000"), "single", date(2024, 3, 1), today=TODAY)
    stale_version = db.get(PaymentItem, obligation.id).version
    update_obligation(db, obligation.id, {"notes": "renewed"}, today=TODAY)

    with pytest.raises(ConcurrentModification):
        ObligationRepository(db).compare_and_set(obligation.id, stale_version, {"notes": "lost update"})
    db.rollback()

    assert get_obligation(db, obligation.id, TODAY).notes == "renewed"


def test_soft_delete_hides_obligation(db: Session):
    obligation = create_obligation(db, "Licenses", Decimal("1000"), "single", date(2024, 3, 1), today=TODAY)

    delete_obligation(db, obligation.id)

    with pytest.raises(NotFound):
        get_obligation(db, obligation.id, TODAY)
    assert list_obligations(db, today=TODAY) == []
    assert db.get(PaymentItem, obligation.id).deleted_at is not None


def test_refresh_statuses_persists_overdue(db: Session):
    obligation = create_obligation(
        db, "Rent", Decimal("2000"), "single", date(2024, 3, 1), due_date=date(2024, 3, 31), today=TODAY
    )
    assert obligation.status == "pending"

    changed = refresh_statuses(db, today=date(2024, 4, 2))

    assert changed == 1
    assert db.get(PaymentItem, obligation.id).status == "overdue"
    assert refresh_statuses(db, today=date(2024, 4, 2)) == 0


def test_list_filters_on_derived_status(db: Session):
    create_obligation(db, "Rent", Decimal("2000"), "single", date(2024, 3, 1), due_date=date(2024, 3, 31), today=TODAY)

    # stored status is still pending; read path derives overdue for a later date
    overdue = list_obligations(db, status="overdue", today=date(2024, 4, 2))

    assert [o.name for o in overdue] == ["Rent"]


def test_overdue_split_by_month(db: Session):
    create_obligation(db, "Old", Decimal("100"), "single", date(2024, 1, 1), due_date=date(2024, 2, 10), today=TODAY)
    create_obligation(db, "Recent", Decimal("100"), "single", date(2024, 3, 1), due_date=date(2024, 3, 5), today=TODAY)
    create_obligation(db, "Future", Decimal("100"), "single", date(2024, 3, 1), due_date=date(2024, 3, 25), today=TODAY)

    split = list_overdue_obligations(db, TODAY)

    assert [o.name for o in split["current_month"]] == ["Recent"]
    assert [o.name for o in split["previous_months"]] == ["Old"]


def test_integrated_view(db: Session):
    obligation = create_obligation(
        db, "Fit-out", Decimal("9000"), "single", date(2024, 3, 1), due_date=date(2024, 5, 31), today=TODAY
    )
    create_schedule_entry(db, obligation.id, date(2024, 3, 10), Decimal("3000"))
    create_schedule_entry(db, obligation.id, date(2024, 4, 10), Decimal("3000"))
    record_payment(db, obligation.id, Decimal("2000"), date(2024, 3, 12), today=TODAY)

    view = get_integrated_view(db, obligation.id, TODAY)

    assert view.actual_paid == Decimal("2000")
    assert view.scheduled_total == Decimal("6000")
    assert view.pending_amount == Decimal("7000")
    assert view.has_overdue_schedule is True
    assert len(view.records) == 1
    assert len(view.schedule_entries) == 2

    april_only = get_integrated_view(db, obligation.id, TODAY, year=2024, month=4)
    assert april_only.scheduled_total == Decimal("3000")


def test_update_cannot_clear_start_date(db: Session):
    obligation = create_obligation(db, "Licenses", Decimal("1000"), "single", date(2024, 3, 1), today=TODAY)

    with pytest.raises(InvalidArgument):
        update_obligation(db, obligation.id, {"start_date": None}, today=TODAY)

    assert get_obligation(db, obligation.id, TODAY).start_date == date(2024, 3, 1)


def test_update_rejects_end_before_start(db: Session):
    obligation = create_obligation(
        db, "Licenses", Decimal("1000"), "single", date(2024, 3, 1), end_date=date(2024, 6, 30), today=TODAY
    )

    with pytest.raises(InvalidArgument):
        update_obligation(db, obligation.id, {"end_date": date(2024, 2, 1)}, today=TODAY)
    with pytest.raises(InvalidArgument):
        update_obligation(db, obligation.id, {"start_date": date(2024, 7, 1)}, today=TODAY)

    moved = update_obligation(
        db, obligation.id, {"start_date": date(2024, 7, 1), "end_date": date(2024, 9, 30)}, today=TODAY
    )
    assert (moved.start_date, moved.end_date) == (date(2024, 7, 1), date(2024, 9, 30))


def test_amounts_finer_than_currency_unit_rejected(db: Session):
    with pytest.raises(InvalidArgument):
        create_obligation(db, "Licenses", Decimal("100.4"), "single", date(2024, 3, 1), today=TODAY)

    obligation = create_obligation(db, "Licenses", Decimal("100"), "single", date(2024, 3, 1), today=TODAY)
    with pytest.raises(InvalidArgument):
        update_obligation(db, obligation.id, {"total_amount": Decimal("150.5")}, today=TODAY)
    with pytest.raises(InvalidArgument):
        record_payment(db, obligation.id, Decimal("0.4"), date(2024, 3, 10), today=TODAY)

    assert db.get(PaymentItem, obligation.id).paid_amount == Decimal("0")
