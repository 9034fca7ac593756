"""Data access layer for obligations, settlements, schedule entries and budgets"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from paytrack.domain.exceptions import ConcurrentModification
from paytrack.domain.models import (
    PAID,
    BudgetItem,
    Completed,
    Obligation,
    PaymentRecord,
    Pending,
    ScheduleEntry,
    Superseded,
)
from paytrack.infrastructure.database.models import (
    BudgetItemRow,
    BudgetPlan,
    PaymentItem,
    PaymentRecordRow,
    PaymentSchedule,
)


def to_obligation(row: PaymentItem) -> Obligation:
    return Obligation(
        id=row.id,
        name=row.item_name,
        total_amount=Decimal(row.total_amount),
        paid_amount=Decimal(row.paid_amount or 0),
        status=row.status,
        payment_type=row.payment_type,
        start_date=row.start_date,
        due_date=row.due_date,
        end_date=row.end_date,
        project_id=row.project_id,
        category_id=row.category_id,
        installment_group=row.installment_group,
        period_index=row.period_index,
        period_count=row.period_count,
        notes=row.notes,
        is_deleted=row.is_deleted,
        version=row.version,
    )


def to_payment_record(row: PaymentRecordRow) -> PaymentRecord:
    return PaymentRecord(
        id=row.id,
        obligation_id=row.payment_item_id,
        amount_paid=Decimal(row.amount_paid),
        payment_date=row.payment_date,
        payment_method=row.payment_method,
        notes=row.notes,
        created_at=row.created_at,
    )


def to_schedule_entry(row: PaymentSchedule) -> ScheduleEntry:
    if row.status == Superseded.status:
        state = Superseded(superseded_by=row.superseded_by_id)
    elif row.status == Completed.status:
        state = Completed()
    else:
        state = Pending()
    return ScheduleEntry(
        id=row.id,
        obligation_id=row.payment_item_id,
        scheduled_date=row.scheduled_date,
        scheduled_amount=Decimal(row.scheduled_amount),
        state=state,
        original_due_date=row.original_due_date,
        reschedule_count=row.reschedule_count or 0,
        notes=row.notes,
        obligation_name=row.item.item_name if row.item is not None else None,
    )


def to_budget_item(row: BudgetItemRow) -> BudgetItem:
    return BudgetItem(
        id=row.id,
        budget_plan_id=row.budget_plan_id,
        name=row.item_name,
        planned_amount=Decimal(row.planned_amount),
        payment_type=row.payment_type,
        monthly_amount=Decimal(row.monthly_amount) if row.monthly_amount is not None else None,
        month_count=row.month_count,
        installment_amount=Decimal(row.installment_amount) if row.installment_amount is not None else None,
        installment_count=row.installment_count,
        start_date=row.start_date,
        end_date=row.end_date,
        is_converted=row.converted_to_payment,
        plan_name=row.plan.plan_name if row.plan is not None else None,
        plan_start_date=row.plan.start_date if row.plan is not None else None,
    )


class ObligationRepository:
    """Repository for obligations (payment items)"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, obligation: Obligation) -> PaymentItem:
        """Insert an obligation; returns the row with its id assigned"""
        row = PaymentItem(
            item_name=obligation.name,
            total_amount=obligation.total_amount,
            paid_amount=obligation.paid_amount,
            status=obligation.status,
            payment_type=obligation.payment_type,
            start_date=obligation.start_date,
            due_date=obligation.due_date,
            end_date=obligation.end_date,
            project_id=obligation.project_id,
            category_id=obligation.category_id,
            installment_group=obligation.installment_group,
            period_index=obligation.period_index,
            period_count=obligation.period_count,
            notes=obligation.notes,
            is_deleted=False,
            version=0,
        )
        self.db.add(row)
        self.db.flush()  # Get ID without committing
        return row

    def get(self, obligation_id: int, include_deleted: bool = False) -> Optional[PaymentItem]:
        query = self.db.query(PaymentItem).filter(PaymentItem.id == obligation_id)
        if not include_deleted:
            query = query.filter(PaymentItem.is_deleted.is_(False))
        return query.first()

    def list(
        self,
        status: Optional[str] = None,
        payment_type: Optional[str] = None,
        project_id: Optional[int] = None,
        category_id: Optional[int] = None,
        installment_group: Optional[str] = None,
    ) -> List[PaymentItem]:
        """Non-deleted obligations matching every given filter"""
        query = self.db.query(PaymentItem).filter(PaymentItem.is_deleted.is_(False))
        if status is not None:
            query = query.filter(PaymentItem.status == status)
        if payment_type is not None:
            query = query.filter(PaymentItem.payment_type == payment_type)
        if project_id is not None:
            query = query.filter(PaymentItem.project_id == project_id)
        if category_id is not None:
            query = query.filter(PaymentItem.category_id == category_id)
        if installment_group is not None:
            query = query.filter(PaymentItem.installment_group == installment_group)
        return query.order_by(PaymentItem.start_date, PaymentItem.period_index, PaymentItem.id).all()

    def list_open(self) -> List[PaymentItem]:
        return (
            self.db.query(PaymentItem)
            .filter(PaymentItem.is_deleted.is_(False), PaymentItem.status != PAID)
            .order_by(PaymentItem.id)
            .all()
        )

    def compare_and_set(self, obligation_id: int, expected_version: int, values: Dict[str, Any]) -> None:
        """
        Conditional UPDATE guarded by the optimistic-lock version.

        Raises:
            ConcurrentModification: Another writer changed the row since it was read
        """
        updated = (
            self.db.query(PaymentItem)
            .filter(
                PaymentItem.id == obligation_id,
                PaymentItem.version == expected_version,
                PaymentItem.is_deleted.is_(False),
            )
            .update({**values, "version": expected_version + 1}, synchronize_session="fetch")
        )
        if updated != 1:
            raise ConcurrentModification(
                f"Obligation {obligation_id} changed since version {expected_version}; retry"
            )

    def soft_delete(self, obligation_id: int, expected_version: int) -> None:
        self.compare_and_set(
            obligation_id,
            expected_version,
            {"is_deleted": True, "deleted_at": datetime.now(timezone.utc)},
        )


class PaymentRecordRepository:
    """Repository for settlements (append-only)"""

    def __init__(self, db: Session):
        self.db = db

    def add(
        self,
        obligation_id: int,
        amount: Decimal,
        payment_date: date,
        payment_method: Optional[str],
        notes: Optional[str] = None,
    ) -> PaymentRecordRow:
        row = PaymentRecordRow(
            payment_item_id=obligation_id,
            amount_paid=amount,
            payment_date=payment_date,
            payment_method=payment_method,
            notes=notes,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def list(
        self,
        obligation_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[PaymentRecordRow]:
        """Records of non-deleted obligations, newest first"""
        query = (
            self.db.query(PaymentRecordRow)
            .join(PaymentItem, PaymentRecordRow.payment_item_id == PaymentItem.id)
            .filter(PaymentItem.is_deleted.is_(False))
        )
        if obligation_id is not None:
            query = query.filter(PaymentRecordRow.payment_item_id == obligation_id)
        if date_from is not None:
            query = query.filter(PaymentRecordRow.payment_date >= date_from)
        if date_to is not None:
            query = query.filter(PaymentRecordRow.payment_date <= date_to)
        return query.order_by(PaymentRecordRow.payment_date.desc(), PaymentRecordRow.id.desc()).all()


class ScheduleRepository:
    """Repository for schedule entries"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        obligation_id: int,
        scheduled_date: date,
        scheduled_amount: Decimal,
        notes: Optional[str] = None,
        original_due_date: Optional[date] = None,
        reschedule_count: int = 0,
    ) -> PaymentSchedule:
        row = PaymentSchedule(
            payment_item_id=obligation_id,
            scheduled_date=scheduled_date,
            scheduled_amount=scheduled_amount,
            status=Pending.status,
            original_due_date=original_due_date,
            reschedule_count=reschedule_count,
            notes=notes,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def get(self, entry_id: int) -> Optional[PaymentSchedule]:
        """Entry by id; entries of soft-deleted obligations are not found"""
        return self._live().filter(PaymentSchedule.id == entry_id).first()

    def _live(self):
        return (
            self.db.query(PaymentSchedule)
            .join(PaymentItem, PaymentSchedule.payment_item_id == PaymentItem.id)
            .filter(PaymentItem.is_deleted.is_(False))
        )

    def list_between(
        self,
        first_day: date,
        last_day: date,
        include_superseded: bool = False,
        limit: Optional[int] = None,
    ) -> List[PaymentSchedule]:
        query = self._live().filter(
            PaymentSchedule.scheduled_date >= first_day,
            PaymentSchedule.scheduled_date <= last_day,
        )
        if not include_superseded:
            query = query.filter(PaymentSchedule.status != Superseded.status)
        query = query.order_by(PaymentSchedule.scheduled_date, PaymentSchedule.id)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def _overdue(self, today: date):
        return self._live().filter(
            PaymentSchedule.status == Pending.status,
            PaymentSchedule.scheduled_date < today,
        )

    def count_overdue(self, today: date) -> int:
        return self._overdue(today).count()

    def list_overdue(self, today: date) -> List[PaymentSchedule]:
        return self._overdue(today).order_by(PaymentSchedule.scheduled_date, PaymentSchedule.id).all()

    def list_for_item(self, obligation_id: int) -> List[PaymentSchedule]:
        return (
            self.db.query(PaymentSchedule)
            .filter(PaymentSchedule.payment_item_id == obligation_id)
            .order_by(PaymentSchedule.scheduled_date.desc(), PaymentSchedule.id.desc())
            .all()
        )

    def _transition_from_pending(self, entry_id: int, values: Dict[str, Any]) -> None:
        updated = (
            self.db.query(PaymentSchedule)
            .filter(PaymentSchedule.id == entry_id, PaymentSchedule.status == Pending.status)
            .update(values, synchronize_session="fetch")
        )
        if updated != 1:
            raise ConcurrentModification(f"Schedule entry {entry_id} is no longer pending; retry")

    def mark_superseded(self, entry_id: int, successor_id: int) -> None:
        """Pending -> superseded; only one reschedule can win against an entry"""
        self._transition_from_pending(
            entry_id, {"status": Superseded.status, "superseded_by_id": successor_id}
        )

    def mark_completed(self, entry_id: int) -> None:
        self._transition_from_pending(entry_id, {"status": Completed.status})

    def complete_pending_for_item(self, obligation_id: int) -> int:
        return (
            self.db.query(PaymentSchedule)
            .filter(
                PaymentSchedule.payment_item_id == obligation_id,
                PaymentSchedule.status == Pending.status,
            )
            .update({"status": Completed.status}, synchronize_session="fetch")
        )


class BudgetRepository:
    """Repository for budget plans and their items"""

    def __init__(self, db: Session):
        self.db = db

    def create_plan(
        self,
        plan_name: str,
        start_date: date,
        end_date: date,
        project_id: Optional[int] = None,
    ) -> BudgetPlan:
        row = BudgetPlan(plan_name=plan_name, start_date=start_date, end_date=end_date, project_id=project_id)
        self.db.add(row)
        self.db.flush()
        return row

    def get_plan(self, plan_id: int) -> Optional[BudgetPlan]:
        return self.db.query(BudgetPlan).filter(BudgetPlan.id == plan_id).first()

    def add_item(self, plan_id: int, item: BudgetItem, category_id: Optional[int] = None) -> BudgetItemRow:
        row = BudgetItemRow(
            budget_plan_id=plan_id,
            item_name=item.name,
            category_id=category_id,
            payment_type=item.payment_type,
            planned_amount=item.planned_amount,
            monthly_amount=item.monthly_amount,
            month_count=item.month_count,
            installment_amount=item.installment_amount,
            installment_count=item.installment_count,
            start_date=item.start_date,
            end_date=item.end_date,
            converted_to_payment=False,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def get_item(self, item_id: int) -> Optional[BudgetItemRow]:
        return (
            self.db.query(BudgetItemRow)
            .filter(BudgetItemRow.id == item_id, BudgetItemRow.is_deleted.is_(False))
            .first()
        )

    def list_items(
        self,
        plan_id: Optional[int] = None,
        converted: Optional[bool] = None,
    ) -> List[BudgetItemRow]:
        query = self.db.query(BudgetItemRow).filter(BudgetItemRow.is_deleted.is_(False))
        if plan_id is not None:
            query = query.filter(BudgetItemRow.budget_plan_id == plan_id)
        if converted is not None:
            query = query.filter(BudgetItemRow.converted_to_payment.is_(converted))
        return query.order_by(BudgetItemRow.id).all()

    def mark_converted(self, item_id: int, payment_item_id: int) -> None:
        updated = (
            self.db.query(BudgetItemRow)
            .filter(BudgetItemRow.id == item_id, BudgetItemRow.converted_to_payment.is_(False))
            .update(
                {
                    "converted_to_payment": True,
                    "linked_payment_item_id": payment_item_id,
                    "conversion_date": datetime.now(timezone.utc),
                },
                synchronize_session="fetch",
            )
        )
        if updated != 1:
            raise ConcurrentModification(f"Budget item {item_id} was converted concurrently; retry")
