"""SQLAlchemy ORM models for obligations, settlements, schedule and budgets"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(14, 2)


class PaymentItem(Base):
    """Obligation row; paid_amount always equals the sum of its records"""

    __tablename__ = "payment_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_name = Column(String(255), nullable=False)
    total_amount = Column(MONEY, nullable=False)
    paid_amount = Column(MONEY, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_type = Column(String(20), nullable=False, default="single")
    start_date = Column(Date, nullable=False, index=True)
    due_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    project_id = Column(Integer, nullable=True, index=True)
    category_id = Column(Integer, nullable=True, index=True)
    installment_group = Column(String(36), nullable=True, index=True)
    period_index = Column(Integer, nullable=True)
    period_count = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    # optimistic lock, bumped on every write to amounts/status
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    records = relationship("PaymentRecordRow", back_populates="item", order_by="PaymentRecordRow.payment_date")
    schedules = relationship("PaymentSchedule", back_populates="item", order_by="PaymentSchedule.scheduled_date")


class PaymentRecordRow(Base):
    """Immutable settlement; inserted only, never updated or deleted"""

    __tablename__ = "payment_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_item_id = Column(Integer, ForeignKey("payment_items.id"), nullable=False, index=True)
    amount_paid = Column(MONEY, nullable=False)
    payment_date = Column(Date, nullable=False, index=True)
    payment_method = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    item = relationship("PaymentItem", back_populates="records")


class PaymentSchedule(Base):
    """Planned settlement; rescheduling supersedes instead of moving the date"""

    __tablename__ = "payment_schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_item_id = Column(Integer, ForeignKey("payment_items.id"), nullable=False, index=True)
    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_amount = Column(MONEY, nullable=False)
    status = Column(Text, nullable=False, default="pending", index=True)
    superseded_by_id = Column(Integer, ForeignKey("payment_schedules.id"), nullable=True)
    original_due_date = Column(Date, nullable=True)
    reschedule_count = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    item = relationship("PaymentItem", back_populates="schedules")


class BudgetPlan(Base):
    """Container for planned expenditure"""

    __tablename__ = "budget_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_name = Column(String(255), nullable=False)
    project_id = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    items = relationship("BudgetItemRow", back_populates="plan", cascade="all, delete-orphan")


class BudgetItemRow(Base):
    """Planned expenditure line; flagged converted once it becomes an obligation"""

    __tablename__ = "budget_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    budget_plan_id = Column(Integer, ForeignKey("budget_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    category_id = Column(Integer, nullable=True)
    payment_type = Column(String(20), nullable=False, default="single")
    planned_amount = Column(MONEY, nullable=False)
    monthly_amount = Column(MONEY, nullable=True)
    month_count = Column(Integer, nullable=True)
    installment_amount = Column(MONEY, nullable=True)
    installment_count = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    converted_to_payment = Column(Boolean, nullable=False, default=False, index=True)
    linked_payment_item_id = Column(Integer, ForeignKey("payment_items.id"), nullable=True)
    conversion_date = Column(DateTime(timezone=True), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    plan = relationship("BudgetPlan", back_populates="items")
