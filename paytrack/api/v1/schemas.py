"""Pydantic schemas for API request/response validation"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from paytrack.config import settings
from paytrack.domain import money
from paytrack.domain.models import (
    BudgetItem,
    ForecastLine,
    ForecastSummary,
    IntegratedView,
    MonthlyForecast,
    Obligation,
    PaymentRecord,
    ScheduleEntry,
    ScheduleStats,
)


def fmt(amount: Optional[Decimal]) -> Optional[str]:
    """Money goes over the wire as a plain decimal string"""
    if amount is None:
        return None
    return money.format(amount, settings.money_places)


# Obligations


class ObligationCreate(BaseModel):
    """Request body for POST /v1/obligations"""

    name: str = Field(..., min_length=1, max_length=255)
    total_amount: Decimal = Field(..., ge=0, description="Total owed, in currency units")
    payment_type: Literal["single", "installment", "recurring"] = "single"
    start_date: date
    period_count: Optional[int] = Field(None, ge=1, description="Required for installment")
    due_date: Optional[date] = None
    end_date: Optional[date] = None
    project_id: Optional[int] = None
    category_id: Optional[int] = None
    notes: Optional[str] = None


class ObligationUpdate(BaseModel):
    """Request body for PATCH /v1/obligations/{id}; only sent fields change"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    total_amount: Optional[Decimal] = Field(None, ge=0)
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    end_date: Optional[date] = None
    project_id: Optional[int] = None
    category_id: Optional[int] = None
    notes: Optional[str] = None


class ObligationSchema(BaseModel):
    id: int
    name: str
    total_amount: str
    paid_amount: str
    outstanding: str
    status: str
    payment_type: str
    start_date: date
    due_date: Optional[date] = None
    end_date: Optional[date] = None
    project_id: Optional[int] = None
    category_id: Optional[int] = None
    installment_group: Optional[str] = None
    period_index: Optional[int] = None
    period_count: Optional[int] = None
    notes: Optional[str] = None

    @classmethod
    def from_domain(cls, o: Obligation) -> "ObligationSchema":
        return cls(
            id=o.id,
            name=o.name,
            total_amount=fmt(o.total_amount),
            paid_amount=fmt(o.paid_amount),
            outstanding=fmt(o.outstanding),
            status=o.status,
            payment_type=o.payment_type,
            start_date=o.start_date,
            due_date=o.due_date,
            end_date=o.end_date,
            project_id=o.project_id,
            category_id=o.category_id,
            installment_group=o.installment_group,
            period_index=o.period_index,
            period_count=o.period_count,
            notes=o.notes,
        )


class OverdueResponse(BaseModel):
    current_month: List[ObligationSchema]
    previous_months: List[ObligationSchema]


class RefreshResponse(BaseModel):
    changed: int


# Payments


class PaymentCreate(BaseModel):
    """Request body for POST /v1/obligations/{id}/payments"""

    amount: Decimal = Field(..., gt=0)
    payment_date: date
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    schedule_entry_id: Optional[int] = Field(None, description="Schedule entry this payment settles")


class PaymentRecordSchema(BaseModel):
    id: int
    obligation_id: int
    amount_paid: str
    payment_date: date
    payment_method: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_domain(cls, r: PaymentRecord) -> "PaymentRecordSchema":
        return cls(
            id=r.id,
            obligation_id=r.obligation_id,
            amount_paid=fmt(r.amount_paid),
            payment_date=r.payment_date,
            payment_method=r.payment_method,
            notes=r.notes,
        )


# Schedule


class ScheduleCreate(BaseModel):
    """Request body for POST /v1/schedule"""

    obligation_id: int
    scheduled_date: date
    scheduled_amount: Decimal = Field(..., gt=0)
    notes: Optional[str] = None


class RescheduleRequest(BaseModel):
    """Request body for POST /v1/schedule/{id}/reschedule"""

    new_date: date
    notes: Optional[str] = None


class ScheduleEntrySchema(BaseModel):
    id: int
    obligation_id: int
    obligation_name: Optional[str] = None
    scheduled_date: date
    scheduled_amount: str
    status: str
    superseded_by: Optional[int] = None
    original_due_date: Optional[date] = None
    reschedule_count: int
    is_overdue: bool
    notes: Optional[str] = None

    @classmethod
    def from_domain(cls, e: ScheduleEntry, today: date) -> "ScheduleEntrySchema":
        return cls(
            id=e.id,
            obligation_id=e.obligation_id,
            obligation_name=e.obligation_name,
            scheduled_date=e.scheduled_date,
            scheduled_amount=fmt(e.scheduled_amount),
            status=e.status,
            superseded_by=e.superseded_by,
            original_due_date=e.original_due_date,
            reschedule_count=e.reschedule_count,
            is_overdue=e.is_overdue(today),
            notes=e.notes,
        )


class DailyStatSchema(BaseModel):
    amount: str
    count: int


class ScheduleStatsResponse(BaseModel):
    """Response for GET /v1/schedule/stats/{year}/{month}"""

    year: int
    month: int
    total_amount: str
    total_count: int
    overdue_count: int
    daily_stats: Dict[str, DailyStatSchema]

    @classmethod
    def from_domain(cls, s: ScheduleStats) -> "ScheduleStatsResponse":
        return cls(
            year=s.year,
            month=s.month,
            total_amount=fmt(s.total_amount),
            total_count=s.total_count,
            overdue_count=s.overdue_count,
            daily_stats={
                day.isoformat(): DailyStatSchema(amount=fmt(stat.amount), count=stat.count)
                for day, stat in sorted(s.daily.items())
            },
        )


class IntegratedViewResponse(BaseModel):
    """Response for GET /v1/obligations/{id}/integrated"""

    obligation: ObligationSchema
    payment_records: List[PaymentRecordSchema]
    schedules: List[ScheduleEntrySchema]
    actual_paid: str
    scheduled_total: str
    pending_amount: str
    record_count: int
    schedule_count: int
    has_overdue_schedule: bool

    @classmethod
    def from_domain(cls, v: IntegratedView, today: date) -> "IntegratedViewResponse":
        return cls(
            obligation=ObligationSchema.from_domain(v.obligation),
            payment_records=[PaymentRecordSchema.from_domain(r) for r in v.records],
            schedules=[ScheduleEntrySchema.from_domain(e, today) for e in v.schedule_entries],
            actual_paid=fmt(v.actual_paid),
            scheduled_total=fmt(v.scheduled_total),
            pending_amount=fmt(v.pending_amount),
            record_count=len(v.records),
            schedule_count=len(v.schedule_entries),
            has_overdue_schedule=v.has_overdue_schedule,
        )


# Budget


class BudgetPlanCreate(BaseModel):
    plan_name: str = Field(..., min_length=1, max_length=255)
    start_date: date
    end_date: date
    project_id: Optional[int] = None


class BudgetPlanSchema(BaseModel):
    id: int
    plan_name: str
    start_date: date
    end_date: date
    project_id: Optional[int] = None


class BudgetItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    planned_amount: Decimal = Field(..., ge=0)
    payment_type: Literal["single", "monthly", "installment"] = "single"
    monthly_amount: Optional[Decimal] = Field(None, ge=0)
    month_count: Optional[int] = Field(None, ge=1)
    installment_amount: Optional[Decimal] = Field(None, ge=0)
    installment_count: Optional[int] = Field(None, ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category_id: Optional[int] = None


class BudgetItemSchema(BaseModel):
    id: int
    budget_plan_id: int
    name: str
    planned_amount: str
    payment_type: str
    monthly_amount: Optional[str] = None
    month_count: Optional[int] = None
    installment_amount: Optional[str] = None
    installment_count: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_converted: bool

    @classmethod
    def from_domain(cls, b: BudgetItem) -> "BudgetItemSchema":
        return cls(
            id=b.id,
            budget_plan_id=b.budget_plan_id,
            name=b.name,
            planned_amount=fmt(b.planned_amount),
            payment_type=b.payment_type,
            monthly_amount=fmt(b.monthly_amount),
            month_count=b.month_count,
            installment_amount=fmt(b.installment_amount),
            installment_count=b.installment_count,
            start_date=b.start_date,
            end_date=b.end_date,
            is_converted=b.is_converted,
        )


class ConversionResponse(BaseModel):
    budget_item_id: int
    obligations: List[ObligationSchema]


# Cash-flow forecast


class ForecastLineSchema(BaseModel):
    source_id: int
    name: str
    amount: str
    entry_date: Optional[date] = None
    project: Optional[str] = None
    origin_month: Optional[str] = None

    @classmethod
    def from_domain(cls, line: ForecastLine) -> "ForecastLineSchema":
        return cls(
            source_id=line.source_id,
            name=line.name,
            amount=fmt(line.amount),
            entry_date=line.date,
            project=line.project,
            origin_month=line.origin_month,
        )


class MonthlyForecastSchema(BaseModel):
    month: str
    budget: str
    scheduled: str
    estimated: str
    recurring: str
    paid_this_month: str
    paid_carried_over: str
    paid: str
    total: str
    details: Dict[str, List[ForecastLineSchema]]

    @classmethod
    def from_domain(cls, m: MonthlyForecast, include: List[str]) -> "MonthlyForecastSchema":
        return cls(
            month=m.month,
            budget=fmt(m.subtotal("budget")),
            scheduled=fmt(m.subtotal("scheduled")),
            estimated=fmt(m.subtotal("estimated")),
            recurring=fmt(m.subtotal("recurring")),
            paid_this_month=fmt(m.subtotal("paid_this_month")),
            paid_carried_over=fmt(m.subtotal("paid_carried_over")),
            paid=fmt(m.paid),
            total=fmt(m.total(include)),
            details={
                category: [ForecastLineSchema.from_domain(line) for line in lines]
                for category, lines in m.details.items()
            },
        )


class ForecastSummarySchema(BaseModel):
    total: str
    monthly_average: str
    peak_month: Optional[str] = None
    lowest_month: Optional[str] = None
    trend: str
    trend_percent: float

    @classmethod
    def from_domain(cls, s: ForecastSummary) -> "ForecastSummarySchema":
        return cls(
            total=fmt(s.total),
            monthly_average=fmt(s.monthly_average),
            peak_month=s.peak_month,
            lowest_month=s.lowest_month,
            trend=fmt(s.trend),
            trend_percent=s.trend_percent,
        )


class ForecastResponse(BaseModel):
    """Response for GET /v1/cashflow/forecast"""

    include: List[str]
    months: List[MonthlyForecastSchema]
    summary: ForecastSummarySchema
