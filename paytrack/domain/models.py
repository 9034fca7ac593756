"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

# Obligation status
PENDING = "pending"
PARTIAL = "partial"
PAID = "paid"
OVERDUE = "overdue"
OBLIGATION_STATUSES = (PENDING, PARTIAL, PAID, OVERDUE)

# Obligation payment type
SINGLE = "single"
INSTALLMENT = "installment"
RECURRING = "recurring"
PAYMENT_TYPES = (SINGLE, INSTALLMENT, RECURRING)

# Budget item payment type
BUDGET_SINGLE = "single"
BUDGET_MONTHLY = "monthly"
BUDGET_INSTALLMENT = "installment"
BUDGET_PAYMENT_TYPES = (BUDGET_SINGLE, BUDGET_MONTHLY, BUDGET_INSTALLMENT)

# Forecast categories
CATEGORY_BUDGET = "budget"
CATEGORY_SCHEDULED = "scheduled"
CATEGORY_ESTIMATED = "estimated"
CATEGORY_RECURRING = "recurring"
CATEGORY_PAID_THIS_MONTH = "paid_this_month"
CATEGORY_PAID_CARRIED_OVER = "paid_carried_over"
FORECAST_CATEGORIES = (
    CATEGORY_BUDGET,
    CATEGORY_SCHEDULED,
    CATEGORY_ESTIMATED,
    CATEGORY_RECURRING,
    CATEGORY_PAID_THIS_MONTH,
    CATEGORY_PAID_CARRIED_OVER,
)


@dataclass
class InstallmentPeriod:
    """Single period produced by the installment splitter"""

    period: int
    due_date: date
    amount: Decimal


@dataclass
class Obligation:
    """A trackable amount owed ("payment item")"""

    id: Optional[int]
    name: str
    total_amount: Decimal
    paid_amount: Decimal
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
    is_deleted: bool = False
    version: int = 0

    @property
    def outstanding(self) -> Decimal:
        return self.total_amount - self.paid_amount

    @property
    def relevant_date(self) -> date:
        """Date used to place the obligation on the monthly timeline"""
        return self.due_date or self.end_date or self.start_date


@dataclass
class PaymentRecord:
    """Immutable settlement against an obligation"""

    id: Optional[int]
    obligation_id: int
    amount_paid: Decimal
    payment_date: date
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


# Schedule entry lifecycle: a tagged variant instead of a mutable flag


@dataclass(frozen=True)
class Pending:
    status = "pending"


@dataclass(frozen=True)
class Completed:
    status = "completed"


@dataclass(frozen=True)
class Superseded:
    superseded_by: int
    status = "superseded"


ScheduleState = Union[Pending, Completed, Superseded]


@dataclass
class ScheduleEntry:
    """Explicit planned settlement for an obligation"""

    id: Optional[int]
    obligation_id: int
    scheduled_date: date
    scheduled_amount: Decimal
    state: ScheduleState = field(default_factory=Pending)
    original_due_date: Optional[date] = None
    reschedule_count: int = 0
    notes: Optional[str] = None
    obligation_name: Optional[str] = None

    @property
    def status(self) -> str:
        return self.state.status

    @property
    def superseded_by(self) -> Optional[int]:
        return self.state.superseded_by if isinstance(self.state, Superseded) else None

    def is_overdue(self, today: date) -> bool:
        return isinstance(self.state, Pending) and self.scheduled_date < today


@dataclass
class BudgetItem:
    """Forward-looking planned expenditure not yet materialized"""

    id: Optional[int]
    budget_plan_id: int
    name: str
    planned_amount: Decimal
    payment_type: str = BUDGET_SINGLE
    monthly_amount: Optional[Decimal] = None
    month_count: Optional[int] = None
    installment_amount: Optional[Decimal] = None
    installment_count: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_converted: bool = False
    plan_name: Optional[str] = None
    plan_start_date: Optional[date] = None


@dataclass
class ForecastLine:
    """Traceable contribution to one forecast category"""

    source_id: int
    name: str
    amount: Decimal
    date: Optional[date] = None
    project: Optional[str] = None
    origin_month: Optional[str] = None


@dataclass
class MonthlyForecast:
    """Per-month projected outflow, one subtotal per category"""

    month: str
    month_start: date
    subtotals: Dict[str, Decimal]
    details: Dict[str, List[ForecastLine]]

    @property
    def paid(self) -> Decimal:
        return self.subtotals[CATEGORY_PAID_THIS_MONTH] + self.subtotals[CATEGORY_PAID_CARRIED_OVER]

    def subtotal(self, category: str) -> Decimal:
        return self.subtotals[category]

    def total(self, categories: Optional[Iterable[str]] = None) -> Decimal:
        """Sum of the chosen categories (all of them by default)"""
        chosen = FORECAST_CATEGORIES if categories is None else tuple(categories)
        return sum((self.subtotals[c] for c in chosen), Decimal("0"))


@dataclass
class ForecastSummary:
    """Aggregate view over a run of monthly buckets"""

    total: Decimal
    monthly_average: Decimal
    peak_month: Optional[str]
    lowest_month: Optional[str]
    trend: Decimal
    trend_percent: float


@dataclass
class DailyScheduleStat:
    amount: Decimal
    count: int


@dataclass
class ScheduleStats:
    """Scheduled amounts for one calendar month"""

    year: int
    month: int
    total_amount: Decimal
    total_count: int
    overdue_count: int
    daily: Dict[date, DailyScheduleStat]


@dataclass
class IntegratedView:
    """Obligation merged with its own records and schedule entries"""

    obligation: Obligation
    records: List[PaymentRecord]
    schedule_entries: List[ScheduleEntry]
    actual_paid: Decimal
    scheduled_total: Decimal
    pending_amount: Decimal
    has_overdue_schedule: bool
