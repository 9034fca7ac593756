"""Obligation status derivation - the single rule every mutation path goes through"""

from datetime import date
from decimal import Decimal
from typing import Optional

from paytrack.domain.models import OVERDUE, PAID, PARTIAL, PENDING, Obligation


def derive_status(
    paid_amount: Decimal,
    total_amount: Decimal,
    due_date: Optional[date],
    today: date,
) -> str:
    """
    Derive obligation status from its sums and due date.

    Rules (evaluated in order):
    - paid:    paid_amount >= total_amount, regardless of date
    - overdue: due_date set and before today
    - partial: some amount paid
    - pending: nothing paid yet

    ``today`` is always passed in so results are reproducible.
    """
    if paid_amount >= total_amount:
        return PAID
    if due_date is not None and due_date < today:
        return OVERDUE
    if paid_amount > 0:
        return PARTIAL
    return PENDING


def status_for(obligation: Obligation, today: date) -> str:
    return derive_status(obligation.paid_amount, obligation.total_amount, obligation.due_date, today)
