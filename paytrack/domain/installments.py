"""Installment splitting for multi-period obligations"""

from datetime import date
from decimal import Decimal
from typing import List

from paytrack.domain import money
from paytrack.domain.exceptions import InvalidArgument
from paytrack.domain.models import InstallmentPeriod
from paytrack.utils.date_utils import add_months


def split_installments(
    total: Decimal,
    periods: int,
    start_date: date,
    places: int = money.DEFAULT_PLACES,
) -> List[InstallmentPeriod]:
    """
    Split a total into monthly periods that sum exactly to the total.

    Requirements:
    - base = floor(total / periods) in the smallest currency unit
    - First period absorbs the rounding remainder, the rest carry base
    - Period k is due start_date + (k-1) months, clamped to month end

    Args:
        total: Amount to split (>= 0)
        periods: Number of periods (>= 1)
        start_date: Due date of the first period
        places: Decimal places of the smallest currency unit

    Returns:
        Ordered list of InstallmentPeriod (period index starts at 1)

    Raises:
        InvalidArgument: periods < 1, total < 0, or total finer than the smallest unit

    Example:
        100000 / 3 -> [33334, 33333, 33333]
        base 33333, remainder 1 goes to period 1
    """
    if isinstance(periods, bool) or not isinstance(periods, int) or periods < 1:
        raise InvalidArgument(f"periods must be an integer >= 1, got {periods!r}")
    if total < 0:
        raise InvalidArgument(f"total must be >= 0, got {total}")

    # never round: the periods must sum back to exactly this total
    total = money.exact(total, places)
    base = money.floor(total / periods, places)
    remainder = total - base * periods

    return [
        InstallmentPeriod(
            period=index + 1,
            due_date=add_months(start_date, index),
            amount=base + remainder if index == 0 else base,
        )
        for index in range(periods)
    ]
