"""Unit tests for installment splitting"""

import pytest
from datetime import date
from decimal import Decimal
from paytrack.domain.exceptions import InvalidArgument
from paytrack.domain.installments import split_installments


def test_split_installments_remainder_on_first_period():
    """100000 over 3 periods: first period absorbs the 1-unit remainder"""
    periods = split_installments(Decimal("100000"), 3, date(2024, 1, 15))

    assert [p.amount for p in periods] == [Decimal("33334"), Decimal("33333"), Decimal("33333")]
    assert sum(p.amount for p in periods) == Decimal("100000")
    assert [p.period for p in periods] == [1, 2, 3]


def test_split_installments_equal_split():
    periods = split_installments(Decimal("12000"), 4, date(2024, 1, 1))

    assert all(p.amount == Decimal("3000") for p in periods)


def test_split_installments_monthly_due_dates():
    periods = split_installments(Decimal("3000"), 3, date(2024, 1, 15))

    assert [p.due_date for p in periods] == [date(2024, 1, 15), date(2024, 2, 15), date(2024, 3, 15)]


def test_split_installments_clamps_to_month_end():
    """Jan 31 start: February period lands on the last day of February"""
    periods = split_installments(Decimal("3000"), 3, date(2023, 1, 31))

    assert periods[1].due_date == date(2023, 2, 28)
    assert periods[2].due_date == date(2023, 3, 31)


def test_split_installments_leap_year():
    periods = split_installments(Decimal("2000"), 2, date(2024, 1, 31))

    assert periods[1].due_date == date(2024, 2, 29)


def test_split_installments_single_period():
    periods = split_installments(Decimal("999"), 1, date(2024, 5, 10))

    assert len(periods) == 1
    assert periods[0].amount == Decimal("999")
    assert periods[0].due_date == date(2024, 5, 10)


def test_split_installments_cents():
    """Two decimal places: 100.00 / 3 -> 33.34, 33.33, 33.33"""
    periods = split_installments(Decimal("100.00"), 3, date(2024, 1, 1), places=2)

    assert [p.amount for p in periods] == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]


def test_split_installments_zero_total():
    periods = split_installments(Decimal("0"), 3, date(2024, 1, 1))

    assert [p.amount for p in periods] == [Decimal("0")] * 3


@pytest.mark.parametrize("periods", [0, -1, True, 2.5])
def test_split_installments_rejects_bad_periods(periods):
    with pytest.raises(InvalidArgument):
        split_installments(Decimal("1000"), periods, date(2024, 1, 1))


def test_split_installments_rejects_negative_total():
    with pytest.raises(InvalidArgument):
        split_installments(Decimal("-1"), 2, date(2024, 1, 1))


def test_split_installments_rejects_sub_unit_total():
    """100.5 in whole units cannot be split back to exactly 100.5"""
    with pytest.raises(InvalidArgument):
        split_installments(Decimal("100.5"), 2, date(2026, 1, 15))


def test_split_installments_sub_unit_total_at_finer_places():
    periods = split_installments(Decimal("100.5"), 2, date(2026, 1, 15), places=1)

    assert [p.amount for p in periods] == [Decimal("50.3"), Decimal("50.2")]
    assert sum(p.amount for p in periods) == Decimal("100.5")
