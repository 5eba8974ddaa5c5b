from __future__ import annotations

from datetime import date, datetime

import pytest
from fintrack.categories import DEFAULT_CATEGORIES
from fintrack.lent import add_partial_return
from fintrack.models import Transaction, TransactionType
from fintrack.stats import (
    balance_summary,
    category_breakdown,
    daily_trend,
    day_flags,
    filter_period,
    format_inr,
    month_transactions,
)

# A Wednesday; the week started on Sunday 2024-03-10.
NOW = datetime(2024, 3, 13, 15, 0)


def _tx(
    tx_id: str,
    amount: float,
    tx_type: TransactionType,
    when: datetime,
    category_id: str | None = "1",
) -> Transaction:
    return Transaction(
        id=tx_id,
        amount=amount,
        type=tx_type,
        category_id=None if tx_type == TransactionType.LENT else category_id,
        payment_method_id="p1",
        date=when,
    )


def test_balance_subtracts_pending_lent() -> None:
    lent = _tx("l", 1000.0, TransactionType.LENT, NOW)
    add_partial_return(lent, 250.0)
    txs = [
        _tx("i", 50000.0, TransactionType.INCOME, NOW, "8"),
        _tx("e", 1200.0, TransactionType.EXPENSE, NOW),
        lent,
    ]

    s = balance_summary(txs)

    assert (s.income, s.expenses, s.lent_pending) == (50000.0, 1200.0, 750.0)
    assert s.balance == 50000.0 - 1200.0 - 750.0


def test_period_filters() -> None:
    txs = [
        _tx("today", 1, TransactionType.EXPENSE, datetime(2024, 3, 13, 8, 0)),
        _tx("sunday", 1, TransactionType.EXPENSE, datetime(2024, 3, 10, 0, 0)),
        _tx("saturday", 1, TransactionType.EXPENSE, datetime(2024, 3, 9, 23, 59)),
        _tx("march1", 1, TransactionType.EXPENSE, datetime(2024, 3, 1)),
        _tx("feb", 1, TransactionType.EXPENSE, datetime(2024, 2, 28)),
        _tx("last_year", 1, TransactionType.EXPENSE, datetime(2023, 3, 13)),
    ]

    def ids(period: str) -> list[str]:
        return [t.id for t in filter_period(txs, period, now=NOW)]  # type: ignore[arg-type]

    assert ids("day") == ["today"]
    assert ids("week") == ["today", "sunday"]
    assert ids("month") == ["today", "sunday", "saturday", "march1"]
    with pytest.raises(ValueError):
        ids("year")


def test_period_week_on_a_sunday_starts_that_day() -> None:
    sunday_noon = datetime(2024, 3, 10, 12, 0)
    txs = [
        _tx("sun", 1, TransactionType.EXPENSE, datetime(2024, 3, 10, 1, 0)),
        _tx("sat", 1, TransactionType.EXPENSE, datetime(2024, 3, 9, 22, 0)),
    ]
    assert [t.id for t in filter_period(txs, "week", now=sunday_noon)] == ["sun"]


def test_period_filter_by_category() -> None:
    txs = [
        _tx("food", 1, TransactionType.EXPENSE, NOW, "1"),
        _tx("shop", 1, TransactionType.EXPENSE, NOW, "2"),
    ]
    assert [t.id for t in filter_period(txs, "month", category_id="2", now=NOW)] == ["shop"]


def test_category_breakdown_sorted_with_fallback() -> None:
    txs = [
        _tx("a", 100.0, TransactionType.EXPENSE, NOW, "1"),
        _tx("b", 300.0, TransactionType.EXPENSE, NOW, "2"),
        _tx("c", 100.0, TransactionType.EXPENSE, NOW, "gone"),
        _tx("d", 100.0, TransactionType.EXPENSE, NOW, "1"),
        _tx("i", 9000.0, TransactionType.INCOME, NOW, "8"),
    ]

    rows = category_breakdown(txs, DEFAULT_CATEGORIES, TransactionType.EXPENSE)

    assert [r.name for r in rows] == ["Shopping", "Food & Dining", "Other"]
    assert [r.value for r in rows] == [300.0, 200.0, 100.0]
    assert [round(r.percentage, 1) for r in rows] == [50.0, 33.3, 16.7]
    other = rows[-1]
    assert (other.icon, other.color) == ("📦", "bg-slate-400")


def test_category_breakdown_zero_total() -> None:
    rows = category_breakdown(
        [_tx("z", 0.0, TransactionType.EXPENSE, NOW)], DEFAULT_CATEGORIES
    )
    assert [r.percentage for r in rows] == [0.0]


def test_daily_trend_counts_lent_as_outflow() -> None:
    txs = [
        _tx("i", 500.0, TransactionType.INCOME, datetime(2024, 3, 2, 9), "8"),
        _tx("e", 100.0, TransactionType.EXPENSE, datetime(2024, 3, 1, 10)),
        _tx("l", 50.0, TransactionType.LENT, datetime(2024, 3, 1, 18)),
    ]

    trend = daily_trend(txs)

    assert [(d.day, d.income, d.outflow) for d in trend] == [
        (date(2024, 3, 1), 0.0, 150.0),
        (date(2024, 3, 2), 500.0, 0.0),
    ]


def test_calendar_month_and_day_flags() -> None:
    txs = [
        _tx("early", 1, TransactionType.EXPENSE, datetime(2024, 3, 1, 9)),
        _tx("late", 1, TransactionType.INCOME, datetime(2024, 3, 1, 20), "8"),
        _tx("mid", 1, TransactionType.LENT, datetime(2024, 3, 15)),
        _tx("april", 1, TransactionType.EXPENSE, datetime(2024, 4, 1)),
    ]

    assert [t.id for t in month_transactions(txs, 2024, 3)] == ["mid", "late", "early"]
    assert [t.id for t in month_transactions(txs, 2024, 3, day=date(2024, 3, 1))] == [
        "late",
        "early",
    ]

    flags = day_flags(txs, date(2024, 3, 1))
    assert (flags.has_income, flags.has_expense) == (True, True)
    # Lent alone marks neither
    flags = day_flags(txs, date(2024, 3, 15))
    assert (flags.has_income, flags.has_expense) == (False, False)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0, "₹0"),
        (999, "₹999"),
        (1000, "₹1,000"),
        (123456.5, "₹1,23,456.5"),
        (12345678, "₹1,23,45,678"),
        (250.256, "₹250.26"),
        (-1500, "-₹1,500"),
    ],
)
def test_format_inr(value: float, expected: str) -> None:
    assert format_inr(value) == expected
