"""Read-side aggregations over transactions.

Exports
-------
- ``balance_summary``: income, expenses, pending lent and the resulting balance.
- ``filter_period``: ``day`` / ``week`` / ``month`` window relative to *now*.
- ``category_breakdown``: per-category totals and shares for one type.
- ``daily_trend``: per-day income vs outflow, ascending.
- ``month_transactions`` / ``day_flags``: calendar views.
- ``format_inr``: rupee formatting with Indian digit grouping.

Notes
-----
All functions are pure and recompute from the list they are given; nothing is
cached or stored.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Literal

from .categories import GENERIC_ICON, resolve_category
from .lent import summarize_lent
from .models import Category, Transaction, TransactionType

type Period = Literal["day", "week", "month"]

PERIODS: tuple[str, ...] = ("day", "week", "month")
FALLBACK_CATEGORY_NAME = "Other"
FALLBACK_CATEGORY_COLOR = "bg-slate-400"


@dataclass(frozen=True, slots=True)
class BalanceSummary:
    income: float
    expenses: float
    lent_pending: float
    balance: float


@dataclass(frozen=True, slots=True)
class CategoryShare:
    category_id: str | None
    name: str
    icon: str
    color: str
    value: float
    percentage: float


@dataclass(frozen=True, slots=True)
class DailyTotals:
    day: date
    income: float
    outflow: float


@dataclass(frozen=True, slots=True)
class DayFlags:
    has_income: bool
    has_expense: bool


def balance_summary(transactions: Sequence[Transaction]) -> BalanceSummary:
    """Balance is what came in minus what went out or is still owed back."""

    income = sum(t.amount for t in transactions if t.type == TransactionType.INCOME)
    expenses = sum(t.amount for t in transactions if t.type == TransactionType.EXPENSE)
    lent_pending = summarize_lent(transactions).pending
    return BalanceSummary(
        income=income,
        expenses=expenses,
        lent_pending=lent_pending,
        balance=income - expenses - lent_pending,
    )


def _start_of_week(now: datetime) -> datetime:
    # Weeks start on Sunday; datetime.weekday() has Monday == 0.
    days_since_sunday = (now.weekday() + 1) % 7
    start = now - timedelta(days=days_since_sunday)
    return start.replace(hour=0, minute=0, second=0, microsecond=0)


def in_period(tx: Transaction, period: Period, *, now: datetime) -> bool:
    if period == "day":
        return tx.date.date() == now.date()
    if period == "week":
        return tx.date >= _start_of_week(now)
    if period == "month":
        return tx.date.year == now.year and tx.date.month == now.month
    raise ValueError(f"unknown period: {period!r} (expected one of {PERIODS})")


def filter_period(
    transactions: Iterable[Transaction],
    period: Period,
    *,
    category_id: str | None = None,
    now: datetime | None = None,
) -> list[Transaction]:
    """Keep transactions inside ``period`` and, optionally, one category."""

    now = now or datetime.now()
    return [
        t
        for t in transactions
        if in_period(t, period, now=now) and (category_id is None or t.category_id == category_id)
    ]


def category_breakdown(
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    tx_type: TransactionType = TransactionType.EXPENSE,
) -> list[CategoryShare]:
    """Totals per category for ``tx_type``, largest first.

    Percentages are of the grand total for that type (all 0 when the total
    is 0). Ids with no matching category are shown as ``Other``.
    """

    totals: dict[str | None, float] = defaultdict(float)
    for t in transactions:
        if t.type == tx_type:
            totals[t.category_id] += t.amount

    grand_total = sum(totals.values())
    rows: list[CategoryShare] = []
    for category_id, value in totals.items():
        cat = resolve_category(categories, category_id)
        rows.append(
            CategoryShare(
                category_id=category_id,
                name=cat.name if cat else FALLBACK_CATEGORY_NAME,
                icon=cat.icon if cat else GENERIC_ICON,
                color=cat.color if cat else FALLBACK_CATEGORY_COLOR,
                value=value,
                percentage=(value / grand_total * 100) if grand_total > 0 else 0.0,
            )
        )
    rows.sort(key=lambda r: r.value, reverse=True)
    return rows


def daily_trend(transactions: Iterable[Transaction]) -> list[DailyTotals]:
    """Income vs outflow per calendar day; lent counts as outflow."""

    groups: dict[date, list[float]] = defaultdict(lambda: [0.0, 0.0])
    for t in transactions:
        bucket = groups[t.date.date()]
        if t.type == TransactionType.INCOME:
            bucket[0] += t.amount
        else:
            bucket[1] += t.amount
    return [
        DailyTotals(day=d, income=income, outflow=outflow)
        for d, (income, outflow) in sorted(groups.items())
    ]


def month_transactions(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
    *,
    day: date | None = None,
) -> list[Transaction]:
    """Transactions in ``year``/``month`` newest first, optionally one ``day`` only."""

    selected = [t for t in transactions if t.date.year == year and t.date.month == month]
    if day is not None:
        selected = [t for t in selected if t.date.date() == day]
    selected.sort(key=lambda t: t.date, reverse=True)
    return selected


def day_flags(transactions: Iterable[Transaction], day: date) -> DayFlags:
    types = {t.type for t in transactions if t.date.date() == day}
    return DayFlags(
        has_income=TransactionType.INCOME in types,
        has_expense=TransactionType.EXPENSE in types,
    )


def format_inr(value: float) -> str:
    """Format ``value`` as rupees: ``123456.5`` -> ``₹1,23,456.5``.

    Indian grouping puts the last three digits together and every two digits
    above that; at most two decimals are kept and trailing zeros dropped.
    """

    sign = "-" if value < 0 else ""
    whole, frac = f"{abs(value):.2f}".split(".")
    frac = frac.rstrip("0")

    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups: list[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join([*groups, tail])

    return f"{sign}₹{whole}" + (f".{frac}" if frac else "")


__all__ = [
    "BalanceSummary",
    "CategoryShare",
    "DailyTotals",
    "DayFlags",
    "PERIODS",
    "Period",
    "balance_summary",
    "category_breakdown",
    "daily_trend",
    "day_flags",
    "filter_period",
    "format_inr",
    "in_period",
    "month_transactions",
]
