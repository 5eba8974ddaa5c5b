"""Repayment tracking for money lent to a third party.

Two plain fields carry the state of a lent transaction: ``partial_returns``
(append-only) and ``is_returned`` (with ``returned_date``). Two independent
triggers reach the returned state: the manual toggle and the cumulative
partial returns crossing ``amount``. Derived views (:func:`lent_status`,
:func:`outstanding_balance`, :func:`summarize_lent`) are computed on read and
never stored.

Over-payment (partials summing above ``amount``) is recorded as given; only
the derived remaining balance is clamped at zero.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from .errors import NotLentError
from .logging_setup import get_logger
from .models import PartialReturn, Transaction, TransactionType

_logger = get_logger("fintrack.lent")


@dataclass(frozen=True, slots=True)
class Outstanding:
    """Not yet fully returned; ``remaining`` is clamped at zero."""

    remaining: float


@dataclass(frozen=True, slots=True)
class Returned:
    """Fully returned (by toggle or by partials); ``date`` may be unknown for old data."""

    date: datetime | None


type LentStatus = Outstanding | Returned


@dataclass(frozen=True, slots=True)
class LentSummary:
    total: float
    returned: float
    pending: float


def _require_lent(tx: Transaction) -> None:
    if tx.type != TransactionType.LENT:
        raise NotLentError(f"transaction {tx.id!r} is {tx.type.value}, not lent")


def _paise(amount: float) -> int:
    return round(amount * 100)


def total_returned(tx: Transaction) -> float:
    return math.fsum(p.amount for p in tx.partial_returns)


def _fully_repaid(tx: Transaction) -> bool:
    # Compared in whole paise; float sums of rupee fractions drift.
    return _paise(total_returned(tx)) >= _paise(tx.amount)


def toggle_returned(tx: Transaction, *, now: datetime | None = None) -> Transaction:
    """Flip ``is_returned`` in place and return ``tx``.

    Marking returned stamps ``returned_date`` with ``now``; un-marking clears
    it. Recorded partial returns are left untouched either way.
    """

    _require_lent(tx)
    if tx.is_returned:
        tx.is_returned = False
        tx.returned_date = None
    else:
        tx.is_returned = True
        tx.returned_date = now or datetime.now()
    _logger.info("lent:toggle id=%s is_returned=%s", tx.id, tx.is_returned)
    return tx


def add_partial_return(
    tx: Transaction,
    amount: float,
    *,
    date: datetime | None = None,
    return_id: str | None = None,
) -> PartialReturn:
    """Append a repayment to ``tx`` in place and return the new record.

    When the cumulative returned amount reaches ``tx.amount`` the transaction
    becomes returned, dated with this repayment. Below the threshold
    ``is_returned`` keeps whatever value it had.

    Raises
    ------
    NotLentError
        ``tx`` is not a lent transaction.
    ValueError
        ``amount`` is not positive.
    """

    _require_lent(tx)
    if not math.isfinite(amount) or amount <= 0:
        raise ValueError(f"partial return amount must be positive, got {amount!r}")

    record = PartialReturn(
        id=return_id or f"ret_{uuid.uuid4().hex[:12]}",
        amount=amount,
        date=date or datetime.now(),
    )
    # Reassign rather than append so validate_assignment sees the change.
    tx.partial_returns = [*tx.partial_returns, record]

    returned = total_returned(tx)
    if _fully_repaid(tx):
        tx.is_returned = True
        tx.returned_date = record.date
    _logger.info(
        "lent:partial_return id=%s amount=%.2f total_returned=%.2f of=%.2f is_returned=%s",
        tx.id,
        amount,
        returned,
        tx.amount,
        tx.is_returned,
    )
    return record


def outstanding_balance(tx: Transaction) -> float:
    if tx.is_returned or _fully_repaid(tx):
        return 0.0
    return (_paise(tx.amount) - _paise(total_returned(tx))) / 100


def lent_status(tx: Transaction) -> LentStatus:
    _require_lent(tx)
    if tx.is_returned:
        return Returned(date=tx.returned_date)
    return Outstanding(remaining=outstanding_balance(tx))


def summarize_lent(transactions: Iterable[Transaction]) -> LentSummary:
    """Aggregate over every lent transaction.

    ``returned`` counts the full amount for returned entries and the recorded
    partials otherwise; ``pending = total - returned``.
    """

    total = 0.0
    returned = 0.0
    for tx in transactions:
        if tx.type != TransactionType.LENT:
            continue
        total += tx.amount
        returned += tx.amount if tx.is_returned else total_returned(tx)
    return LentSummary(total=total, returned=returned, pending=total - returned)


def filter_lent(transactions: Iterable[Transaction], status: str = "all") -> list[Transaction]:
    """Return lent transactions filtered by ``pending``, ``returned`` or ``all``."""

    if status not in {"all", "pending", "returned"}:
        raise ValueError(f"unknown lent filter: {status!r}")
    lent = [t for t in transactions if t.type == TransactionType.LENT]
    if status == "pending":
        return [t for t in lent if not t.is_returned]
    if status == "returned":
        return [t for t in lent if t.is_returned]
    return lent


__all__ = [
    "LentStatus",
    "LentSummary",
    "Outstanding",
    "Returned",
    "add_partial_return",
    "filter_lent",
    "lent_status",
    "outstanding_balance",
    "summarize_lent",
    "toggle_returned",
    "total_returned",
]
