"""Fuel efficiency derived from free-text expense notes.

There is no fuel-log form: a refuel is any expense whose note carries a
volume marker and an odometer marker, e.g. ``"Petrol 5.2L 12450km @104.5"``.

Markers
-------
- volume: a number followed by ``L`` (``40L``, ``5.2 l``)
- odometer: an integer followed by ``KM`` (``12450km``)
- price per litre (optional): a number after ``@``

Readings are ordered by transaction date (not by odometer) and compared
pairwise. A pair whose odometer does not increase is skipped entirely, which
absorbs backdated or duplicate entries. The result is a read model: nothing
here mutates transactions and every call recomputes from scratch.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from .logging_setup import get_logger
from .models import Transaction, TransactionType

_LITERS_RE = re.compile(r"(\d+\.?\d*)\s*[lL]")
_ODOMETER_RE = re.compile(r"(\d+)\s*[kK][mM]")
_PRICE_RE = re.compile(r"@\s*(\d+\.?\d*)")

EXCELLENT_MILEAGE = 18.0
AVERAGE_MILEAGE = 12.0

_SUMMARIES: dict[str, str] = {
    "excellent": "Excellent efficiency! Keep maintaining your vehicle.",
    "average": "Average efficiency. Your driving style is standard.",
    "low": "Low efficiency. Consider an engine check-up or checking tire pressure.",
}

_logger = get_logger("fintrack.fuel")


@dataclass(frozen=True, slots=True)
class FuelReading:
    """Structured fields pulled out of one qualifying transaction note."""

    date: datetime
    amount: float
    liters: float
    odometer: int
    price_per_liter: float


@dataclass(frozen=True, slots=True)
class FuelLogPoint:
    """Mileage between a reading and the one before it (by date)."""

    date: datetime
    mileage: float
    liters: float
    price_per_liter: float
    odometer: int


@dataclass(frozen=True, slots=True)
class FuelAnalysisResult:
    avg_mileage: float
    avg_cost_per_km: float
    total_km_tracked: int
    efficiency_tier: str
    efficiency_summary: str
    log_points: tuple[FuelLogPoint, ...]


def extract_reading(tx: Transaction) -> FuelReading | None:
    """Return the fuel reading encoded in ``tx.note`` or ``None``.

    A transaction qualifies only when it is an expense and its note carries
    both a volume and a positive odometer marker. Never raises for a bad
    note; anything unparseable simply does not qualify.
    """

    if tx.type != TransactionType.EXPENSE or not tx.note:
        return None

    liters_m = _LITERS_RE.search(tx.note)
    odometer_m = _ODOMETER_RE.search(tx.note)
    if liters_m is None or odometer_m is None:
        return None

    try:
        liters = float(liters_m.group(1))
        odometer = int(odometer_m.group(1))
    except ValueError:
        return None
    if odometer <= 0:
        return None

    price_m = _PRICE_RE.search(tx.note)
    if price_m is not None:
        price_per_liter = float(price_m.group(1))
    else:
        price_per_liter = tx.amount / liters if liters else 0.0

    return FuelReading(
        date=tx.date,
        amount=tx.amount,
        liters=liters,
        odometer=odometer,
        price_per_liter=price_per_liter,
    )


def efficiency_tier(avg_mileage: float) -> str:
    if avg_mileage > EXCELLENT_MILEAGE:
        return "excellent"
    if avg_mileage >= AVERAGE_MILEAGE:
        return "average"
    return "low"


def calculate_fuel_stats(transactions: Iterable[Transaction]) -> FuelAnalysisResult | None:
    """Derive mileage and cost-per-km from fuel-tagged expense notes.

    Returns ``None`` when fewer than two transactions qualify. With two or
    more, the result is always produced, even if every pair was skipped (the
    averages are then 0).
    """

    readings = [r for r in (extract_reading(tx) for tx in transactions) if r is not None]
    # Stable sort: same-timestamp readings keep their input order.
    readings.sort(key=lambda r: r.date)

    if len(readings) < 2:
        return None

    log_points: list[FuelLogPoint] = []
    total_km = 0
    total_liters = 0.0
    total_cost = 0.0
    skipped = 0

    for prev, curr in zip(readings, readings[1:], strict=False):
        diff_km = curr.odometer - prev.odometer
        if diff_km <= 0:
            skipped += 1
            continue

        mileage = diff_km / curr.liters if curr.liters else math.inf
        log_points.append(
            FuelLogPoint(
                date=curr.date,
                mileage=mileage if math.isfinite(mileage) else 0.0,
                liters=curr.liters,
                price_per_liter=curr.price_per_liter,
                odometer=curr.odometer,
            )
        )
        total_km += diff_km
        total_liters += curr.liters
        total_cost += curr.amount

    avg_mileage = total_km / total_liters if total_liters > 0 else 0.0
    avg_cost_per_km = total_cost / total_km if total_km > 0 else 0.0
    tier = efficiency_tier(avg_mileage)

    _logger.debug(
        "fuel_stats readings=%d points=%d skipped_pairs=%d total_km=%d",
        len(readings),
        len(log_points),
        skipped,
        total_km,
    )

    return FuelAnalysisResult(
        avg_mileage=avg_mileage,
        avg_cost_per_km=avg_cost_per_km,
        total_km_tracked=total_km,
        efficiency_tier=tier,
        efficiency_summary=_SUMMARIES[tier],
        log_points=tuple(log_points),
    )


__all__ = [
    "FuelAnalysisResult",
    "FuelLogPoint",
    "FuelReading",
    "calculate_fuel_stats",
    "efficiency_tier",
    "extract_reading",
]
