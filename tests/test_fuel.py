from __future__ import annotations

from datetime import datetime

import pytest
from fintrack.fuel import calculate_fuel_stats, efficiency_tier, extract_reading
from fintrack.models import Transaction, TransactionType


def _tx(
    note: str,
    *,
    day: int,
    amount: float = 500.0,
    tx_type: TransactionType = TransactionType.EXPENSE,
    tx_id: str | None = None,
) -> Transaction:
    return Transaction(
        id=tx_id or f"t{day}",
        amount=amount,
        type=tx_type,
        category_id="3",
        payment_method_id="p1",
        date=datetime(2024, 3, day, 9, 0),
        note=note,
    )


def test_extract_reading_parses_all_markers() -> None:
    r = extract_reading(_tx("Petrol 5.2L 12450km @104.5", day=1, amount=543.4))
    assert r is not None
    assert r.liters == pytest.approx(5.2)
    assert r.odometer == 12450
    assert r.price_per_liter == pytest.approx(104.5)


def test_extract_reading_derives_price_and_tolerates_spacing() -> None:
    r = extract_reading(_tx("fuel 10 l at 20000 KM", day=1, amount=1000.0))
    assert r is not None
    assert r.liters == 10.0
    assert r.odometer == 20000
    assert r.price_per_liter == pytest.approx(100.0)


def test_extract_reading_zero_liters_gives_zero_price() -> None:
    r = extract_reading(_tx("0L 1000km", day=1))
    assert r is not None
    assert r.price_per_liter == 0.0


@pytest.mark.parametrize(
    "note",
    [
        "Petrol 5L",  # no odometer
        "Odometer 12000km",  # no volume
        "Petrol 5L 0km",  # odometer must be positive
        "",
    ],
)
def test_extract_reading_rejects_incomplete_notes(note: str) -> None:
    assert extract_reading(_tx(note, day=1)) is None


def test_extract_reading_ignores_non_expenses() -> None:
    assert extract_reading(_tx("5L 1000km", day=1, tx_type=TransactionType.INCOME)) is None
    assert extract_reading(_tx("5L 1000km", day=1, tx_type=TransactionType.LENT)) is None


def test_fewer_than_two_readings_is_none() -> None:
    assert calculate_fuel_stats([]) is None
    assert calculate_fuel_stats([_tx("5L 1000km", day=1)]) is None
    # Non-qualifying transactions do not count towards the minimum
    assert calculate_fuel_stats([_tx("5L 1000km", day=1), _tx("lunch", day=2)]) is None


def test_out_of_order_odometer_pair_is_skipped() -> None:
    txs = [
        _tx("10L 1000km", day=1),
        _tx("10L 950km", day=2),
        _tx("10L 1200km", day=3, amount=800.0),
    ]

    stats = calculate_fuel_stats(txs)

    assert stats is not None
    assert len(stats.log_points) == 1
    point = stats.log_points[0]
    assert point.odometer == 1200
    assert point.mileage == pytest.approx(25.0)  # (1200 - 950) / 10
    assert stats.total_km_tracked == 250
    assert stats.avg_cost_per_km == pytest.approx(800.0 / 250)


def test_readings_are_ordered_by_date_not_input_order() -> None:
    txs = [
        _tx("20L 1300km", day=3, amount=2000.0),
        _tx("20L 1000km", day=1),
        _tx("20L 1100km", day=2, amount=1500.0),
    ]

    stats = calculate_fuel_stats(txs)

    assert stats is not None
    assert [p.odometer for p in stats.log_points] == [1100, 1300]
    assert stats.total_km_tracked == 300
    assert stats.avg_mileage == pytest.approx(300 / 40)
    assert stats.avg_cost_per_km == pytest.approx(3500.0 / 300)
    assert stats.efficiency_tier == "low"


def test_all_pairs_skipped_still_returns_zeroed_result() -> None:
    stats = calculate_fuel_stats([_tx("5L 1000km", day=1), _tx("5L 1000km", day=2)])

    assert stats is not None
    assert stats.log_points == ()
    assert stats.avg_mileage == 0.0
    assert stats.avg_cost_per_km == 0.0


def test_zero_liter_refuel_contributes_zero_mileage_point() -> None:
    stats = calculate_fuel_stats([_tx("5L 1000km", day=1), _tx("0L 1100km", day=2)])

    assert stats is not None
    assert stats.log_points[0].mileage == 0.0
    assert stats.total_km_tracked == 100
    assert stats.avg_mileage == 0.0  # no litres accumulated


@pytest.mark.parametrize(
    ("mileage", "tier"),
    [(25.0, "excellent"), (18.01, "excellent"), (18.0, "average"), (12.0, "average"),
     (11.99, "low"), (0.0, "low")],
)
def test_efficiency_tiers(mileage: float, tier: str) -> None:
    assert efficiency_tier(mileage) == tier


def test_recompute_is_idempotent() -> None:
    txs = [_tx("10L 1000km", day=1), _tx("10L 1200km", day=2)]
    assert calculate_fuel_stats(txs) == calculate_fuel_stats(txs)
    assert [t.note for t in txs] == ["10L 1000km", "10L 1200km"]
