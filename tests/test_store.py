from __future__ import annotations

import json
import logging
from datetime import datetime

import pytest
from fintrack import store as store_module
from fintrack.categories import DEFAULT_CATEGORIES, DEFAULT_PAYMENT_METHODS, category_label
from fintrack.errors import ImportRejectedError, TransactionNotFoundError
from fintrack.models import Category, CategoryType, FinancialInsight, Transaction, TransactionType
from fintrack.store import (
    KEY_CATEGORIES,
    KEY_THEME,
    KEY_TRANSACTIONS,
    FinanceStore,
)
from pydantic import ValidationError

from tests.helpers.db import read_raw, write_raw


def _expense(tx_id: str, amount: float = 100.0, **kw) -> Transaction:
    fields = {
        "id": tx_id,
        "amount": amount,
        "type": TransactionType.EXPENSE,
        "category_id": "1",
        "payment_method_id": "p1",
        "date": datetime(2024, 3, 1, 12, 0),
        "note": f"note {tx_id}",
    }
    fields.update(kw)
    return Transaction(**fields)


def test_fresh_store_uses_defaults(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)

    assert [c.id for c in store.categories] == [c.id for c in DEFAULT_CATEGORIES]
    assert [p.id for p in store.payment_methods] == [p.id for p in DEFAULT_PAYMENT_METHODS]
    assert store.transactions == []
    assert store.insights == []
    assert store.theme == "light"


def test_default_lists_are_copies(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)
    store.categories[0].name = "Changed"
    assert DEFAULT_CATEGORIES[0].name == "Food & Dining"


def test_add_prepends_and_persists(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)
    store.add_transaction(_expense("a"))
    store.add_transaction(_expense("b"))

    reopened = FinanceStore.open(database_url=database_url)
    assert [t.id for t in reopened.transactions] == ["b", "a"]

    doc = json.loads(read_raw(database_url, KEY_TRANSACTIONS) or "[]")
    assert doc[0]["paymentMethodId"] == "p1"
    assert doc[0]["categoryId"] == "1"
    assert "returnedDate" not in doc[0]


def test_duplicate_id_is_rejected(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)
    store.add_transaction(_expense("a"))
    with pytest.raises(ValueError):
        store.add_transaction(_expense("a"))


def test_update_and_delete(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)
    store.add_transaction(_expense("a"))
    store.add_transaction(_expense("b"))

    store.update_transaction(_expense("a", amount=555.0, note="edited"))
    removed = store.delete_transaction("b")

    assert removed.id == "b"
    reopened = FinanceStore.open(database_url=database_url)
    (only,) = reopened.transactions
    assert (only.id, only.amount, only.note) == ("a", 555.0, "edited")


def test_unknown_ids_raise_not_found(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)
    with pytest.raises(TransactionNotFoundError):
        store.get_transaction("missing")
    with pytest.raises(KeyError):
        store.delete_transaction("missing")
    with pytest.raises(TransactionNotFoundError):
        store.update_transaction(_expense("missing"))


@pytest.mark.parametrize(
    "raw",
    ["undefined", "null", "", "{not json", '{"a": 1}', '[{"id": "x"}]'],
)
def test_corrupt_documents_fall_back_to_defaults(
    database_url: str, raw: str, caplog: pytest.LogCaptureFixture
) -> None:
    write_raw(database_url, KEY_CATEGORIES, raw)
    write_raw(database_url, KEY_TRANSACTIONS, raw)
    write_raw(database_url, KEY_THEME, raw)

    with caplog.at_level(logging.WARNING, logger="fintrack"):
        store = FinanceStore.open(database_url=database_url)

    assert len(store.categories) == len(DEFAULT_CATEGORIES)
    assert store.transactions == []
    assert store.theme == "light"
    assert any("store:load_fallback" in r.getMessage() for r in caplog.records)


def test_import_merges_and_persists(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)
    store.add_transaction(_expense("existing"))

    result = store.import_legacy(
        "01-03-2024\tCash\tPets\t\tFood for Bruno\t250\tExpense\t\n"
        "02-03-2024\tWallet\tFood\t\tLunch\t120\tExpense\t\n"
    )

    assert len(result.transactions) == 2
    assert store.transactions[-1].id == "existing"
    assert [t.note for t in store.transactions[:2]] == ["Food for Bruno", "Lunch"]

    reopened = FinanceStore.open(database_url=database_url)
    assert len(reopened.transactions) == 3
    assert any(c.name == "Pets" and c.is_custom for c in reopened.categories)
    assert [p.name for p in reopened.payment_methods][-1] == "Wallet"
    # "Food" matched the default "Food & Dining" category
    assert reopened.transactions[1].category_id == "1"


def test_rejected_import_leaves_state_untouched(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)
    store.add_transaction(_expense("existing"))
    before = read_raw(database_url, KEY_TRANSACTIONS)

    with pytest.raises(ImportRejectedError):
        store.import_legacy("Date\tAccount\tCategory\t\tNote\tAmount\tType\t\nshort\trow\n")

    assert [t.id for t in store.transactions] == ["existing"]
    assert len(store.categories) == len(DEFAULT_CATEGORIES)
    assert read_raw(database_url, KEY_TRANSACTIONS) == before


def test_lent_operations_persist(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)
    store.add_transaction(
        Transaction(
            id="l1",
            amount=1000.0,
            type=TransactionType.LENT,
            payment_method_id="p2",
            date=datetime(2024, 3, 1),
            note="Ravi",
        )
    )

    store.add_partial_return("l1", 400.0, date=datetime(2024, 3, 5))
    store.add_partial_return("l1", 600.0, date=datetime(2024, 3, 9))

    reopened = FinanceStore.open(database_url=database_url)
    tx = reopened.get_transaction("l1")
    assert tx.is_returned is True
    assert tx.returned_date == datetime(2024, 3, 9)
    assert [p.amount for p in tx.partial_returns] == [400.0, 600.0]

    reopened.toggle_returned("l1")
    again = FinanceStore.open(database_url=database_url).get_transaction("l1")
    assert again.is_returned is False
    assert len(again.partial_returns) == 2


def test_deleted_category_leaves_stale_reference(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)
    custom = store.add_category(
        Category(id="c_pets", name="Pets", icon="🐶", color="bg-slate-500",
                 type=CategoryType.EXPENSE, is_custom=True)
    )
    store.add_transaction(_expense("a", category_id=custom.id))

    assert store.delete_category(custom.id) is True
    assert store.delete_category(custom.id) is False

    reopened = FinanceStore.open(database_url=database_url)
    assert reopened.transactions[0].category_id == "c_pets"
    assert category_label(reopened.categories, "c_pets") == ("Unknown", "📦")


def test_payment_methods_add_and_delete(database_url: str) -> None:
    from fintrack.models import PaymentMethod

    store = FinanceStore.open(database_url=database_url)
    store.add_payment_method(PaymentMethod(id="pm_x", name="Wallet", icon="👛"))
    assert store.delete_payment_method("p1") is True

    reopened = FinanceStore.open(database_url=database_url)
    assert [p.id for p in reopened.payment_methods] == ["p2", "p3", "pm_x"]


def test_insights_and_theme_round_trip(database_url: str) -> None:
    store = FinanceStore.open(database_url=database_url)
    store.set_insights(
        [FinancialInsight(title="Dining up", description="Eat in more.", severity="warning")]
    )
    store.set_theme("dark")
    with pytest.raises(ValueError):
        store.set_theme("sepia")

    reopened = FinanceStore.open(database_url=database_url)
    assert reopened.theme == "dark"
    assert [i.severity for i in reopened.insights] == ["warning"]


@pytest.mark.parametrize("amount", [float("inf"), float("nan")])
def test_non_finite_amount_is_rejected_by_the_model(amount: float) -> None:
    with pytest.raises(ValidationError):
        _expense("x", amount)


def _failing_writes(monkeypatch: pytest.MonkeyPatch) -> None:
    def _set_value(*_a, **_k) -> None:
        raise RuntimeError("disk full")

    monkeypatch.setattr(store_module, "set_value", _set_value)


def test_failed_write_leaves_memory_as_it_was(
    monkeypatch: pytest.MonkeyPatch, database_url: str
) -> None:
    store = FinanceStore.open(database_url=database_url)
    store.add_transaction(_expense("a"))
    _failing_writes(monkeypatch)

    with pytest.raises(RuntimeError):
        store.add_transaction(_expense("b"))
    with pytest.raises(RuntimeError):
        store.delete_transaction("a")
    with pytest.raises(RuntimeError):
        store.set_theme("dark")
    with pytest.raises(RuntimeError):
        store.import_legacy("01-03-2024\tWallet\tPets\t\tFood\t250\tExpense\t")

    assert [t.id for t in store.transactions] == ["a"]
    assert store.theme == "light"
    assert [c.id for c in store.categories] == [c.id for c in DEFAULT_CATEGORIES]
    assert [p.name for p in store.payment_methods] == [p.name for p in DEFAULT_PAYMENT_METHODS]


def test_failed_write_undoes_partial_return(
    monkeypatch: pytest.MonkeyPatch, database_url: str
) -> None:
    store = FinanceStore.open(database_url=database_url)
    store.add_transaction(
        Transaction(
            id="l1",
            amount=500.0,
            type=TransactionType.LENT,
            payment_method_id="p1",
            date=datetime(2024, 3, 1),
            note="Ravi",
        )
    )
    _failing_writes(monkeypatch)

    with pytest.raises(RuntimeError):
        store.add_partial_return("l1", 500.0)

    tx = store.get_transaction("l1")
    assert tx.partial_returns == []
    assert tx.is_returned is False
