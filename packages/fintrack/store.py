"""Transaction Store: in-memory state mirrored to the key-value database.

Each document (categories, payment methods, transactions, insights, theme)
lives under its own key as whole-document JSON. Everything is loaded once by
:meth:`FinanceStore.open`; every mutation updates memory and immediately
rewrites the affected documents in one database transaction.

Missing or corrupt documents never fail a load: they fall back to defaults
and a warning is logged. The store owns CRUD only; import reconciliation and
the lent ledger live in their own modules and are delegated to.
"""

from __future__ import annotations

import contextlib
import copy
import json
import uuid
from collections.abc import Iterator, Sequence
from datetime import datetime
from typing import Any

from db.client import init_schema, session_scope
from db.kv import get_value, set_value
from pydantic import BaseModel, TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from . import lent
from .categories import DEFAULT_CATEGORIES, DEFAULT_PAYMENT_METHODS
from .errors import TransactionNotFoundError
from .ingest.adapters.legacy_tsv import LegacyImportResult, parse_legacy_data
from .ingest.utils import require_transactions
from .logging_setup import get_logger
from .models import (
    Category,
    Document,
    FinancialInsight,
    PartialReturn,
    PaymentMethod,
    Transaction,
)

KEY_CATEGORIES = "fintrack_categories"
KEY_PAYMENT_METHODS = "fintrack_payment_methods"
KEY_TRANSACTIONS = "fintrack_transactions"
KEY_INSIGHTS = "fintrack_insights"
KEY_THEME = "fintrack_theme"

THEMES: frozenset[str] = frozenset({"light", "dark"})
DEFAULT_THEME = "light"

# Values a broken writer has been seen to leave behind.
_EMPTY_MARKERS: frozenset[str] = frozenset({"", "undefined", "null"})

_CATEGORIES = TypeAdapter(list[Category])
_PAYMENT_METHODS = TypeAdapter(list[PaymentMethod])
_TRANSACTIONS = TypeAdapter(list[Transaction])
_INSIGHTS = TypeAdapter(list[FinancialInsight])

_logger = get_logger("fintrack.store")


def new_transaction_id() -> str:
    return uuid.uuid4().hex[:12]


def _load_list[T](
    session: Session, key: str, adapter: TypeAdapter[list[T]], default: Sequence[T]
) -> list[T]:
    def _fallback(reason: str) -> list[T]:
        _logger.warning("store:load_fallback key=%s reason=%s", key, reason)
        return [d.model_copy(deep=True) if isinstance(d, BaseModel) else d for d in default]

    raw = get_value(session, key)
    if raw is None:
        return _fallback("missing")
    if raw.strip() in _EMPTY_MARKERS:
        return _fallback("empty")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return _fallback("invalid_json")
    if not isinstance(data, list):
        return _fallback("not_a_list")
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        return _fallback(f"validation_error({e.error_count()})")


def _dump_list(items: Sequence[Document]) -> str:
    return json.dumps([item.to_document() for item in items], ensure_ascii=False)


class FinanceStore:
    """The single writer over the persisted finance state."""

    def __init__(
        self,
        *,
        database_url: str | None = None,
        categories: list[Category],
        payment_methods: list[PaymentMethod],
        transactions: list[Transaction],
        insights: list[FinancialInsight],
        theme: str = DEFAULT_THEME,
    ) -> None:
        self._database_url = database_url
        self.categories = categories
        self.payment_methods = payment_methods
        self.transactions = transactions
        self.insights = insights
        self.theme = theme

    # ---- Loading / persistence -------------------------------------------

    @classmethod
    def open(cls, *, database_url: str | None = None) -> FinanceStore:
        """Create the schema if needed and load every document."""

        init_schema(database_url=database_url)
        with session_scope(database_url=database_url) as session:
            categories = _load_list(session, KEY_CATEGORIES, _CATEGORIES, DEFAULT_CATEGORIES)
            methods = _load_list(
                session, KEY_PAYMENT_METHODS, _PAYMENT_METHODS, DEFAULT_PAYMENT_METHODS
            )
            transactions = _load_list(session, KEY_TRANSACTIONS, _TRANSACTIONS, ())
            insights = _load_list(session, KEY_INSIGHTS, _INSIGHTS, ())
            theme = _load_theme(session)

        _logger.info(
            "store:opened transactions=%d categories=%d payment_methods=%d",
            len(transactions),
            len(categories),
            len(methods),
        )
        return cls(
            database_url=database_url,
            categories=categories,
            payment_methods=methods,
            transactions=transactions,
            insights=insights,
            theme=theme,
        )

    def _documents(self) -> dict[str, str]:
        return {
            KEY_CATEGORIES: _dump_list(self.categories),
            KEY_PAYMENT_METHODS: _dump_list(self.payment_methods),
            KEY_TRANSACTIONS: _dump_list(self.transactions),
            KEY_INSIGHTS: _dump_list(self.insights),
            KEY_THEME: json.dumps(self.theme),
        }

    def _save(self, *keys: str) -> None:
        docs = self._documents()
        with session_scope(database_url=self._database_url) as session:
            for key in keys:
                set_value(session, key, docs[key])

    @contextlib.contextmanager
    def _mutating(self, *attrs: str) -> Iterator[None]:
        """Restore ``attrs`` in memory if the block (including its save) raises."""

        before = {name: copy.deepcopy(getattr(self, name)) for name in attrs}
        try:
            yield
        except Exception as e:
            for name, value in before.items():
                setattr(self, name, value)
            _logger.warning(
                "store:rolled_back attrs=%s error=%s", ",".join(attrs), e.__class__.__name__
            )
            raise

    # ---- Transactions ----------------------------------------------------

    def get_transaction(self, tx_id: str) -> Transaction:
        for tx in self.transactions:
            if tx.id == tx_id:
                return tx
        raise TransactionNotFoundError(tx_id)

    def add_transaction(self, tx: Transaction) -> Transaction:
        """Prepend ``tx`` (newest first, as entered) and persist."""

        if any(t.id == tx.id for t in self.transactions):
            raise ValueError(f"transaction id already in use: {tx.id!r}")
        with self._mutating("transactions"):
            self.transactions.insert(0, tx)
            self._save(KEY_TRANSACTIONS)
        return tx

    def update_transaction(self, tx: Transaction) -> Transaction:
        """Replace the stored transaction with the same id."""

        for i, existing in enumerate(self.transactions):
            if existing.id == tx.id:
                with self._mutating("transactions"):
                    self.transactions[i] = tx
                    self._save(KEY_TRANSACTIONS)
                return tx
        raise TransactionNotFoundError(tx.id)

    def delete_transaction(self, tx_id: str) -> Transaction:
        tx = self.get_transaction(tx_id)
        with self._mutating("transactions"):
            self.transactions.remove(tx)
            self._save(KEY_TRANSACTIONS)
        return tx

    # ---- Reference dictionaries -------------------------------------------

    def add_category(self, category: Category) -> Category:
        with self._mutating("categories"):
            self.categories.append(category)
            self._save(KEY_CATEGORIES)
        return category

    def delete_category(self, category_id: str) -> bool:
        """Remove a category. Transactions keep their (now stale) reference."""

        remaining = [c for c in self.categories if c.id != category_id]
        if len(remaining) == len(self.categories):
            return False
        with self._mutating("categories"):
            self.categories = remaining
            self._save(KEY_CATEGORIES)
        return True

    def add_payment_method(self, method: PaymentMethod) -> PaymentMethod:
        with self._mutating("payment_methods"):
            self.payment_methods.append(method)
            self._save(KEY_PAYMENT_METHODS)
        return method

    def delete_payment_method(self, method_id: str) -> bool:
        remaining = [p for p in self.payment_methods if p.id != method_id]
        if len(remaining) == len(self.payment_methods):
            return False
        with self._mutating("payment_methods"):
            self.payment_methods = remaining
            self._save(KEY_PAYMENT_METHODS)
        return True

    # ---- Legacy import ---------------------------------------------------

    def import_legacy(self, text: str, *, now: datetime | None = None) -> LegacyImportResult:
        """Reconcile a legacy export and merge it, all or nothing.

        Raises :class:`~fintrack.errors.ImportRejectedError` when no
        transaction could be parsed; in that case nothing changes.
        """

        result = require_transactions(
            parse_legacy_data(text, self.categories, self.payment_methods, now=now)
        )
        with self._mutating("categories", "payment_methods", "transactions"):
            self.categories = list(result.categories)
            self.payment_methods = list(result.payment_methods)
            self.transactions = [*result.transactions, *self.transactions]
            self._save(KEY_CATEGORIES, KEY_PAYMENT_METHODS, KEY_TRANSACTIONS)
        _logger.info(
            "store:import_merged transactions=%d total=%d",
            len(result.transactions),
            len(self.transactions),
        )
        return result

    # ---- Lent ledger -----------------------------------------------------

    def toggle_returned(self, tx_id: str, *, now: datetime | None = None) -> Transaction:
        tx = self.get_transaction(tx_id)
        with self._mutating("transactions"):
            lent.toggle_returned(tx, now=now)
            self._save(KEY_TRANSACTIONS)
        return tx

    def add_partial_return(
        self, tx_id: str, amount: float, *, date: datetime | None = None
    ) -> PartialReturn:
        tx = self.get_transaction(tx_id)
        with self._mutating("transactions"):
            record = lent.add_partial_return(tx, amount, date=date)
            self._save(KEY_TRANSACTIONS)
        return record

    # ---- Insights / preferences -------------------------------------------

    def set_insights(self, insights: Sequence[FinancialInsight]) -> None:
        with self._mutating("insights"):
            self.insights = list(insights)
            self._save(KEY_INSIGHTS)

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"unknown theme: {theme!r} (expected one of {sorted(THEMES)})")
        with self._mutating("theme"):
            self.theme = theme
            self._save(KEY_THEME)


def _load_theme(session: Session) -> str:
    raw = get_value(session, KEY_THEME)
    value: Any = None
    if raw is not None:
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            value = raw.strip()
    if isinstance(value, str) and value in THEMES:
        return value
    if raw is not None:
        _logger.warning("store:load_fallback key=%s reason=unknown_theme", KEY_THEME)
    return DEFAULT_THEME


__all__ = [
    "DEFAULT_THEME",
    "FinanceStore",
    "KEY_CATEGORIES",
    "KEY_INSIGHTS",
    "KEY_PAYMENT_METHODS",
    "KEY_THEME",
    "KEY_TRANSACTIONS",
    "THEMES",
    "new_transaction_id",
]
