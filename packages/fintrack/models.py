"""Persisted documents for ``fintrack``.

Every model here round-trips through the key-value store and the JSON export
bundle. Python attributes are snake_case; the serialized form is camelCase
(``categoryId``, ``paymentMethodId``, ``partialReturns``...) so exported
backups keep the shape the app has always written.

Timestamps are naive local datetimes. Aware values are converted to local
time on the way in so ordering and calendar grouping never mix the two.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class TransactionType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"
    # Money handed to a third party and expected back. Legacy "transfer"
    # labels are folded into this type at import time.
    LENT = "lent"


class CategoryType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


Severity = Literal["info", "warning", "success"]


def _as_naive_local(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    def to_document(self) -> dict:
        """Return the JSON-ready camelCase mapping (``None`` fields omitted)."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PartialReturn(Document):
    """One incremental repayment against a lent transaction."""

    id: str
    amount: float = Field(ge=0, allow_inf_nan=False)
    date: datetime

    @field_validator("date")
    @classmethod
    def _naive_date(cls, v: datetime) -> datetime:
        return _as_naive_local(v)


class Transaction(Document):
    """A single income, expense, or lent record.

    ``category_id`` is ``None`` for lent transactions. For those, ``note``
    carries the counterparty name and the repayment fields
    (``is_returned``, ``returned_date``, ``partial_returns``) apply.
    """

    id: str
    amount: float = Field(ge=0, allow_inf_nan=False)
    type: TransactionType
    category_id: str | None = None
    payment_method_id: str
    date: datetime
    note: str = ""
    images: list[str] = Field(default_factory=list)
    is_returned: bool = False
    returned_date: datetime | None = None
    partial_returns: list[PartialReturn] = Field(default_factory=list)

    @field_validator("date", "returned_date")
    @classmethod
    def _naive_dates(cls, v: datetime | None) -> datetime | None:
        return _as_naive_local(v)


class Category(Document):
    id: str
    name: str
    icon: str
    color: str
    type: CategoryType
    is_custom: bool | None = None


class PaymentMethod(Document):
    id: str
    name: str
    icon: str


class FinancialInsight(Document):
    title: str
    description: str
    severity: Severity


class ReceiptScanResult(BaseModel):
    """Structured fields read off a receipt image by the LLM collaborator."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    merchant: str | None = None
    amount: float = Field(allow_inf_nan=False)
    date: str
    category: str
    confidence: float | None = None


__all__ = [
    "Category",
    "CategoryType",
    "Document",
    "FinancialInsight",
    "PartialReturn",
    "PaymentMethod",
    "ReceiptScanResult",
    "Severity",
    "Transaction",
    "TransactionType",
]
