"""Category and payment-method reference data plus reconciliation helpers.

The two dictionaries are treated as append-only sets keyed by their
case-insensitive name: lookups always run before creation, and creation
never touches an existing entry.

Exports
-------
- ``DEFAULT_CATEGORIES`` / ``DEFAULT_PAYMENT_METHODS``: seed dictionaries used
  when nothing is persisted yet.
- ``best_icon(name)``: keyword lookup used for auto-created categories.
- ``find_category`` / ``find_payment_method``: case-insensitive matching
  (categories also honour a small synonym table).
- ``new_category`` / ``new_payment_method``: build auto-created entries.
- ``resolve_category`` / ``resolve_payment_method``: display-time lookups that
  tolerate stale foreign keys by returning a placeholder.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence

from .models import Category, CategoryType, PaymentMethod

GENERIC_ICON = "📦"
CARD_ICON = "💳"
DEFAULT_COLOR = "bg-slate-500"
UNKNOWN_LABEL = "Unknown"

# Keyword → icon. Order matters: the first keyword contained in the name wins.
ICON_MAP: dict[str, str] = {
    "food": "🍔",
    "dining": "🍔",
    "restaurant": "🍔",
    "tea": "☕",
    "drink": "☕",
    "ice": "🍦",
    "transport": "🚗",
    "transportation": "🚗",
    "bike": "🚲",
    "car": "🚗",
    "auto": "🛺",
    "rapido": "🏍️",
    "ola": "🚕",
    "uber": "🚕",
    "fuel": "⛽",
    "petrol": "⛽",
    "repair": "🛠️",
    "shopping": "🛍️",
    "clothes": "👕",
    "kirana": "🛒",
    "grocery": "🛒",
    "groceries": "🛒",
    "household": "🏠",
    "home": "🏠",
    "electricity": "💡",
    "bill": "🧾",
    "utilities": "💡",
    "mobile": "📱",
    "recharge": "⚡",
    "internet": "🌐",
    "entertainment": "🎬",
    "movie": "🍿",
    "salary": "💰",
    "income": "📈",
    "health": "🏥",
    "medical": "💊",
    "medicine": "💊",
    "investment": "🏦",
    "gift": "🎁",
    "travel": "✈️",
    "hotel": "🏨",
}


def _cat(id_: str, name: str, icon: str, color: str, type_: CategoryType) -> Category:
    return Category(id=id_, name=name, icon=icon, color=color, type=type_)


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    _cat("1", "Food & Dining", "🍔", "bg-orange-500", CategoryType.EXPENSE),
    _cat("2", "Shopping", "🛍️", "bg-pink-500", CategoryType.EXPENSE),
    _cat("3", "Transport", "🚗", "bg-blue-500", CategoryType.EXPENSE),
    _cat("4", "Entertainment", "🎬", "bg-purple-500", CategoryType.EXPENSE),
    _cat("5", "Health", "🏥", "bg-red-500", CategoryType.EXPENSE),
    _cat("6", "Groceries", "🛒", "bg-emerald-500", CategoryType.EXPENSE),
    _cat("7", "Bills & Utilities", "💡", "bg-yellow-500", CategoryType.EXPENSE),
    _cat("8", "Salary", "💰", "bg-green-600", CategoryType.INCOME),
    _cat("9", "Investments", "📈", "bg-indigo-600", CategoryType.INCOME),
    _cat("10", "Others", GENERIC_ICON, DEFAULT_COLOR, CategoryType.EXPENSE),
)

DEFAULT_PAYMENT_METHODS: tuple[PaymentMethod, ...] = (
    PaymentMethod(id="p1", name="Cash", icon="💵"),
    PaymentMethod(id="p2", name="UPI", icon="📱"),
    PaymentMethod(id="p3", name="Card", icon=CARD_ICON),
)

# ---------------------------
# Icons
# ---------------------------


def best_icon(name: str) -> str:
    lower = name.lower()
    for keyword, icon in ICON_MAP.items():
        if keyword in lower:
            return icon
    return GENERIC_ICON


# ---------------------------
# Matching
# ---------------------------


def category_matches(existing_name: str, raw_name: str) -> bool:
    """Return True when an imported label refers to an existing category.

    Equality is case-insensitive. Synonyms: ``transport`` and
    ``transportation`` are interchangeable, ``bills & utilities`` absorbs any
    label mentioning ``bill`` or ``recharge``, and ``food & dining`` absorbs
    ``food``.
    """

    c = existing_name.lower()
    r = raw_name.lower()
    return (
        c == r
        or (c == "transport" and r == "transportation")
        or (c == "transportation" and r == "transport")
        or (c == "bills & utilities" and ("bill" in r or "recharge" in r))
        or (c == "food & dining" and r == "food")
    )


def find_category(categories: Iterable[Category], raw_name: str) -> Category | None:
    """Return the first category matching ``raw_name`` or ``None``."""

    return next((c for c in categories if category_matches(c.name, raw_name)), None)


def find_payment_method(methods: Iterable[PaymentMethod], raw_name: str) -> PaymentMethod | None:
    lowered = raw_name.lower()
    return next((p for p in methods if p.name.lower() == lowered), None)


# ---------------------------
# Creation
# ---------------------------


def new_category(name: str, *, type_: CategoryType) -> Category:
    """Build an auto-created (``is_custom``) category for an unmatched label."""

    return Category(
        id=f"cat_{uuid.uuid4().hex[:12]}",
        name=name,
        icon=best_icon(name),
        color=DEFAULT_COLOR,
        type=type_,
        is_custom=True,
    )


def new_payment_method(name: str) -> PaymentMethod:
    return PaymentMethod(id=f"pm_{uuid.uuid4().hex[:12]}", name=name, icon=CARD_ICON)


# ---------------------------
# Display-time resolution
# ---------------------------


def resolve_category(categories: Sequence[Category], category_id: str | None) -> Category | None:
    """Return the category with ``category_id``; ``None`` for stale/missing ids."""

    if category_id is None:
        return None
    return next((c for c in categories if c.id == category_id), None)


def resolve_payment_method(
    methods: Sequence[PaymentMethod], payment_method_id: str | None
) -> PaymentMethod | None:
    if payment_method_id is None:
        return None
    return next((p for p in methods if p.id == payment_method_id), None)


def category_label(categories: Sequence[Category], category_id: str | None) -> tuple[str, str]:
    """Return ``(name, icon)`` with the placeholder for stale references."""

    cat = resolve_category(categories, category_id)
    return (cat.name, cat.icon) if cat else (UNKNOWN_LABEL, GENERIC_ICON)


def payment_method_label(
    methods: Sequence[PaymentMethod], payment_method_id: str | None
) -> tuple[str, str]:
    pm = resolve_payment_method(methods, payment_method_id)
    return (pm.name, pm.icon) if pm else (UNKNOWN_LABEL, CARD_ICON)


__all__ = [
    "CARD_ICON",
    "DEFAULT_CATEGORIES",
    "DEFAULT_COLOR",
    "DEFAULT_PAYMENT_METHODS",
    "GENERIC_ICON",
    "ICON_MAP",
    "UNKNOWN_LABEL",
    "best_icon",
    "category_label",
    "category_matches",
    "find_category",
    "find_payment_method",
    "new_category",
    "new_payment_method",
    "payment_method_label",
    "resolve_category",
    "resolve_payment_method",
]
