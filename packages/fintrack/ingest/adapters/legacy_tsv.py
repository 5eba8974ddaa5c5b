"""Adapter for the legacy tab-separated transaction export.

Row layout (positional, header row optional and auto-skipped):
``Date, Account, Category, (unused), Note, Amount, Type, Description``

Mapping rules:
- ``amount``: column 5 with everything except digits, ``.`` and ``-``
  removed, parsed as the leading number; stored as its absolute value (the
  sign never decides direction, the type column does)
- ``date``: ``DD-MM-YYYY[ time]`` when the cell contains ``-``, with
  out-of-range days and months rolling over (``31-02-2024`` is 2 March);
  otherwise any generically parseable date; falls back to *now* when
  unparseable
- ``type``: ``income`` when column 6 mentions income, ``lent`` when it
  mentions transfer or lent, else ``expense``
- ``category_id``: matched/auto-created from column 2 (``Others`` when
  blank); omitted for lent transactions
- ``payment_method_id``: matched/auto-created from column 1
- ``note``: column 4, else column 7, else the category name

A line that fails for any reason is logged and skipped; the rest of the file
is still processed. The input dictionaries are copied, never mutated.
"""

from __future__ import annotations

import math
import re
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from ...categories import find_category, find_payment_method, new_category, new_payment_method
from ...logging_setup import get_logger
from ...models import Category, CategoryType, PaymentMethod, Transaction, TransactionType

# Column positions in the legacy export
COL_DATE = 0
COL_ACCOUNT = 1
COL_CATEGORY = 2
COL_NOTE = 4
COL_AMOUNT = 5
COL_TYPE = 6
COL_DESCRIPTION = 7

MIN_COLUMNS = 6
HEADER_KEYWORDS: tuple[str, ...] = ("date", "account", "category", "amount", "inr")
FALLBACK_CATEGORY = "Others"
FALLBACK_ACCOUNT = "Unknown"

_AMOUNT_STRIP_RE = re.compile(r"[^\d.\-]")
_NUMBER_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)")
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")

_logger = get_logger("fintrack.ingest.legacy_tsv")


@dataclass(slots=True)
class LegacyImportResult:
    """New transactions plus the (possibly extended) reference dictionaries."""

    transactions: list[Transaction] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    payment_methods: list[PaymentMethod] = field(default_factory=list)
    skipped_lines: int = 0
    created_categories: int = 0
    created_payment_methods: int = 0


# ---------------------------------------------------------------------------
# Cell parsers
# ---------------------------------------------------------------------------


def parse_amount(raw: str) -> float | None:
    """Return the leading number of ``raw`` after stripping currency noise.

    ``"₹1,250.50"`` → 1250.5, ``"-300"`` → -300.0, ``"12.5.3"`` → 12.5. Returns
    ``None`` when no finite number remains.
    """

    cleaned = _AMOUNT_STRIP_RE.sub("", raw)
    m = _NUMBER_PREFIX_RE.match(cleaned)
    if m is None:
        return None
    value = float(m.group(0))
    return value if math.isfinite(value) else None


def _leading_int(s: str) -> int | None:
    m = _INT_PREFIX_RE.match(s)
    return int(m.group(1)) if m else None


def parse_date(raw: str, *, now: datetime) -> datetime:
    """Parse a legacy date cell; never rejects, substituting ``now`` instead."""

    s = raw.strip()
    if "-" in s:
        parts = s.split(" ")[0].split("-")
        if len(parts) == 3:
            d, m, y = (_leading_int(p) for p in parts)
            if d is None or m is None or y is None:
                return now
            try:
                return datetime(y, 1, 1) + relativedelta(months=m - 1) + timedelta(days=d - 1)
            except (ValueError, OverflowError):
                return now
    try:
        parsed = date_parser.parse(s)
    except (ValueError, OverflowError):
        return now
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def infer_type(raw: str) -> TransactionType:
    lowered = raw.lower()
    if "income" in lowered:
        return TransactionType.INCOME
    if "transfer" in lowered or "lent" in lowered:
        return TransactionType.LENT
    return TransactionType.EXPENSE


def is_header(columns: Sequence[str]) -> bool:
    first = (columns[0] if columns else "").lower()
    return any(k in first for k in HEADER_KEYWORDS)


def _col(columns: Sequence[str], idx: int, default: str = "") -> str:
    if idx < len(columns) and columns[idx]:
        return columns[idx]
    return default


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


def parse_legacy_data(
    text: str,
    categories: Sequence[Category],
    payment_methods: Sequence[PaymentMethod],
    *,
    now: datetime | None = None,
) -> LegacyImportResult:
    """Parse a legacy export and reconcile it against the given dictionaries.

    Parameters
    ----------
    text:
        Whole file contents (``\\r\\n`` or ``\\n`` line endings).
    categories, payment_methods:
        Current reference dictionaries. They are copied; entries created for
        unmatched labels are appended to the copies only, so the caller can
        decide atomically whether to commit the result.
    now:
        Substitute timestamp for unparseable dates (defaults to the current
        time).
    """

    fallback_now = now or datetime.now()
    result = LegacyImportResult(
        categories=list(categories),
        payment_methods=list(payment_methods),
    )

    lines = text.replace("\r\n", "\n").split("\n")
    for line_no, raw_line in enumerate(lines):
        line = raw_line.strip()
        if not line:
            continue

        try:
            columns = line.split("\t")
            if is_header(columns):
                continue
            if len(columns) < MIN_COLUMNS:
                result.skipped_lines += 1
                _logger.warning("legacy_import:short_row line=%d columns=%d", line_no, len(columns))
                continue

            amount = parse_amount(_col(columns, COL_AMOUNT, "0"))
            if amount is None:
                result.skipped_lines += 1
                _logger.warning("legacy_import:bad_amount line=%d", line_no)
                continue

            tx_type = infer_type(_col(columns, COL_TYPE, "Expense"))
            category_name = _col(columns, COL_CATEGORY).strip() or FALLBACK_CATEGORY

            # Dictionary additions are staged and only committed together with
            # the transaction, so a failing row leaves no trace.
            category = find_category(result.categories, category_name)
            created_category = category is None
            if category is None:
                category = new_category(
                    category_name,
                    type_=(
                        CategoryType.INCOME
                        if tx_type == TransactionType.INCOME
                        else CategoryType.EXPENSE
                    ),
                )

            account = _col(columns, COL_ACCOUNT, FALLBACK_ACCOUNT)
            method = find_payment_method(result.payment_methods, account)
            created_method = method is None
            if method is None:
                method = new_payment_method(account)

            tx = Transaction(
                id=f"imp_{uuid.uuid4().hex[:12]}_{line_no}",
                amount=abs(amount),
                type=tx_type,
                category_id=None if tx_type == TransactionType.LENT else category.id,
                payment_method_id=method.id,
                date=parse_date(_col(columns, COL_DATE), now=fallback_now),
                note=_col(columns, COL_NOTE) or _col(columns, COL_DESCRIPTION) or category.name,
                images=[],
            )

            if created_category:
                result.categories.append(category)
                result.created_categories += 1
            if created_method:
                result.payment_methods.append(method)
                result.created_payment_methods += 1
            result.transactions.append(tx)
        except Exception as e:  # noqa: BLE001 - one bad line must not abort the import
            result.skipped_lines += 1
            _logger.warning(
                "legacy_import:line_failed line=%d error=%s", line_no, e.__class__.__name__
            )
            continue

    _logger.info(
        "legacy_import:parsed transactions=%d skipped=%d new_categories=%d new_payment_methods=%d",
        len(result.transactions),
        result.skipped_lines,
        result.created_categories,
        result.created_payment_methods,
    )
    return result


__all__ = [
    "LegacyImportResult",
    "infer_type",
    "is_header",
    "parse_amount",
    "parse_date",
    "parse_legacy_data",
]
