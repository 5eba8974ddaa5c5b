"""Export writers: full JSON backup bundle and a flat CSV log.

The JSON bundle carries the same camelCase documents the store persists, so a
backup can be read back with the ``models`` types. The CSV is for
spreadsheets: one row per transaction with category and asset resolved to
names.

Files are written atomically (``.tmp`` then ``os.replace``).
"""

from __future__ import annotations

import contextlib
import csv
import io
import json
import os
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from .categories import UNKNOWN_LABEL, resolve_category, resolve_payment_method
from .logging_setup import get_logger
from .models import Category, PaymentMethod, Transaction

BUNDLE_VERSION = "2.5"
CSV_HEADER: tuple[str, ...] = ("Date", "Type", "Category", "Asset", "Amount", "Note")

_logger = get_logger("fintrack.export")


def default_filename(kind: str, *, now: datetime | None = None) -> str:
    """``fintrack_backup_<date>.json`` for ``json``, ``fintrack_logs_<date>.csv`` for ``csv``."""

    stamp = (now or datetime.now()).date().isoformat()
    if kind == "json":
        return f"fintrack_backup_{stamp}.json"
    if kind == "csv":
        return f"fintrack_logs_{stamp}.csv"
    raise ValueError(f"unknown export format: {kind!r}")


def build_bundle(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    payment_methods: Sequence[PaymentMethod],
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    return {
        "transactions": [t.to_document() for t in transactions],
        "categories": [c.to_document() for c in categories],
        "paymentMethods": [p.to_document() for p in payment_methods],
        "exportDate": (now or datetime.now()).isoformat(),
        "version": BUNDLE_VERSION,
    }


def to_json(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    payment_methods: Sequence[PaymentMethod],
    *,
    now: datetime | None = None,
) -> str:
    bundle = build_bundle(transactions, categories, payment_methods, now=now)
    return json.dumps(bundle, ensure_ascii=False, indent=2)


def _csv_amount(amount: float) -> int | float:
    return int(amount) if float(amount).is_integer() else amount


def to_csv(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    payment_methods: Sequence[PaymentMethod],
) -> str:
    """Render the CSV log.

    Text cells are always quoted (embedded quotes doubled); ``Amount`` is a
    bare number. Stale category or payment-method ids show as ``Unknown``.
    """

    buf = io.StringIO()
    buf.write(",".join(CSV_HEADER) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for t in transactions:
        cat = resolve_category(categories, t.category_id)
        pm = resolve_payment_method(payment_methods, t.payment_method_id)
        writer.writerow(
            [
                t.date.date().isoformat(),
                t.type.value,
                cat.name if cat else UNKNOWN_LABEL,
                pm.name if pm else UNKNOWN_LABEL,
                _csv_amount(t.amount),
                t.note,
            ]
        )
    return buf.getvalue().rstrip("\n")


def write_export(path: Path, content: str) -> Path:
    """Write ``content`` to ``path`` atomically and return the path."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise
    _logger.info("export:written path=%s bytes=%d", path, len(content.encode("utf-8")))
    return path


__all__ = [
    "BUNDLE_VERSION",
    "CSV_HEADER",
    "build_bundle",
    "default_filename",
    "to_csv",
    "to_json",
    "write_export",
]
