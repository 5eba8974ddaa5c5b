"""Whole-document key-value helpers over ``kv_entries``.

Values are opaque strings (the application stores JSON text). The caller owns
the transaction scope; nothing here commits.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from .models.kv import KvEntry


def get_value(session: Session, key: str) -> str | None:
    """Return the stored value for ``key`` or ``None`` when absent."""

    return session.execute(select(KvEntry.value).where(KvEntry.key == key)).scalar_one_or_none()


def set_value(session: Session, key: str, value: str) -> None:
    """Insert or replace the value for ``key``."""

    row = session.get(KvEntry, key)
    if row is None:
        session.add(KvEntry(key=key, value=value))
    else:
        row.value = value
    session.flush()


def remove_value(session: Session, key: str) -> bool:
    """Delete ``key``; return ``True`` when a row was removed."""

    result = session.execute(delete(KvEntry).where(KvEntry.key == key))
    return bool(result.rowcount)


__all__ = ["get_value", "set_value", "remove_value"]
