"""Ingest utilities shared by the store and CLI commands.

The adapter itself never fails as a whole; these helpers turn "nothing could
be read" into an explicit :class:`~fintrack.errors.ImportRejectedError` so the
caller can surface it and leave existing state untouched.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path

from ..errors import ImportRejectedError
from .adapters.legacy_tsv import LegacyImportResult


def read_export_text(path: str | PathLike[str]) -> str:
    """Read a legacy export file as text (UTF-8, BOM tolerated).

    ``OSError`` (missing file, permissions) propagates unchanged.
    """

    text = Path(path).read_text(encoding="utf-8-sig")
    if not text.strip():
        raise ImportRejectedError("File is empty.")
    return text


def require_transactions(result: LegacyImportResult) -> LegacyImportResult:
    """Return ``result`` unchanged, or reject it when no rows were parsed."""

    if not result.transactions:
        raise ImportRejectedError(
            "No valid records found in the file. Ensure it's a tab-separated export "
            f"({result.skipped_lines} line(s) skipped)."
        )
    return result


__all__ = ["read_export_text", "require_transactions"]
