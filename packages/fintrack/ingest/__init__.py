"""Ingest adapters for external transaction exports."""

from .adapters.legacy_tsv import LegacyImportResult, parse_legacy_data
from .utils import read_export_text, require_transactions

__all__ = [
    "LegacyImportResult",
    "parse_legacy_data",
    "read_export_text",
    "require_transactions",
]
