"""Public interface for the ``fintrack`` package.

This module exposes the store, the three derived-data components and the
public models as the stable import surface. There is no runtime logic here,
only symbol re-exports.
"""

from .errors import FintrackError, ImportRejectedError, NotLentError, TransactionNotFoundError
from .fuel import FuelAnalysisResult, FuelLogPoint, calculate_fuel_stats
from .ingest import LegacyImportResult, parse_legacy_data
from .lent import LentSummary, add_partial_return, lent_status, summarize_lent, toggle_returned
from .models import (
    Category,
    CategoryType,
    FinancialInsight,
    PartialReturn,
    PaymentMethod,
    ReceiptScanResult,
    Transaction,
    TransactionType,
)
from .store import FinanceStore

__all__ = [
    # Store
    "FinanceStore",
    # Components
    "calculate_fuel_stats",
    "parse_legacy_data",
    "add_partial_return",
    "lent_status",
    "summarize_lent",
    "toggle_returned",
    # Models / types
    "Category",
    "CategoryType",
    "FinancialInsight",
    "FuelAnalysisResult",
    "FuelLogPoint",
    "LegacyImportResult",
    "LentSummary",
    "PartialReturn",
    "PaymentMethod",
    "ReceiptScanResult",
    "Transaction",
    "TransactionType",
    # Errors
    "FintrackError",
    "ImportRejectedError",
    "NotLentError",
    "TransactionNotFoundError",
]
