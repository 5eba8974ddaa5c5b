"""Exception types raised across ``fintrack``.

Parsing-layer problems (bad import lines, unparseable fuel notes) never
surface as exceptions; only "nothing could be produced" and caller mistakes
do.
"""

from __future__ import annotations


class FintrackError(Exception):
    """Base class for application errors."""


class ImportRejectedError(FintrackError):
    """A legacy import produced zero transactions; nothing was merged."""


class TransactionNotFoundError(FintrackError, KeyError):
    """No transaction with the given id exists in the store."""

    def __init__(self, tx_id: str) -> None:
        super().__init__(tx_id)
        self.tx_id = tx_id

    def __str__(self) -> str:
        return f"transaction not found: {self.tx_id!r}"


class NotLentError(FintrackError, ValueError):
    """A lent-ledger operation was applied to a non-lent transaction."""


__all__ = [
    "FintrackError",
    "ImportRejectedError",
    "NotLentError",
    "TransactionNotFoundError",
]
