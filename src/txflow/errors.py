"""
Exception hierarchy.

Ledger failures are raised by the ledger client and recovered at the
explorer boundary; they never propagate through layout or viewport code.
"""

from __future__ import annotations


class TxFlowError(Exception):
    """Base class for all txflow errors."""

    pass


class LedgerError(TxFlowError):
    """A transaction or outspend lookup failed."""

    def __init__(self, message: str, txid: str | None = None):
        super().__init__(message)
        self.txid = txid


class InputError(LedgerError):
    """Empty or malformed transaction id, rejected before any request."""

    pass


class NotFoundError(LedgerError):
    """The ledger does not know the transaction id."""

    pass


class NetworkError(LedgerError):
    """Transport failure or unusable response from the ledger."""

    pass


class AlreadyExpandedError(TxFlowError):
    """The output already has a child in the spend tree."""

    def __init__(self, parent_key: str, output_index: int):
        super().__init__(f"Output {output_index} of {parent_key} is already expanded")
        self.parent_key = parent_key
        self.output_index = output_index
