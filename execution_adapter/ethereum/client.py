"""Capabilities the core consumes from an EVM-compatible ledger client."""

from decimal import Decimal
from typing import Optional, Protocol

from .models import FeeEstimate, TokenBalance, TransferSubmission


class LedgerError(RuntimeError):
    """Raised by ledger clients when a query or submission fails."""


class SequenceNumberSource(Protocol):
    def get_next_sequence_number(self, account: str, block_tag: str = "pending") -> int:
        ...


class LedgerClient(SequenceNumberSource, Protocol):
    def get_balance(self, token: str, account: str) -> TokenBalance:
        ...

    def transfer(
        self,
        token: str,
        to: str,
        amount: Decimal,
        nonce: Optional[int] = None,
    ) -> TransferSubmission:
        ...

    def get_code(self, address: str) -> bytes:
        ...

    def estimate_fee(self, token: str, to: str, amount: Decimal) -> FeeEstimate:
        ...

    def cancel_transaction(self, nonce: int) -> TransferSubmission:
        """Replace whatever is pending at ``nonce`` with a zero-value self transfer."""
        ...
