"""Token transfers issued through the nonce coordinator."""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from execution_plan.validator import is_valid_address, parse_amount

from .client import LedgerClient
from .models import BatchTransferReceipt, TransferReceipt
from .nonce import NonceCoordinator

logger = logging.getLogger(__name__)

# Token marker on receipts of cancellation transactions.
CANCEL_TOKEN = "CANCEL"


class TransferError(ValueError):
    """Raised when a transfer is rejected or cannot be completed."""


class BatchTransferError(TransferError):
    """Raised when a batch stops after some of its transfers were submitted.

    ``submitted`` holds the receipts of the transfers that reached the ledger.
    """

    def __init__(self, message: str, submitted: Sequence[TransferReceipt]) -> None:
        super().__init__(message)
        self.submitted: Tuple[TransferReceipt, ...] = tuple(submitted)

    @property
    def partial_result(self) -> Dict[str, object]:
        total = sum((parse_amount(item.amount) for item in self.submitted), Decimal("0"))
        return {
            "tx_hashes": [item.tx_hash for item in self.submitted],
            "transfers": [item.to_dict() for item in self.submitted],
            "tx_hash": self.submitted[-1].tx_hash,
            "amount": format_amount(total),
            "submitted": len(self.submitted),
        }


class TransferExecutor:
    def __init__(
        self,
        ledger: LedgerClient,
        coordinator: NonceCoordinator,
        token_address: str,
        chain_id: int,
    ) -> None:
        if not is_valid_address(token_address):
            raise TransferError(f"Invalid token address: {token_address}")
        self._ledger = ledger
        self._coordinator = coordinator
        self._token_address = token_address
        self._chain_id = chain_id

    @property
    def token_address(self) -> str:
        return self._token_address

    @property
    def sender(self) -> str:
        return self._coordinator.account

    def is_contract(self, address: str) -> bool:
        if not is_valid_address(address):
            raise TransferError(f"Invalid address: {address}")
        return len(self._ledger.get_code(address)) > 0

    def transfer(self, to: str, amount: str) -> TransferReceipt:
        value = _checked_transfer(to, amount)
        recipient_is_contract = self._inspect_recipient(to)

        with self._coordinator.reserve() as ticket:
            submission = self._ledger.transfer(
                self._token_address, to, value, nonce=ticket.nonce
            )

        logger.info(
            "Submitted transfer of %s to %s (nonce %s, tx %s)",
            amount,
            to,
            submission.nonce,
            submission.tx_hash,
        )
        return self._receipt(to, amount, submission.tx_hash, submission.nonce, recipient_is_contract)

    def batch_transfer(
        self, recipients: Sequence[str], amounts: Sequence[str]
    ) -> BatchTransferReceipt:
        if len(recipients) != len(amounts):
            raise TransferError("Recipients and amounts must have the same length.")
        if not recipients:
            raise TransferError("At least one recipient is required.")

        values = [_checked_transfer(to, amount) for to, amount in zip(recipients, amounts)]
        contract_flags = [self._inspect_recipient(to) for to in recipients]

        receipts: List[TransferReceipt] = []
        with self._coordinator.reserve(count=len(recipients)) as ticket:
            for nonce, to, amount, value, is_contract in zip(
                ticket.nonces, recipients, amounts, values, contract_flags
            ):
                try:
                    submission = self._ledger.transfer(self._token_address, to, value, nonce=nonce)
                except Exception as exc:
                    if not receipts:
                        raise
                    message = (
                        f"Batch transfer failed at recipient {len(receipts) + 1} of "
                        f"{len(recipients)} after {len(receipts)} submitted: {exc}"
                    )
                    logger.error(message)
                    raise BatchTransferError(message, receipts) from exc
                receipts.append(
                    self._receipt(to, amount, submission.tx_hash, submission.nonce, is_contract)
                )

        total = sum(values, Decimal("0"))
        logger.info("Submitted batch of %s transfers totalling %s", len(receipts), total)
        return BatchTransferReceipt(
            transfers=tuple(receipts),
            total_amount=format_amount(total),
            token_address=self._token_address,
            chain_id=self._chain_id,
        )

    def cancel_pending(self, nonce: Optional[int] = None) -> TransferReceipt:
        """Replace the pending transaction at ``nonce`` with a zero-value self transfer.

        Without ``nonce`` the next sequence number is reserved through the
        coordinator. An explicit nonce only holds the account's slot, since it
        was assigned earlier.
        """

        if nonce is None:
            with self._coordinator.reserve() as ticket:
                submission = self._ledger.cancel_transaction(ticket.nonce)
        else:
            if nonce < 0:
                raise TransferError("Nonce must be non-negative.")
            with self._coordinator.hold():
                submission = self._ledger.cancel_transaction(nonce)

        logger.warning(
            "Submitted cancellation at nonce %s (tx %s)", submission.nonce, submission.tx_hash
        )
        return TransferReceipt(
            tx_hash=submission.tx_hash,
            nonce=submission.nonce,
            sender=self.sender,
            to=self.sender,
            token_address=CANCEL_TOKEN,
            amount="0",
            chain_id=self._chain_id,
        )

    def _inspect_recipient(self, to: str) -> bool:
        is_contract = self.is_contract(to)
        if is_contract:
            logger.warning("Recipient %s is a contract address", to)
        return is_contract

    def _receipt(
        self, to: str, amount: str, tx_hash: str, nonce: int, recipient_is_contract: bool
    ) -> TransferReceipt:
        return TransferReceipt(
            tx_hash=tx_hash,
            nonce=nonce,
            sender=self.sender,
            to=to,
            token_address=self._token_address,
            amount=amount,
            chain_id=self._chain_id,
            recipient_is_contract=recipient_is_contract,
        )


def format_amount(value: Decimal) -> str:
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


def _checked_transfer(to: str, amount: str) -> Decimal:
    if not is_valid_address(to):
        raise TransferError(f"Invalid recipient address: {to}")
    try:
        value = parse_amount(amount)
    except ValueError as exc:
        raise TransferError(str(exc)) from exc
    if value <= 0:
        raise TransferError("Amount must be a positive number.")
    return value
