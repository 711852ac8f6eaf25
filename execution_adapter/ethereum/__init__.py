from .client import LedgerClient, LedgerError, SequenceNumberSource
from .models import BatchTransferReceipt, FeeEstimate, TokenBalance, TransferReceipt, TransferSubmission
from .nonce import NonceCoordinator, NonceTicket
from .operations import build_ledger_operations
from .simulator import SimulatedLedger, SimulatedTransfer
from .transfer import BatchTransferError, TransferError, TransferExecutor

__all__ = [
    "BatchTransferError",
    "BatchTransferReceipt",
    "FeeEstimate",
    "LedgerClient",
    "LedgerError",
    "NonceCoordinator",
    "NonceTicket",
    "SequenceNumberSource",
    "SimulatedLedger",
    "SimulatedTransfer",
    "TokenBalance",
    "TransferError",
    "TransferExecutor",
    "TransferReceipt",
    "TransferSubmission",
    "build_ledger_operations",
]
