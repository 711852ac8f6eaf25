"""Thresholds the plan validator applies to draft plans."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple


@dataclass(frozen=True)
class ValidationPolicy:
    large_transfer_threshold: Decimal = Decimal("1000")
    max_steps: int = 10
    max_transfer_steps: int = 3
    transfer_operations: Tuple[str, ...] = ("transferToken",)
    batch_transfer_operations: Tuple[str, ...] = ("batchTransfer",)
    token_symbol: str = "USDC"

    def is_transfer(self, operation_name: object) -> bool:
        return operation_name in self.transfer_operations

    def is_batch_transfer(self, operation_name: object) -> bool:
        return operation_name in self.batch_transfer_operations

    def moves_funds(self, operation_name: object) -> bool:
        return self.is_transfer(operation_name) or self.is_batch_transfer(operation_name)
