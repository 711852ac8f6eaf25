"""Ledger records exchanged with the EVM client."""

from dataclasses import asdict, dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class TokenBalance:
    amount: str
    raw_amount: str
    decimals: int
    symbol: str


@dataclass(frozen=True)
class TransferSubmission:
    tx_hash: str
    nonce: int


@dataclass(frozen=True)
class FeeEstimate:
    gas_limit: int
    gas_price_wei: int

    @property
    def total_cost_wei(self) -> int:
        return self.gas_limit * self.gas_price_wei


@dataclass(frozen=True)
class TransferReceipt:
    tx_hash: str
    nonce: int
    sender: str
    to: str
    token_address: str
    amount: str
    chain_id: int
    recipient_is_contract: bool = False

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class BatchTransferReceipt:
    transfers: Tuple[TransferReceipt, ...]
    total_amount: str
    token_address: str
    chain_id: int

    @property
    def tx_hashes(self) -> Tuple[str, ...]:
        return tuple(item.tx_hash for item in self.transfers)

    def to_dict(self) -> Dict[str, object]:
        return {
            "tx_hashes": list(self.tx_hashes),
            "transfers": [item.to_dict() for item in self.transfers],
            "total_amount": self.total_amount,
            "token_address": self.token_address,
            "chain_id": self.chain_id,
        }
