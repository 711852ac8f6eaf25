"""In-memory ledger for dry runs, without network calls."""

import hashlib
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .client import LedgerError
from .models import FeeEstimate, TokenBalance, TransferSubmission
from .transfer import format_amount

_DEFAULT_GAS_USED = 21_000
_DEFAULT_GAS_PRICE_WEI = 1
_CONTRACT_CODE = bytes.fromhex("6080604052")
_BLOCK_TAGS = ("pending", "latest")

Amount = Union[Decimal, str, int]


@dataclass(frozen=True)
class SimulatedTransfer:
    tx_hash: str
    sender: str
    to: str
    token: str
    amount: Decimal
    nonce: int


class SimulatedLedger:
    """Single-signer ledger that enforces sequence numbers like a real chain.

    A submission whose nonce is not exactly the sender's next sequence number
    is rejected, which is what makes nonce collisions observable in tests.
    """

    def __init__(
        self,
        account: str,
        balances: Optional[Mapping[str, Amount]] = None,
        symbol: str = "USDC",
        decimals: int = 6,
        contracts: Iterable[str] = (),
        starting_nonce: int = 0,
        gas_price_wei: int = _DEFAULT_GAS_PRICE_WEI,
    ) -> None:
        self._account = account
        self._symbol = symbol
        self._decimals = decimals
        self._contracts = {address.lower() for address in contracts}
        self._gas_price_wei = gas_price_wei
        self._lock = threading.Lock()
        self._balances: Dict[Tuple[str, str], Decimal] = {}
        self._nonces: Dict[str, int] = {account.lower(): starting_nonce}
        self._submissions: List[SimulatedTransfer] = []
        self.sequence_queries = 0
        for token, amount in (balances or {}).items():
            self.set_balance(token, account, amount)

    @property
    def account(self) -> str:
        return self._account

    @property
    def submissions(self) -> Tuple[SimulatedTransfer, ...]:
        with self._lock:
            return tuple(self._submissions)

    def set_balance(self, token: str, account: str, amount: Amount) -> None:
        with self._lock:
            self._balances[_key(token, account)] = Decimal(str(amount))

    def get_balance(self, token: str, account: str) -> TokenBalance:
        with self._lock:
            amount = self._balances.get(_key(token, account), Decimal("0"))
        raw = int(amount.scaleb(self._decimals))
        return TokenBalance(
            amount=format_amount(amount),
            raw_amount=str(raw),
            decimals=self._decimals,
            symbol=self._symbol,
        )

    def get_next_sequence_number(self, account: str, block_tag: str = "pending") -> int:
        if block_tag not in _BLOCK_TAGS:
            raise LedgerError(f"Unsupported block tag: {block_tag}")
        with self._lock:
            self.sequence_queries += 1
            return self._nonces.get(account.lower(), 0)

    def get_code(self, address: str) -> bytes:
        return _CONTRACT_CODE if address.lower() in self._contracts else b""

    def estimate_fee(self, token: str, to: str, amount: Decimal) -> FeeEstimate:
        return FeeEstimate(gas_limit=_DEFAULT_GAS_USED, gas_price_wei=self._gas_price_wei)

    def transfer(
        self,
        token: str,
        to: str,
        amount: Decimal,
        nonce: Optional[int] = None,
    ) -> TransferSubmission:
        if amount <= 0:
            raise LedgerError("Transfer amount must be positive.")

        sender = self._account.lower()
        with self._lock:
            expected = self._nonces.get(sender, 0)
            used = expected if nonce is None else nonce
            if used < expected:
                raise LedgerError(f"nonce too low: next nonce {expected}, tx nonce {used}")
            if used > expected:
                raise LedgerError(f"nonce gap: next nonce {expected}, tx nonce {used}")

            source_key = _key(token, self._account)
            available = self._balances.get(source_key, Decimal("0"))
            if available < amount:
                raise LedgerError(
                    f"insufficient funds: balance {format_amount(available)}, "
                    f"transfer {format_amount(amount)}"
                )

            target_key = _key(token, to)
            self._balances[source_key] = available - amount
            self._balances[target_key] = self._balances.get(target_key, Decimal("0")) + amount
            self._nonces[sender] = expected + 1

            tx_hash = _tx_hash(sender, to, token, amount, used)
            self._submissions.append(
                SimulatedTransfer(
                    tx_hash=tx_hash,
                    sender=self._account,
                    to=to,
                    token=token,
                    amount=amount,
                    nonce=used,
                )
            )
        return TransferSubmission(tx_hash=tx_hash, nonce=used)

    def cancel_transaction(self, nonce: int) -> TransferSubmission:
        # Submissions confirm immediately, so only the next nonce is still open.
        sender = self._account.lower()
        with self._lock:
            expected = self._nonces.get(sender, 0)
            if nonce < expected:
                raise LedgerError(f"nonce too low: transaction at nonce {nonce} already confirmed")
            if nonce > expected:
                raise LedgerError(f"nonce gap: next nonce {expected}, tx nonce {nonce}")

            self._nonces[sender] = expected + 1
            tx_hash = _tx_hash(sender, self._account, "", Decimal("0"), nonce)
            self._submissions.append(
                SimulatedTransfer(
                    tx_hash=tx_hash,
                    sender=self._account,
                    to=self._account,
                    token="",
                    amount=Decimal("0"),
                    nonce=nonce,
                )
            )
        return TransferSubmission(tx_hash=tx_hash, nonce=nonce)


def _key(token: str, account: str) -> Tuple[str, str]:
    return token.lower(), account.lower()


def _tx_hash(sender: str, to: str, token: str, amount: Decimal, nonce: int) -> str:
    payload = f"{sender}|{to.lower()}|{token.lower()}|{format_amount(amount)}|{nonce}"
    return "0x" + hashlib.sha256(payload.encode("ascii")).hexdigest()
