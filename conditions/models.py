"""Inputs and outputs of condition evaluation."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol

from execution_adapter.ethereum.models import TokenBalance


class BalanceSource(Protocol):
    def get_balance(self, token: str, account: str) -> TokenBalance:
        ...


@dataclass(frozen=True)
class ConditionContext:
    ledger: BalanceSource
    account: str
    token_address: str
    state: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ConditionResult:
    met: bool
    reason: str
    actual_value: Any = None
    observed_data: Optional[Dict[str, object]] = None


def not_met(reason: str, actual_value: Any = None) -> ConditionResult:
    return ConditionResult(met=False, reason=reason, actual_value=actual_value)
