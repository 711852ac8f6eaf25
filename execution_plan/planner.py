"""Deterministic draft builder for plain transfer intents."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .risk import RiskLevel, classify_transfer_amount, highest_risk
from .validator import parse_amount


@dataclass(frozen=True)
class TransferIntent:
    to: str
    amount: str
    token_symbol: str = "USDC"
    raw_text: Optional[str] = None


class TransferPlanner:
    """Builds balance-guarded transfer drafts without a language model.

    The output is a draft like any proposal-service draft: it still has to pass
    the plan validator before it can be executed.
    """

    def __init__(
        self,
        id_provider: Optional[Callable[[], str]] = None,
        time_provider: Optional[Callable[[], str]] = None,
    ) -> None:
        self._id_provider = id_provider or _new_plan_id
        self._time_provider = time_provider or _utc_timestamp

    def plan(self, intent: TransferIntent) -> Dict[str, object]:
        amount = parse_amount(intent.amount)
        if amount <= 0:
            raise ValueError("Transfer amount must be positive.")

        plan_id = self._id_provider()
        symbol = intent.token_symbol
        transfer_risk = classify_transfer_amount(amount)
        steps: List[Dict[str, object]] = [
            {
                "id": f"{plan_id}-step-1",
                "human_action": f"Check {symbol} balance",
                "operation_name": "getBalance",
                "parameters": {},
                "conditions": [],
                "risk": RiskLevel.LOW.value,
                "description": "Read the acting account balance before moving funds.",
            },
            {
                "id": f"{plan_id}-step-2",
                "human_action": f"Transfer {intent.amount} {symbol} to {intent.to}",
                "operation_name": "transferToken",
                "parameters": {"to": intent.to, "amount": intent.amount},
                "conditions": [
                    {
                        "kind": "balance",
                        "field": "balance",
                        "operator": ">=",
                        "value": intent.amount,
                        "description": f"Ensure balance >= {intent.amount} {symbol} before transfer",
                    }
                ],
                "risk": transfer_risk.value,
                "description": "Transfer runs only when the balance covers the amount.",
            },
        ]
        overall = highest_risk((RiskLevel.LOW, transfer_risk))
        return {
            "id": plan_id,
            "raw_intent": intent.raw_text or f"send {intent.amount} {symbol} to {intent.to}",
            "normalized_intent": (
                f"Transfer {intent.amount} {symbol} to {intent.to} if the balance covers it."
            ),
            "steps": steps,
            "overall_risk": overall.value,
            "created_at": self._time_provider(),
            "requires_approval": True,
            "can_rollback": False,
        }


def _new_plan_id() -> str:
    return str(uuid.uuid4())


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
