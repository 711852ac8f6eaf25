"""Dispatch of plan conditions to their evaluators."""

import logging
from typing import Callable, Dict, Optional

from execution_plan.models import Condition, ConditionKind, ConditionOperator
from execution_plan.validator import to_number

from .comparison import compare
from .market import MarketConditionEvaluator
from .models import ConditionContext, ConditionResult, not_met

logger = logging.getLogger(__name__)

Variant = Callable[[Condition, ConditionContext], ConditionResult]


class ConditionEvaluator:
    """Evaluates one condition at a time; never raises.

    Every failure (ledger error, unreachable market data, bad value) is
    reported as a not-met result with a readable reason.
    """

    def __init__(self, market_evaluator: Optional[MarketConditionEvaluator] = None) -> None:
        self._market = market_evaluator or MarketConditionEvaluator(None)
        self._variants: Dict[ConditionKind, Variant] = {
            ConditionKind.BALANCE: evaluate_balance,
            ConditionKind.PRICE: self._evaluate_market,
            ConditionKind.VOLATILITY: self._evaluate_market,
            ConditionKind.TREND: self._evaluate_market,
            ConditionKind.CUSTOM: evaluate_custom,
        }

    @property
    def market(self) -> MarketConditionEvaluator:
        return self._market

    def evaluate(self, condition: Condition, context: ConditionContext) -> ConditionResult:
        variant = self._variants.get(condition.kind)
        if variant is None:
            return not_met(f"Unknown condition type: {condition.kind}")
        try:
            return variant(condition, context)
        except Exception as exc:
            logger.exception("Condition %s raised during evaluation", condition.describe())
            return not_met(f"Condition evaluation error: {exc}")

    def _evaluate_market(self, condition: Condition, context: ConditionContext) -> ConditionResult:
        return self._market.evaluate(condition)


def evaluate_balance(condition: Condition, context: ConditionContext) -> ConditionResult:
    expected = to_number(condition.value)
    if expected is None:
        return not_met(f"Balance condition value '{condition.value}' is not numeric")

    try:
        balance = context.ledger.get_balance(context.token_address, context.account)
    except Exception as exc:
        logger.warning("Balance query for %s failed: %s", context.account, exc)
        return not_met(f"Balance query failed: {exc}")

    actual = to_number(balance.amount)
    if actual is None:
        return not_met(f"Ledger returned a non-numeric balance '{balance.amount}'")

    operator = condition.operator.symbol
    met = compare(actual, condition.operator, expected)
    if met:
        reason = (
            f"Balance {balance.amount} {balance.symbol} meets requirement "
            f"({operator} {condition.value})"
        )
    else:
        reason = (
            f"Insufficient balance: {balance.amount} {balance.symbol} "
            f"(required: {operator} {condition.value})"
        )
    return ConditionResult(
        met=met,
        reason=reason,
        actual_value=balance.amount,
        observed_data={"balance": balance.amount, "symbol": balance.symbol},
    )


def evaluate_custom(condition: Condition, context: ConditionContext) -> ConditionResult:
    if condition.field not in context.state:
        return not_met(f"Field '{condition.field}' not found in execution state")

    actual = context.state[condition.field]
    operator = condition.operator
    actual_number = to_number(actual)
    expected_number = to_number(condition.value)

    if actual_number is not None and expected_number is not None:
        met = compare(actual_number, operator, expected_number)
    elif operator in (ConditionOperator.EQ, ConditionOperator.NE):
        matches = str(actual) == str(condition.value)
        met = matches if operator == ConditionOperator.EQ else not matches
    else:
        return not_met(
            f"Cannot compare non-numeric field '{condition.field}' with {operator.symbol}",
            actual_value=actual,
        )

    verdict = "satisfies" if met else "does not satisfy"
    return ConditionResult(
        met=met,
        reason=(
            f"Field '{condition.field}' = {actual} {verdict} "
            f"{operator.symbol} {condition.value}"
        ),
        actual_value=actual,
    )
