"""Market-state conditions: price, volatility and trend."""

import logging
from typing import Dict, Optional

from execution_plan.models import Condition, ConditionKind, ConditionOperator, Trend, parse_trend
from execution_plan.validator import to_number
from market_data.client import MarketDataClient
from market_data.models import MarketQuote

from .comparison import compare
from .models import ConditionResult, not_met

logger = logging.getLogger(__name__)

TREND_BAND = 2.0


def derive_trend(change_24h: Optional[float]) -> Trend:
    change = change_24h or 0.0
    if change > TREND_BAND:
        return Trend.BULLISH
    if change < -TREND_BAND:
        return Trend.BEARISH
    return Trend.NEUTRAL


def derive_volatility(quote: MarketQuote) -> Optional[float]:
    if quote.volatility is not None:
        return quote.volatility
    if quote.change_24h is not None:
        return abs(quote.change_24h)
    return None


class MarketConditionEvaluator:
    """Evaluates market conditions against a lazily connected client.

    The first market condition opens the connection; once it succeeds it is
    reused for the evaluator's lifetime. A failed connection turns the
    condition into not-met and is attempted again by the next one.
    """

    def __init__(self, client: Optional[MarketDataClient]) -> None:
        self._client = client
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def evaluate(self, condition: Condition) -> ConditionResult:
        if self._client is None:
            return not_met(
                "Cannot evaluate market condition: no market data service configured"
            )
        if not condition.symbol:
            return not_met(f"{condition.kind.value.capitalize()} condition requires a symbol")

        try:
            self._connect()
        except Exception as exc:
            logger.warning("Market data service unreachable: %s", exc)
            return not_met(
                f"Cannot evaluate market condition: market data service unreachable ({exc})"
            )

        try:
            quote = self._client.get_quote(condition.symbol)
        except Exception as exc:
            return not_met(f"Market condition evaluation failed: {exc}")

        if condition.kind == ConditionKind.PRICE:
            return _evaluate_price(condition, quote)
        if condition.kind == ConditionKind.VOLATILITY:
            return _evaluate_volatility(condition, quote)
        if condition.kind == ConditionKind.TREND:
            return _evaluate_trend(condition, quote)
        return not_met(f"Unsupported market condition type: {condition.kind.value}")

    def _connect(self) -> None:
        if self._connected:
            return
        self._client.connect()
        self._connected = True


def _evaluate_price(condition: Condition, quote: MarketQuote) -> ConditionResult:
    expected = to_number(condition.value)
    if expected is None:
        return not_met(f"Price condition value '{condition.value}' is not numeric")

    operator = condition.operator.symbol
    met = compare(quote.price, condition.operator, expected)
    if met:
        reason = f"{quote.symbol} price ${quote.price:.4f} {operator} ${expected}"
    else:
        reason = (
            f"{quote.symbol} price ${quote.price:.4f} does not meet condition "
            f"({operator} ${expected})"
        )
    return ConditionResult(
        met=met,
        reason=reason,
        actual_value=quote.price,
        observed_data=_observed(quote),
    )


def _evaluate_volatility(condition: Condition, quote: MarketQuote) -> ConditionResult:
    expected = to_number(condition.value)
    if expected is None:
        return not_met(f"Volatility condition value '{condition.value}' is not numeric")

    volatility = derive_volatility(quote)
    if volatility is None:
        return not_met(
            f"Unable to calculate volatility for {quote.symbol}: "
            "no 24h price change data available"
        )

    operator = condition.operator.symbol
    met = compare(volatility, condition.operator, expected)
    if met:
        reason = f"{quote.symbol} volatility {volatility:.2f}% {operator} {expected}%"
    else:
        reason = (
            f"{quote.symbol} volatility {volatility:.2f}% does not meet condition "
            f"({operator} {expected}%)"
        )
    observed = _observed(quote)
    observed["volatility"] = volatility
    return ConditionResult(met=met, reason=reason, actual_value=volatility, observed_data=observed)


def _evaluate_trend(condition: Condition, quote: MarketQuote) -> ConditionResult:
    try:
        expected = parse_trend(condition.value)
    except ValueError as exc:
        return not_met(str(exc))

    trend = derive_trend(quote.change_24h)
    matches = trend == expected
    met = not matches if condition.operator == ConditionOperator.NE else matches
    relation = "not " if condition.operator == ConditionOperator.NE else ""
    reason = f"{quote.symbol} trend is {trend.value} (expected {relation}{expected.value})"
    observed = _observed(quote)
    observed["trend"] = trend.value
    return ConditionResult(met=met, reason=reason, actual_value=trend.value, observed_data=observed)


def _observed(quote: MarketQuote) -> Dict[str, object]:
    return {
        "symbol": quote.symbol,
        "price": quote.price,
        "change_24h": quote.change_24h,
    }
