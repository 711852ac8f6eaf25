from .comparison import EPSILON, compare
from .evaluator import ConditionEvaluator, evaluate_balance, evaluate_custom
from .market import MarketConditionEvaluator, derive_trend, derive_volatility
from .models import BalanceSource, ConditionContext, ConditionResult

__all__ = [
    "BalanceSource",
    "ConditionContext",
    "ConditionEvaluator",
    "ConditionResult",
    "EPSILON",
    "MarketConditionEvaluator",
    "compare",
    "derive_trend",
    "derive_volatility",
    "evaluate_balance",
    "evaluate_custom",
]
