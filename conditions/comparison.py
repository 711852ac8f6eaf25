"""Numeric comparison shared by every condition kind."""

from execution_plan.models import ConditionOperator

# Absorbs decimal strings that do not round-trip exactly through float.
EPSILON = 1e-4


def compare(actual: float, operator: ConditionOperator, expected: float) -> bool:
    close = abs(actual - expected) < EPSILON
    if operator == ConditionOperator.GT:
        return actual > expected and not close
    if operator == ConditionOperator.LT:
        return actual < expected and not close
    if operator == ConditionOperator.EQ:
        return close
    if operator == ConditionOperator.NE:
        return not close
    if operator == ConditionOperator.GTE:
        return actual > expected or close
    if operator == ConditionOperator.LTE:
        return actual < expected or close
    raise ValueError(f"Unsupported operator: {operator!r}")
