"""Domain models for validated payment execution plans."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .risk import RiskLevel


class StepTransitionError(RuntimeError):
    """Raised when a step status would move backwards or be revisited."""


class StepStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


_TRANSITIONS: Dict[StepStatus, Tuple[StepStatus, ...]] = {
    StepStatus.PENDING: (StepStatus.IN_PROGRESS, StepStatus.SKIPPED),
    StepStatus.IN_PROGRESS: (StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.SKIPPED),
    StepStatus.COMPLETED: (),
    StepStatus.FAILED: (),
    StepStatus.SKIPPED: (),
}


class ConditionKind(Enum):
    BALANCE = "balance"
    PRICE = "price"
    VOLATILITY = "volatility"
    TREND = "trend"
    CUSTOM = "custom"

    @property
    def is_market(self) -> bool:
        return self in (ConditionKind.PRICE, ConditionKind.VOLATILITY, ConditionKind.TREND)


_KIND_ALIASES: Dict[str, ConditionKind] = {
    "balance_check": ConditionKind.BALANCE,
    "price_check": ConditionKind.PRICE,
    "volatility_check": ConditionKind.VOLATILITY,
    "trend_check": ConditionKind.TREND,
}


class ConditionOperator(Enum):
    GT = ">"
    LT = "<"
    EQ = "="
    NE = "!="
    GTE = ">="
    LTE = "<="

    @property
    def symbol(self) -> str:
        return _OPERATOR_SYMBOLS.get(self, self.value)


_OPERATOR_SYMBOLS: Dict[ConditionOperator, str] = {
    ConditionOperator.NE: "≠",
    ConditionOperator.GTE: "≥",
    ConditionOperator.LTE: "≤",
}

_OPERATOR_ALIASES: Dict[str, ConditionOperator] = {
    "gt": ConditionOperator.GT,
    "lt": ConditionOperator.LT,
    "eq": ConditionOperator.EQ,
    "==": ConditionOperator.EQ,
    "neq": ConditionOperator.NE,
    "ne": ConditionOperator.NE,
    "≠": ConditionOperator.NE,
    "gte": ConditionOperator.GTE,
    "≥": ConditionOperator.GTE,
    "lte": ConditionOperator.LTE,
    "≤": ConditionOperator.LTE,
}


class Trend(Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


def parse_condition_kind(value: object) -> ConditionKind:
    if isinstance(value, ConditionKind):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _KIND_ALIASES:
            return _KIND_ALIASES[normalized]
        for kind in ConditionKind:
            if kind.value == normalized:
                return kind
    raise ValueError(f"Invalid condition type '{value}'")


def parse_operator(value: object) -> ConditionOperator:
    if isinstance(value, ConditionOperator):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _OPERATOR_ALIASES:
            return _OPERATOR_ALIASES[normalized]
        for operator in ConditionOperator:
            if operator.value == normalized:
                return operator
    raise ValueError(f"Invalid condition operator '{value}'")


def parse_trend(value: object) -> Trend:
    if isinstance(value, Trend):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        for trend in Trend:
            if trend.value == normalized:
                return trend
    raise ValueError(f"Invalid trend '{value}'")


ConditionValue = Union[str, int, float]


@dataclass(frozen=True)
class Condition:
    kind: ConditionKind
    field: str
    operator: ConditionOperator
    value: ConditionValue
    description: str = ""
    symbol: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "kind": self.kind.value,
            "field": self.field,
            "operator": self.operator.value,
            "value": self.value,
            "description": self.description,
        }
        if self.symbol is not None:
            data["symbol"] = self.symbol
        return data

    def describe(self) -> str:
        if self.description:
            return self.description
        subject = f"{self.symbol} {self.field}" if self.symbol else self.field
        return f"{self.kind.value}: {subject} {self.operator.symbol} {self.value}"


@dataclass
class PlanStep:
    """One mapped operation plus its guarding conditions.

    Only ``status``, ``result`` and ``error`` change after validation, and only
    through the transition helpers below.
    """

    id: str
    human_action: str
    operation_name: str
    parameters: Dict[str, Any]
    risk: RiskLevel
    conditions: Tuple[Condition, ...] = ()
    description: str = ""
    status: StepStatus = StepStatus.PENDING
    result: Any = None
    error: Optional[str] = None

    def start(self) -> None:
        self._transition(StepStatus.IN_PROGRESS)

    def complete(self, result: Any) -> None:
        self._transition(StepStatus.COMPLETED)
        self.result = result

    def fail(self, error: str, result: Any = None) -> None:
        self._transition(StepStatus.FAILED)
        self.error = error
        self.result = result

    def skip(self, reason: str) -> None:
        self._transition(StepStatus.SKIPPED)
        self.error = reason

    def _transition(self, target: StepStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise StepTransitionError(
                f"Step {self.id} cannot move from {self.status.value} to {target.value}."
            )
        self.status = target

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "id": self.id,
            "human_action": self.human_action,
            "operation_name": self.operation_name,
            "parameters": dict(self.parameters),
            "conditions": [condition.to_dict() for condition in self.conditions],
            "risk": self.risk.value,
            "description": self.description,
            "status": self.status.value,
        }
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class Plan:
    id: str
    raw_intent: str
    normalized_intent: str
    steps: Tuple[PlanStep, ...]
    overall_risk: RiskLevel
    created_at: str
    requires_approval: bool = True
    can_rollback: bool = False
    estimated_duration: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "id": self.id,
            "raw_intent": self.raw_intent,
            "normalized_intent": self.normalized_intent,
            "steps": [step.to_dict() for step in self.steps],
            "overall_risk": self.overall_risk.value,
            "created_at": self.created_at,
            "requires_approval": self.requires_approval,
            "can_rollback": self.can_rollback,
        }
        if self.estimated_duration is not None:
            data["estimated_duration"] = self.estimated_duration
        return data
