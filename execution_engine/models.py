"""Execution run options, decisions and results."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple

from execution_plan.models import Condition, ConditionValue, Plan


class StepOutcome(Enum):
    EXECUTE = "execute"
    SKIP = "skip"
    FAIL = "fail"
    ABORT = "abort"


class RunOutcome(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class ExecutionOptions:
    # When False a high or critical failure no longer aborts the rest of the plan.
    stop_on_failure: bool = True


@dataclass(frozen=True)
class StepDecision:
    step_id: str
    decision: StepOutcome
    reason: str
    timestamp: str = ""

    def to_dict(self) -> Dict[str, object]:
        return {
            "step_id": self.step_id,
            "decision": self.decision.value,
            "reason": self.reason,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ConditionEvaluation:
    """Audit record of one condition check made while running a step."""

    step_id: str
    condition: Condition
    met: bool
    actual_value: Any
    reason: str
    timestamp: str = ""

    @property
    def expected_value(self) -> ConditionValue:
        return self.condition.value

    def to_dict(self) -> Dict[str, object]:
        return {
            "step_id": self.step_id,
            "condition": self.condition.describe(),
            "kind": self.condition.kind.value,
            "operator": self.condition.operator.value,
            "met": self.met,
            "actual_value": self.actual_value,
            "expected_value": self.expected_value,
            "reason": self.reason,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ExecutionSummary:
    total: int
    completed: int
    failed: int
    skipped: int
    aborted: bool

    @property
    def outcome(self) -> RunOutcome:
        if self.aborted:
            return RunOutcome.ABORTED
        if self.completed == self.total:
            return RunOutcome.SUCCESS
        if self.completed == 0:
            return RunOutcome.FAILED
        return RunOutcome.PARTIAL

    def to_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "aborted": self.aborted,
            "outcome": self.outcome.value,
        }


@dataclass(frozen=True)
class ExecutionResult:
    plan: Plan
    execution_state: Dict[str, Any]
    summary: ExecutionSummary
    decisions: Tuple[StepDecision, ...]
    condition_evaluations: Tuple[ConditionEvaluation, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "plan": self.plan.to_dict(),
            "execution_state": dict(self.execution_state),
            "summary": self.summary.to_dict(),
            "decisions": [decision.to_dict() for decision in self.decisions],
            "condition_evaluations": [item.to_dict() for item in self.condition_evaluations],
        }
