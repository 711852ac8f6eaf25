from .engine import ABORTED_REASON, ExecutionEngine, PlanAlreadyExecutedError
from .models import (
    ConditionEvaluation,
    ExecutionOptions,
    ExecutionResult,
    ExecutionSummary,
    RunOutcome,
    StepDecision,
    StepOutcome,
)
from .registry import OperationRegistry, UnknownOperationError
from .runtime import Runtime, build_runtime
from .state import ExecutionState

__all__ = [
    "ABORTED_REASON",
    "ConditionEvaluation",
    "ExecutionEngine",
    "ExecutionOptions",
    "ExecutionResult",
    "ExecutionState",
    "ExecutionSummary",
    "OperationRegistry",
    "PlanAlreadyExecutedError",
    "RunOutcome",
    "Runtime",
    "StepDecision",
    "StepOutcome",
    "UnknownOperationError",
    "build_runtime",
]
