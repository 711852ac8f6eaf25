from .draft import PreparedPlan, plan_from_draft, validate_and_prepare
from .models import (
    Condition,
    ConditionKind,
    ConditionOperator,
    Plan,
    PlanStep,
    StepStatus,
    StepTransitionError,
    Trend,
)
from .planner import TransferIntent, TransferPlanner
from .policy import ValidationPolicy
from .risk import RiskLevel, classify_transfer_amount, highest_risk, is_abort_tier, risk_rank
from .validator import PlanValidationError, PlanValidator, ValidationResult

__all__ = [
    "Condition",
    "ConditionKind",
    "ConditionOperator",
    "Plan",
    "PlanStep",
    "PlanValidationError",
    "PlanValidator",
    "PreparedPlan",
    "RiskLevel",
    "StepStatus",
    "StepTransitionError",
    "TransferIntent",
    "TransferPlanner",
    "Trend",
    "ValidationPolicy",
    "ValidationResult",
    "classify_transfer_amount",
    "highest_risk",
    "is_abort_tier",
    "plan_from_draft",
    "risk_rank",
    "validate_and_prepare",
]
