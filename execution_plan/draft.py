"""Turn validated drafts into typed plans."""

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from .models import Condition, Plan, PlanStep, parse_condition_kind, parse_operator
from .risk import parse_risk_level
from .validator import PlanValidationError, PlanValidator, ValidationResult

SECONDS_PER_STEP = 3


@dataclass(frozen=True)
class PreparedPlan:
    plan: Plan
    validation: ValidationResult


def validate_and_prepare(
    draft: Mapping[str, Any],
    validator: PlanValidator,
    time_provider: Optional[Callable[[], str]] = None,
) -> PreparedPlan:
    """Validate an untrusted draft and build the typed plan it describes.

    Raises ``PlanValidationError`` carrying every error when the draft is
    rejected. Warnings travel with the prepared plan.
    """

    validation = validator.validate(draft)
    if not validation.valid:
        raise PlanValidationError(validation)
    plan = plan_from_draft(draft, time_provider=time_provider)
    return PreparedPlan(plan=plan, validation=validation)


def plan_from_draft(
    draft: Mapping[str, Any],
    time_provider: Optional[Callable[[], str]] = None,
) -> Plan:
    provider = time_provider or _utc_timestamp
    steps = tuple(_step_from_draft(step) for step in draft["steps"])
    created_at = draft.get("created_at") or provider()
    estimated_duration = draft.get("estimated_duration") or f"~{len(steps) * SECONDS_PER_STEP}s"
    return Plan(
        id=draft["id"],
        raw_intent=draft["raw_intent"],
        normalized_intent=draft["normalized_intent"],
        steps=steps,
        overall_risk=parse_risk_level(draft["overall_risk"]),
        created_at=created_at,
        requires_approval=draft.get("requires_approval", True),
        can_rollback=draft.get("can_rollback", False),
        estimated_duration=estimated_duration,
    )


def _step_from_draft(step: Mapping[str, Any]) -> PlanStep:
    return PlanStep(
        id=step["id"],
        human_action=step["human_action"],
        operation_name=step["operation_name"],
        parameters=copy.deepcopy(dict(step["parameters"])),
        risk=parse_risk_level(step["risk"]),
        conditions=tuple(_condition_from_draft(item) for item in step.get("conditions") or ()),
        description=step.get("description") or "",
    )


def _condition_from_draft(condition: Mapping[str, Any]) -> Condition:
    symbol = condition.get("symbol")
    return Condition(
        kind=parse_condition_kind(condition["kind"]),
        field=condition["field"],
        operator=parse_operator(condition["operator"]),
        value=condition["value"],
        description=condition.get("description") or "",
        symbol=symbol.strip().upper() if isinstance(symbol, str) and symbol.strip() else None,
    )


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
