"""Structural and semantic validation of draft execution plans.

Drafts arrive from the proposal service as loosely typed mappings. Nothing in
them is trusted: every field is checked for presence and type before a typed
``Plan`` is built. Problems accumulate instead of short-circuiting so the
caller sees all of them at once.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .models import (
    ConditionKind,
    ConditionOperator,
    Plan,
    parse_condition_kind,
    parse_operator,
    parse_trend,
)
from .policy import ValidationPolicy
from .risk import RiskLevel, highest_risk, parse_risk_level

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

Draft = Union[Mapping[str, Any], Plan]


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]

    def to_dict(self) -> Dict[str, object]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


class PlanValidationError(ValueError):
    """Raised when a plan with validation errors is about to be used."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__("Plan validation failed: " + "; ".join(result.errors))
        self.result = result

    @property
    def errors(self) -> Tuple[str, ...]:
        return self.result.errors


def is_valid_address(value: object) -> bool:
    return isinstance(value, str) and bool(ADDRESS_PATTERN.match(value))


def parse_amount(value: object) -> Decimal:
    """Parse a token amount from its string form into a finite decimal."""

    if not isinstance(value, str) or not value.strip():
        raise ValueError("Amount must be a non-empty string.")
    try:
        amount = Decimal(value.strip())
    except InvalidOperation as exc:
        raise ValueError(f"Amount '{value}' is not a number.") from exc
    if not amount.is_finite():
        raise ValueError(f"Amount '{value}' is not a finite number.")
    return amount


def to_number(value: object) -> Optional[float]:
    """Return ``value`` as a float when it is numeric or a numeric string."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if number != number or number in (float("inf"), float("-inf")):
            return None
        return number
    return None


class PlanValidator:
    """Rejects draft plans before any side effect can occur."""

    def __init__(
        self,
        operation_names: Iterable[str],
        policy: Optional[ValidationPolicy] = None,
    ) -> None:
        self._operation_names = frozenset(operation_names)
        self._policy = policy or ValidationPolicy()

    @property
    def policy(self) -> ValidationPolicy:
        return self._policy

    @property
    def operation_names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._operation_names))

    def validate(self, draft: Draft) -> ValidationResult:
        if isinstance(draft, Plan):
            draft = draft.to_dict()

        errors: List[str] = []
        warnings: List[str] = []

        if not isinstance(draft, Mapping):
            errors.append("Plan must be an object")
            return ValidationResult(valid=False, errors=tuple(errors), warnings=())

        steps = _well_formed_steps(draft, errors)

        self._validate_schema(draft, steps, errors)
        self._validate_operations(steps, errors)
        self._validate_parameters(steps, errors, warnings)
        self._validate_risk_levels(draft, steps, warnings)
        self._validate_conditions(steps, errors)
        self._sanity_checks(steps, warnings)

        return ValidationResult(
            valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
        )

    def _validate_schema(
        self,
        draft: Mapping[str, Any],
        steps: List[Tuple[int, Mapping[str, Any]]],
        errors: List[str],
    ) -> None:
        if not _non_empty_string(draft.get("id")):
            errors.append("Plan must have a valid id")
        if not _non_empty_string(draft.get("raw_intent")):
            errors.append("Plan must have a valid raw intent")
        if not _non_empty_string(draft.get("normalized_intent")):
            errors.append("Plan must have a normalized intent")
        if _risk_or_none(draft.get("overall_risk")) is None:
            errors.append("Plan must have a valid overall risk level")
        for flag in ("requires_approval", "can_rollback"):
            if flag in draft and not isinstance(draft[flag], bool):
                errors.append(f"Plan field '{flag}' must be a boolean")
        created_at = draft.get("created_at")
        if created_at is not None and not _non_empty_string(created_at):
            errors.append("Plan created_at must be a timestamp string")

        seen_ids = set()
        for index, step in steps:
            prefix = _step_prefix(index)
            step_id = step.get("id")
            if not _non_empty_string(step_id):
                errors.append(f"{prefix}: Missing or invalid step id")
            elif step_id in seen_ids:
                errors.append(f"{prefix}: Duplicate step id '{step_id}'")
            else:
                seen_ids.add(step_id)
            if not _non_empty_string(step.get("operation_name")):
                errors.append(f"{prefix}: Missing operation name")
            if not _non_empty_string(step.get("human_action")):
                errors.append(f"{prefix}: Missing action description")
            if not isinstance(step.get("parameters"), Mapping):
                errors.append(f"{prefix}: Missing or invalid parameters")
            if _risk_or_none(step.get("risk")) is None:
                errors.append(f"{prefix}: Invalid risk level")
            if not _optional_string(step.get("description")):
                errors.append(f"{prefix}: Step description must be a string")
            conditions = step.get("conditions")
            if conditions is not None and not isinstance(conditions, list):
                errors.append(f"{prefix}: Conditions must be a list")

    def _validate_operations(
        self, steps: List[Tuple[int, Mapping[str, Any]]], errors: List[str]
    ) -> None:
        for index, step in steps:
            name = step.get("operation_name")
            if _non_empty_string(name) and name not in self._operation_names:
                errors.append(f"{_step_prefix(index)}: Unknown operation '{name}'")

    def _validate_parameters(
        self,
        steps: List[Tuple[int, Mapping[str, Any]]],
        errors: List[str],
        warnings: List[str],
    ) -> None:
        for index, step in steps:
            parameters = step.get("parameters")
            if not isinstance(parameters, Mapping):
                continue
            name = step.get("operation_name")
            prefix = _step_prefix(index)
            if self._policy.is_transfer(name):
                self._check_transfer(parameters.get("to"), parameters.get("amount"), prefix, errors, warnings)
            elif self._policy.is_batch_transfer(name):
                self._check_batch_transfer(parameters, prefix, errors, warnings)

    def _check_transfer(
        self,
        to: object,
        amount: object,
        prefix: str,
        errors: List[str],
        warnings: List[str],
    ) -> None:
        if not is_valid_address(to):
            errors.append(f"{prefix}: Invalid recipient address")
        try:
            value = parse_amount(amount)
        except ValueError:
            errors.append(f"{prefix}: Invalid amount")
            return
        if value <= 0:
            errors.append(f"{prefix}: Amount must be a positive number")
        elif value > self._policy.large_transfer_threshold:
            warnings.append(
                f"{prefix}: Large transfer amount ({amount} {self._policy.token_symbol})"
            )

    def _check_batch_transfer(
        self,
        parameters: Mapping[str, Any],
        prefix: str,
        errors: List[str],
        warnings: List[str],
    ) -> None:
        recipients = parameters.get("recipients")
        amounts = parameters.get("amounts")
        if not isinstance(recipients, list) or not isinstance(amounts, list):
            errors.append(f"{prefix}: Batch transfer requires 'recipients' and 'amounts' lists")
            return
        if not recipients:
            errors.append(f"{prefix}: Batch transfer requires at least one recipient")
            return
        if len(recipients) != len(amounts):
            errors.append(f"{prefix}: Recipients and amounts must have the same length")
            return
        for position, (to, amount) in enumerate(zip(recipients, amounts), start=1):
            self._check_transfer(to, amount, f"{prefix}, Recipient {position}", errors, warnings)

    def _validate_risk_levels(
        self,
        draft: Mapping[str, Any],
        steps: List[Tuple[int, Mapping[str, Any]]],
        warnings: List[str],
    ) -> None:
        overall = _risk_or_none(draft.get("overall_risk"))
        step_risks = [_risk_or_none(step.get("risk")) for _, step in steps]
        if overall is None or not step_risks or None in step_risks:
            return

        highest = highest_risk(step_risks)
        if highest != overall:
            warnings.append(
                f"Overall risk level ({overall.value}) doesn't match highest step risk ({highest.value})"
            )
        if overall == RiskLevel.CRITICAL:
            warnings.append("CRITICAL risk operation - requires manual review")

    def _validate_conditions(
        self, steps: List[Tuple[int, Mapping[str, Any]]], errors: List[str]
    ) -> None:
        for index, step in steps:
            conditions = step.get("conditions")
            if not isinstance(conditions, list):
                continue
            for cond_index, condition in enumerate(conditions, start=1):
                prefix = f"{_step_prefix(index)}, Condition {cond_index}"
                if not isinstance(condition, Mapping):
                    errors.append(f"{prefix}: Condition must be an object")
                    continue
                _check_condition(condition, prefix, errors)

    def _sanity_checks(
        self, steps: List[Tuple[int, Mapping[str, Any]]], warnings: List[str]
    ) -> None:
        if len(steps) > self._policy.max_steps:
            warnings.append(
                f"Plan has {len(steps)} steps - consider breaking into smaller operations"
            )

        transfer_steps = [
            (index, step)
            for index, step in steps
            if self._policy.moves_funds(step.get("operation_name"))
        ]
        if len(transfer_steps) > self._policy.max_transfer_steps:
            warnings.append(
                f"Plan includes {len(transfer_steps)} transfers - verify this is intentional"
            )

        for index, step in transfer_steps:
            if not _has_balance_condition(step):
                warnings.append(
                    f"{_step_prefix(index)}: Transfer without balance check condition"
                )


def _check_condition(condition: Mapping[str, Any], prefix: str, errors: List[str]) -> None:
    kind: Optional[ConditionKind] = None
    operator: Optional[ConditionOperator] = None

    try:
        kind = parse_condition_kind(condition.get("kind"))
    except ValueError:
        errors.append(f"{prefix}: Invalid condition type '{condition.get('kind')}'")

    if not _non_empty_string(condition.get("field")):
        errors.append(f"{prefix}: Missing condition field")

    raw_operator = condition.get("operator")
    if raw_operator is None:
        errors.append(f"{prefix}: Missing condition operator")
    else:
        try:
            operator = parse_operator(raw_operator)
        except ValueError:
            errors.append(f"{prefix}: Invalid condition operator '{raw_operator}'")

    value = condition.get("value")
    if value is None:
        errors.append(f"{prefix}: Missing condition value")

    if not _optional_string(condition.get("description")):
        errors.append(f"{prefix}: Condition description must be a string")

    if kind is None:
        return

    if value is not None:
        if kind == ConditionKind.TREND:
            try:
                parse_trend(value)
            except ValueError:
                errors.append(
                    f"{prefix}: Trend condition value must be one of bullish, bearish, neutral"
                )
            if operator is not None and operator not in (ConditionOperator.EQ, ConditionOperator.NE):
                errors.append(f"{prefix}: Trend condition only supports = and != operators")
        elif kind != ConditionKind.CUSTOM and to_number(value) is None:
            errors.append(f"{prefix}: Condition value must be numeric")

    if kind.is_market and not _non_empty_string(condition.get("symbol")):
        errors.append(f"{prefix}: Market condition requires 'symbol' field")


def _well_formed_steps(
    draft: Mapping[str, Any], errors: List[str]
) -> List[Tuple[int, Mapping[str, Any]]]:
    raw_steps = draft.get("steps")
    if not isinstance(raw_steps, list) or not raw_steps:
        errors.append("Plan must have at least one step")
        return []

    steps = []
    for index, step in enumerate(raw_steps, start=1):
        if not isinstance(step, Mapping):
            errors.append(f"{_step_prefix(index)}: Step must be an object")
            continue
        steps.append((index, step))
    return steps


def _has_balance_condition(step: Mapping[str, Any]) -> bool:
    conditions = step.get("conditions")
    if not isinstance(conditions, list):
        return False
    for condition in conditions:
        if not isinstance(condition, Mapping):
            continue
        try:
            if parse_condition_kind(condition.get("kind")) == ConditionKind.BALANCE:
                return True
        except ValueError:
            continue
    return False


def _risk_or_none(value: object) -> Optional[RiskLevel]:
    try:
        return parse_risk_level(value)
    except ValueError:
        return None


def _non_empty_string(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _optional_string(value: object) -> bool:
    return value is None or isinstance(value, str)


def _step_prefix(index: int) -> str:
    return f"Step {index}"
