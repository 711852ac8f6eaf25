"""Sequential conditional execution of validated plans."""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from conditions.evaluator import ConditionEvaluator
from conditions.models import BalanceSource, ConditionContext
from execution_plan.models import Plan, PlanStep, StepStatus
from execution_plan.risk import is_abort_tier
from execution_plan.validator import PlanValidationError, PlanValidator

from .models import (
    ConditionEvaluation,
    ExecutionOptions,
    ExecutionResult,
    ExecutionSummary,
    StepDecision,
    StepOutcome,
)
from .registry import OperationRegistry
from .state import ExecutionState

logger = logging.getLogger(__name__)

ABORTED_REASON = "Execution aborted due to previous failure"


class PlanAlreadyExecutedError(RuntimeError):
    """Raised when a plan with non-pending steps is handed to the engine."""


class ExecutionEngine:
    """Walks a plan's steps in order under condition and risk gates.

    Each step is evaluated only after the previous one has settled. A skipped
    or failed step of ``high`` or ``critical`` risk aborts the plan: every
    remaining step is skipped without evaluation. Lower-risk failures are
    recorded and execution continues.

    Runs on one engine are serialized; a second ``execute`` call waits until
    the running plan has finished writing the shared execution state.
    """

    def __init__(
        self,
        registry: OperationRegistry,
        condition_evaluator: ConditionEvaluator,
        ledger: BalanceSource,
        account: str,
        token_address: str,
        validator: Optional[PlanValidator] = None,
        time_provider: Optional[Callable[[], str]] = None,
    ) -> None:
        self._registry = registry
        self._evaluator = condition_evaluator
        self._ledger = ledger
        self._account = account
        self._token_address = token_address
        self._validator = validator
        self._time_provider = time_provider or _utc_timestamp
        self._state = ExecutionState()
        self._run_lock = threading.Lock()

    @property
    def registry(self) -> OperationRegistry:
        return self._registry

    @property
    def execution_state(self) -> Dict[str, Any]:
        return self._state.snapshot()

    def clear_execution_state(self) -> None:
        self._state.clear()

    def execute(self, plan: Plan, options: Optional[ExecutionOptions] = None) -> ExecutionResult:
        options = options or ExecutionOptions()
        if self._validator is not None:
            validation = self._validator.validate(plan)
            if not validation.valid:
                raise PlanValidationError(validation)

        with self._run_lock:
            return self._execute(plan, options)

    def _execute(self, plan: Plan, options: ExecutionOptions) -> ExecutionResult:
        started = [step.id for step in plan.steps if step.status != StepStatus.PENDING]
        if started:
            raise PlanAlreadyExecutedError(
                f"Plan {plan.id} has steps that already ran: {', '.join(started)}"
            )

        logger.info("Executing plan %s (%d steps, risk %s)", plan.id, len(plan.steps), plan.overall_risk.value)
        aborted = False
        decisions: List[StepDecision] = []
        evaluations: List[ConditionEvaluation] = []
        for step in plan.steps:
            if aborted:
                step.skip(ABORTED_REASON)
                decisions.append(
                    StepDecision(step.id, StepOutcome.ABORT, ABORTED_REASON, self._time_provider())
                )
                logger.info("Step %s skipped: %s", step.id, ABORTED_REASON)
                continue

            decision, checked = self._run_step(step)
            decisions.append(decision)
            evaluations.extend(checked)
            if (
                decision.decision in (StepOutcome.SKIP, StepOutcome.FAIL)
                and options.stop_on_failure
                and is_abort_tier(step.risk)
            ):
                aborted = True
                logger.warning(
                    "Aborting plan %s after %s-risk step %s: %s",
                    plan.id,
                    step.risk.value,
                    step.id,
                    decision.reason,
                )

        summary = _summarize(plan, aborted)
        logger.info(
            "Plan %s finished: %s (%d completed, %d failed, %d skipped)",
            plan.id,
            summary.outcome.value,
            summary.completed,
            summary.failed,
            summary.skipped,
        )
        return ExecutionResult(
            plan=plan,
            execution_state=self._state.snapshot(),
            summary=summary,
            decisions=tuple(decisions),
            condition_evaluations=tuple(evaluations),
        )

    def _run_step(self, step: PlanStep) -> Tuple[StepDecision, List[ConditionEvaluation]]:
        step.start()
        context = ConditionContext(
            ledger=self._ledger,
            account=self._account,
            token_address=self._token_address,
            state=self._state,
        )
        checked: List[ConditionEvaluation] = []
        for condition in step.conditions:
            result = self._evaluator.evaluate(condition, context)
            checked.append(
                ConditionEvaluation(
                    step_id=step.id,
                    condition=condition,
                    met=result.met,
                    actual_value=result.actual_value,
                    reason=result.reason,
                    timestamp=self._time_provider(),
                )
            )
            logger.debug("Step %s condition %s: %s", step.id, condition.describe(), result.reason)
            if condition.kind.is_market and result.observed_data:
                self._state.record_market(result.observed_data)
            if not result.met:
                step.skip(result.reason)
                logger.info("Step %s skipped: %s", step.id, result.reason)
                return self._decide(step, StepOutcome.SKIP, result.reason), checked

        try:
            output = self._registry.invoke(step.operation_name, step.parameters)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            # Operations that moved funds before failing expose what they submitted.
            partial = getattr(exc, "partial_result", None)
            step.fail(message, result=partial)
            if partial is not None:
                self._state.record_step(step.id, step.status.value, partial)
            logger.warning("Step %s (%s) failed: %s", step.id, step.operation_name, message)
            return self._decide(step, StepOutcome.FAIL, message), checked

        step.complete(output)
        self._state.record_step(step.id, step.status.value, output)
        logger.info("Step %s (%s) completed", step.id, step.operation_name)
        return self._decide(step, StepOutcome.EXECUTE, f"{step.operation_name} completed"), checked

    def _decide(self, step: PlanStep, outcome: StepOutcome, reason: str) -> StepDecision:
        return StepDecision(step.id, outcome, reason, self._time_provider())


def _summarize(plan: Plan, aborted: bool) -> ExecutionSummary:
    statuses = [step.status for step in plan.steps]
    return ExecutionSummary(
        total=len(statuses),
        completed=statuses.count(StepStatus.COMPLETED),
        failed=statuses.count(StepStatus.FAILED),
        skipped=statuses.count(StepStatus.SKIPPED),
        aborted=aborted,
    )


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
