"""Tests for turning drafts into typed plans and for transfer proposals."""

import unittest

from execution_plan.draft import validate_and_prepare
from execution_plan.models import ConditionKind, ConditionOperator, StepStatus
from execution_plan.planner import TransferIntent, TransferPlanner
from execution_plan.risk import RiskLevel
from execution_plan.validator import PlanValidationError, PlanValidator

RECIPIENT = "0x" + "b" * 40


class TransferPlannerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.planner = TransferPlanner(
            id_provider=lambda: "plan-fixed",
            time_provider=lambda: "2024-01-01T00:00:00Z",
        )
        self.validator = PlanValidator(("getBalance", "transferToken"))

    def test_small_transfer_is_balance_guarded(self) -> None:
        draft = self.planner.plan(TransferIntent(to=RECIPIENT, amount="5"))
        self.assertEqual(draft["id"], "plan-fixed")
        self.assertEqual([step["operation_name"] for step in draft["steps"]], ["getBalance", "transferToken"])
        self.assertEqual(draft["steps"][1]["risk"], "medium")
        self.assertEqual(draft["overall_risk"], "medium")
        condition = draft["steps"][1]["conditions"][0]
        self.assertEqual((condition["kind"], condition["operator"], condition["value"]), ("balance", ">=", "5"))

    def test_large_transfer_is_critical(self) -> None:
        draft = self.planner.plan(TransferIntent(to=RECIPIENT, amount="1000000"))
        self.assertEqual(draft["overall_risk"], "critical")

    def test_rejects_non_positive_amount(self) -> None:
        with self.assertRaises(ValueError):
            self.planner.plan(TransferIntent(to=RECIPIENT, amount="0"))

    def test_proposal_passes_validation(self) -> None:
        draft = self.planner.plan(TransferIntent(to=RECIPIENT, amount="5"))
        result = self.validator.validate(draft)
        self.assertTrue(result.valid, result.errors)
        self.assertEqual(result.warnings, ())


class ValidateAndPrepareTests(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = PlanValidator(("getBalance", "transferToken"))
        self.draft = TransferPlanner(
            id_provider=lambda: "plan-42",
            time_provider=lambda: "2024-01-01T00:00:00Z",
        ).plan(TransferIntent(to=RECIPIENT, amount="12.5", token_symbol="USDC"))

    def test_builds_typed_pending_plan(self) -> None:
        prepared = validate_and_prepare(self.draft, self.validator)
        plan = prepared.plan
        self.assertEqual(plan.id, "plan-42")
        self.assertEqual(plan.overall_risk, RiskLevel.HIGH)
        self.assertEqual(plan.estimated_duration, "~6s")
        for step in plan.steps:
            self.assertEqual(step.status, StepStatus.PENDING)
            self.assertIsNone(step.result)
            self.assertIsNone(step.error)
        condition = plan.steps[1].conditions[0]
        self.assertEqual(condition.kind, ConditionKind.BALANCE)
        self.assertEqual(condition.operator, ConditionOperator.GTE)

    def test_parameters_are_copied(self) -> None:
        prepared = validate_and_prepare(self.draft, self.validator)
        prepared.plan.steps[1].parameters["amount"] = "999"
        self.assertEqual(self.draft["steps"][1]["parameters"]["amount"], "12.5")

    def test_round_trip_through_dict_revalidates(self) -> None:
        prepared = validate_and_prepare(self.draft, self.validator)
        self.assertTrue(self.validator.validate(prepared.plan).valid)

    def test_invalid_draft_raises_with_every_error(self) -> None:
        self.draft["steps"][1]["operation_name"] = "doesNotExist"
        self.draft["raw_intent"] = ""
        with self.assertRaises(PlanValidationError) as ctx:
            validate_and_prepare(self.draft, self.validator)
        self.assertEqual(len(ctx.exception.errors), 2)
        self.assertFalse(ctx.exception.result.valid)

    def test_missing_created_at_uses_time_provider(self) -> None:
        del self.draft["created_at"]
        prepared = validate_and_prepare(
            self.draft, self.validator, time_provider=lambda: "2030-05-05T00:00:00Z"
        )
        self.assertEqual(prepared.plan.created_at, "2030-05-05T00:00:00Z")


if __name__ == "__main__":
    unittest.main()
