"""Behaviour tests for sequential conditional plan execution."""

import threading
import unittest

from conditions.evaluator import ConditionEvaluator
from conditions.market import MarketConditionEvaluator
from execution_adapter.ethereum.simulator import SimulatedLedger
from execution_engine.engine import ABORTED_REASON, ExecutionEngine, PlanAlreadyExecutedError
from execution_engine.models import ExecutionOptions, RunOutcome, StepOutcome
from execution_engine.registry import OperationRegistry
from execution_engine.runtime import build_runtime
from execution_plan.draft import plan_from_draft
from execution_plan.models import StepStatus
from execution_plan.validator import PlanValidationError, PlanValidator
from market_data.models import MarketQuote
from settings.config import EngineSettings

ACCOUNT = "0x" + "a" * 40
RECIPIENT = "0x" + "b" * 40
TOKEN = "0x" + "c" * 40


def _step(step_id, operation, risk="low", parameters=None, conditions=None):
    return {
        "id": step_id,
        "human_action": f"Run {operation}",
        "operation_name": operation,
        "parameters": parameters or {},
        "conditions": conditions or [],
        "risk": risk,
    }


def _balance_guard(amount):
    return {"kind": "balance", "field": "balance", "operator": ">=", "value": amount}


def _plan(steps, overall="low"):
    return plan_from_draft(
        {
            "id": "plan-test",
            "raw_intent": "test intent",
            "normalized_intent": "test intent",
            "overall_risk": overall,
            "created_at": "2024-01-01T00:00:00Z",
            "steps": steps,
        }
    )


def _transfer_plan(amount, risk):
    return _plan(
        [
            _step("s1", "getBalance"),
            _step(
                "s2",
                "transferToken",
                risk=risk,
                parameters={"to": RECIPIENT, "amount": amount},
                conditions=[_balance_guard(amount)],
            ),
        ],
        overall=risk,
    )


class FakeMarketClient:
    def connect(self):
        return None

    def get_quote(self, symbol):
        return MarketQuote(symbol=symbol, price=0.12, change_24h=4.0)


class RuntimeExecutionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ledger = SimulatedLedger(ACCOUNT, balances={TOKEN: "100"})
        settings = EngineSettings(
            account_address=ACCOUNT,
            token_address=TOKEN,
            nonce_release_delay=0,
        )
        self.runtime = build_runtime(
            settings,
            self.ledger,
            market_client=FakeMarketClient(),
            time_provider=lambda: "2024-01-01T00:00:05Z",
        )
        self.engine = self.runtime.engine

    def test_balance_guarded_transfer_completes(self) -> None:
        result = self.engine.execute(_transfer_plan("5", "medium"))

        self.assertEqual([step.status for step in result.plan.steps], [StepStatus.COMPLETED] * 2)
        self.assertEqual(result.summary.completed, 2)
        self.assertFalse(result.summary.aborted)
        self.assertEqual(result.summary.outcome, RunOutcome.SUCCESS)
        self.assertEqual(result.execution_state["current_balance"], "100")
        self.assertEqual(result.execution_state["balance_symbol"], "USDC")
        self.assertEqual(result.execution_state["last_tx_hash"], self.ledger.submissions[0].tx_hash)
        self.assertEqual(result.execution_state["last_transfer_amount"], "5")
        self.assertEqual(result.execution_state["step_s2_status"], "completed")
        self.assertEqual(self.ledger.get_balance(TOKEN, ACCOUNT).amount, "95")

    def test_unmet_critical_guard_aborts_plan(self) -> None:
        self.ledger.set_balance(TOKEN, ACCOUNT, "50")
        plan = _transfer_plan("1000000", "critical")

        result = self.engine.execute(plan)

        self.assertEqual(plan.steps[0].status, StepStatus.COMPLETED)
        self.assertEqual(plan.steps[1].status, StepStatus.SKIPPED)
        self.assertIn("Insufficient balance", plan.steps[1].error)
        self.assertEqual(result.summary.completed, 1)
        self.assertEqual(result.summary.skipped, 1)
        self.assertTrue(result.summary.aborted)
        self.assertEqual(result.summary.outcome, RunOutcome.ABORTED)
        self.assertEqual(self.ledger.submissions, ())

    def test_market_observations_are_recorded(self) -> None:
        plan = _plan(
            [
                _step(
                    "s1",
                    "getBalance",
                    conditions=[
                        {
                            "kind": "price",
                            "field": "price",
                            "operator": ">",
                            "value": "0.10",
                            "symbol": "cro",
                        }
                    ],
                )
            ]
        )
        result = self.engine.execute(plan)
        self.assertEqual(result.summary.completed, 1)
        self.assertEqual(result.execution_state["market_CRO"]["price"], 0.12)

    def test_later_step_reads_earlier_result(self) -> None:
        plan = _plan(
            [
                _step("s1", "getBalance"),
                _step(
                    "s2",
                    "getNextNonce",
                    conditions=[
                        {"kind": "custom", "field": "current_balance", "operator": ">", "value": "99"}
                    ],
                ),
            ]
        )
        result = self.engine.execute(plan)
        self.assertEqual(result.summary.completed, 2)
        self.assertEqual(result.execution_state["step_s2_result"]["nonce"], 0)

    def test_invalid_plan_is_refused_before_side_effects(self) -> None:
        plan = _plan([_step("s1", "doesNotExist"), _step("s2", "getBalance")])
        with self.assertRaises(PlanValidationError):
            self.engine.execute(plan)
        self.assertTrue(all(step.status == StepStatus.PENDING for step in plan.steps))
        self.assertEqual(self.engine.execution_state, {})

    def test_plan_cannot_run_twice(self) -> None:
        plan = _transfer_plan("5", "medium")
        self.engine.execute(plan)
        with self.assertRaises(PlanAlreadyExecutedError):
            self.engine.execute(plan)
        self.assertEqual(len(self.ledger.submissions), 1)

    def test_state_persists_until_cleared(self) -> None:
        self.engine.execute(_plan([_step("s1", "getBalance")]))
        self.engine.execute(_plan([_step("s9", "getNextNonce")]))
        state = self.engine.execution_state
        self.assertIn("step_s1_result", state)
        self.assertIn("step_s9_result", state)

        self.engine.clear_execution_state()
        self.assertEqual(self.engine.execution_state, {})

    def test_consecutive_transfers_use_consecutive_nonces(self) -> None:
        plan = _plan(
            [
                _step(
                    f"t{index}",
                    "transferToken",
                    risk="medium",
                    parameters={"to": RECIPIENT, "amount": "1"},
                    conditions=[_balance_guard("1")],
                )
                for index in range(3)
            ],
            overall="medium",
        )
        result = self.engine.execute(plan)
        self.assertEqual(result.summary.completed, 3)
        self.assertEqual([item.nonce for item in self.ledger.submissions], [0, 1, 2])

    def test_condition_checks_are_kept_for_audit(self) -> None:
        result = self.engine.execute(_transfer_plan("5", "medium"))

        self.assertEqual(len(result.condition_evaluations), 1)
        evaluation = result.condition_evaluations[0]
        self.assertEqual(evaluation.step_id, "s2")
        self.assertTrue(evaluation.met)
        self.assertEqual(evaluation.actual_value, "100")
        self.assertEqual(evaluation.expected_value, "5")
        self.assertIn("meets requirement", evaluation.reason)
        self.assertEqual(evaluation.timestamp, "2024-01-01T00:00:05Z")
        self.assertEqual(
            [decision.timestamp for decision in result.decisions], ["2024-01-01T00:00:05Z"] * 2
        )

        payload = result.to_dict()
        self.assertEqual(payload["condition_evaluations"][0]["actual_value"], "100")
        self.assertEqual(payload["condition_evaluations"][0]["expected_value"], "5")
        self.assertEqual(payload["decisions"][1]["timestamp"], "2024-01-01T00:00:05Z")

    def test_unmet_condition_is_kept_for_audit(self) -> None:
        self.ledger.set_balance(TOKEN, ACCOUNT, "2")
        result = self.engine.execute(_transfer_plan("5", "medium"))
        evaluation = result.condition_evaluations[0]
        self.assertFalse(evaluation.met)
        self.assertEqual(evaluation.actual_value, "2")
        self.assertEqual(evaluation.reason, result.plan.steps[1].error)

    def test_partial_batch_failure_records_submitted_transfers(self) -> None:
        other = "0x" + "d" * 40
        plan = _plan(
            [
                _step(
                    "b1",
                    "batchTransfer",
                    risk="medium",
                    parameters={"recipients": [RECIPIENT, other], "amounts": ["40", "90"]},
                )
            ],
            overall="medium",
        )
        result = self.engine.execute(plan)

        step = plan.steps[0]
        self.assertEqual(step.status, StepStatus.FAILED)
        self.assertIn("recipient 2 of 2", step.error)
        first_hash = self.ledger.submissions[0].tx_hash
        self.assertEqual(step.result["tx_hashes"], [first_hash])
        self.assertEqual(result.execution_state["last_tx_hash"], first_hash)
        self.assertEqual(result.execution_state["last_transfer_amount"], "40")
        self.assertEqual(result.execution_state["step_b1_status"], "failed")


class ConcurrentExecutionTests(unittest.TestCase):
    def test_shared_engine_survives_concurrent_runs_and_readers(self) -> None:
        ledger = SimulatedLedger(ACCOUNT, balances={TOKEN: "100"})
        settings = EngineSettings(account_address=ACCOUNT, token_address=TOKEN, nonce_release_delay=0)
        engine = build_runtime(settings, ledger).engine
        errors = []
        outcomes = []
        lock = threading.Lock()
        running = threading.Event()
        running.set()

        def runner(worker):
            for round_index in range(10):
                plan = _plan(
                    [_step(f"w{worker}-r{round_index}-{index}", "getBalance") for index in range(20)]
                )
                try:
                    result = engine.execute(plan)
                except Exception as exc:
                    with lock:
                        errors.append(repr(exc))
                    continue
                with lock:
                    outcomes.append(result.summary.outcome)

        def reader():
            while running.is_set():
                try:
                    state = engine.execution_state
                    list(state)
                except Exception as exc:
                    with lock:
                        errors.append(repr(exc))

        poller = threading.Thread(target=reader)
        poller.start()
        workers = [threading.Thread(target=runner, args=(worker,)) for worker in range(3)]
        for thread in workers:
            thread.start()
        for thread in workers:
            thread.join(timeout=30)
        running.clear()
        poller.join(timeout=5)

        self.assertEqual(errors, [])
        self.assertEqual(outcomes, [RunOutcome.SUCCESS] * 30)
        self.assertEqual(len(engine.execution_state), 3 * 10 * 20 * 2 + 2)


class RecordingOperations:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def registry(self):
        registry = OperationRegistry()
        for name in ("readA", "readB", "write", "explode"):
            registry.register(name, self._operation(name))
        return registry

    def _operation(self, name):
        def run(parameters):
            self.calls.append(name)
            if name in self.failing:
                raise RuntimeError(f"{name} rejected by ledger")
            return {"operation": name}

        return run


class RiskGatedAbortTests(unittest.TestCase):
    def setUp(self) -> None:
        self.operations = RecordingOperations(failing=("explode",))
        self.ledger = SimulatedLedger(ACCOUNT, balances={TOKEN: "10"})
        self.engine = ExecutionEngine(
            self.operations.registry(),
            ConditionEvaluator(MarketConditionEvaluator(None)),
            self.ledger,
            ACCOUNT,
            TOKEN,
        )

    def test_steps_without_conditions_always_run(self) -> None:
        result = self.engine.execute(_plan([_step("a", "readA"), _step("b", "readB")]))
        self.assertEqual(self.operations.calls, ["readA", "readB"])
        self.assertEqual(result.summary.outcome, RunOutcome.SUCCESS)

    def test_low_risk_failure_does_not_abort(self) -> None:
        plan = _plan([_step("a", "explode", risk="low"), _step("b", "readB")])
        result = self.engine.execute(plan)

        self.assertEqual(plan.steps[0].status, StepStatus.FAILED)
        self.assertEqual(plan.steps[0].error, "explode rejected by ledger")
        self.assertEqual(plan.steps[1].status, StepStatus.COMPLETED)
        self.assertFalse(result.summary.aborted)
        self.assertEqual(result.summary.outcome, RunOutcome.PARTIAL)

    def test_medium_risk_skip_does_not_abort(self) -> None:
        plan = _plan(
            [
                _step("a", "write", risk="medium", conditions=[_balance_guard("500")]),
                _step("b", "readB"),
            ]
        )
        result = self.engine.execute(plan)
        self.assertEqual(plan.steps[0].status, StepStatus.SKIPPED)
        self.assertEqual(plan.steps[1].status, StepStatus.COMPLETED)
        self.assertEqual(self.operations.calls, ["readB"])
        self.assertFalse(result.summary.aborted)

    def test_high_risk_failure_aborts_every_later_step(self) -> None:
        plan = _plan(
            [
                _step("a", "readA"),
                _step("b", "explode", risk="high"),
                _step("c", "readB"),
                _step("d", "write", conditions=[_balance_guard("1")]),
            ],
            overall="high",
        )
        result = self.engine.execute(plan)

        self.assertEqual(
            [step.status for step in plan.steps],
            [StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.SKIPPED, StepStatus.SKIPPED],
        )
        self.assertEqual(plan.steps[2].error, ABORTED_REASON)
        self.assertEqual(plan.steps[3].error, ABORTED_REASON)
        self.assertEqual(self.operations.calls, ["readA", "explode"])
        self.assertTrue(result.summary.aborted)
        self.assertEqual(
            [decision.decision for decision in result.decisions],
            [StepOutcome.EXECUTE, StepOutcome.FAIL, StepOutcome.ABORT, StepOutcome.ABORT],
        )

    def test_stop_on_failure_disabled_keeps_going(self) -> None:
        plan = _plan(
            [_step("a", "explode", risk="critical"), _step("b", "readB")],
            overall="critical",
        )
        result = self.engine.execute(plan, ExecutionOptions(stop_on_failure=False))
        self.assertEqual(plan.steps[1].status, StepStatus.COMPLETED)
        self.assertFalse(result.summary.aborted)

    def test_unmet_condition_skips_without_invoking(self) -> None:
        plan = _plan(
            [
                _step(
                    "a",
                    "write",
                    conditions=[
                        {"kind": "custom", "field": "missing", "operator": "=", "value": "x"},
                        _balance_guard("1"),
                    ],
                )
            ]
        )
        result = self.engine.execute(plan)
        self.assertEqual(plan.steps[0].status, StepStatus.SKIPPED)
        self.assertEqual(plan.steps[0].error, "Field 'missing' not found in execution state")
        self.assertEqual(self.operations.calls, [])
        self.assertEqual(result.summary.outcome, RunOutcome.FAILED)

    def test_attached_validator_checks_registry_names(self) -> None:
        engine = ExecutionEngine(
            self.operations.registry(),
            ConditionEvaluator(),
            self.ledger,
            ACCOUNT,
            TOKEN,
            validator=PlanValidator(("readA",)),
        )
        with self.assertRaises(PlanValidationError):
            engine.execute(_plan([_step("a", "readB")]))


if __name__ == "__main__":
    unittest.main()
