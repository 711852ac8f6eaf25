"""Smoke tests for the local execution web API."""

import unittest

from fastapi.testclient import TestClient

from execution_adapter.ethereum.simulator import SimulatedLedger
from execution_engine.runtime import build_runtime
from execution_plan.planner import TransferIntent, TransferPlanner
from settings.config import EngineSettings
from web import app as web_app

ACCOUNT = "0x" + "a" * 40
RECIPIENT = "0x" + "b" * 40
TOKEN = "0x" + "c" * 40


class WebApiTests(unittest.TestCase):
    def setUp(self) -> None:
        web_app._reset_state()
        settings = EngineSettings(
            _env_file=None,
            account_address=ACCOUNT,
            token_address=TOKEN,
            nonce_release_delay=0,
        )
        self.ledger = SimulatedLedger(ACCOUNT, balances={TOKEN: "100"})
        web_app.configure_runtime(build_runtime(settings, self.ledger))
        self.client = TestClient(web_app.app)
        self.planner = TransferPlanner(time_provider=lambda: "2024-01-01T00:00:00Z")

    def tearDown(self) -> None:
        web_app._reset_state()

    def _draft(self, amount="5"):
        return self.planner.plan(TransferIntent(to=RECIPIENT, amount=amount))

    def test_status(self) -> None:
        response = self.client.get("/api/status")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["account"], ACCOUNT)
        self.assertIn("transferToken", payload["operations"])
        self.assertEqual(payload["execution_state"], {})

    def test_validate_endpoint(self) -> None:
        response = self.client.post("/api/plans/validate", json={"plan": self._draft()})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["valid"])

        draft = self._draft()
        draft["steps"][1]["operation_name"] = "doesNotExist"
        response = self.client.post("/api/plans/validate", json={"plan": draft})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["valid"])

    def test_execute_and_clear(self) -> None:
        response = self.client.post("/api/plans/execute", json={"plan": self._draft()})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["summary"]["outcome"], "success")
        self.assertEqual(payload["plan"]["steps"][1]["status"], "completed")
        self.assertEqual(len(self.ledger.submissions), 1)

        status = self.client.get("/api/status").json()
        self.assertIn("last_tx_hash", status["execution_state"])
        self.assertEqual(status["cached_nonce"], 1)

        self.assertEqual(self.client.post("/api/execution/clear").status_code, 200)
        self.assertEqual(self.client.get("/api/status").json()["execution_state"], {})

    def test_execute_with_balance_override_aborts(self) -> None:
        response = self.client.post(
            "/api/plans/execute",
            json={"plan": self._draft("1000000"), "balance": "50"},
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["summary"]["aborted"])
        self.assertIn("CRITICAL risk operation - requires manual review", payload["warnings"])
        self.assertEqual(self.ledger.submissions, ())

    def test_invalid_plan_is_rejected(self) -> None:
        draft = self._draft()
        draft["steps"][1]["parameters"]["to"] = "0xnope"
        response = self.client.post("/api/plans/execute", json={"plan": draft})
        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertFalse(payload["valid"])
        self.assertIn("Step 2: Invalid recipient address", payload["errors"])

    def test_bad_balance_is_rejected(self) -> None:
        response = self.client.post(
            "/api/plans/execute", json={"plan": self._draft(), "balance": "lots"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())


if __name__ == "__main__":
    unittest.main()
