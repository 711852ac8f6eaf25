"""Local-only FastAPI shell for validating and executing payment plans."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from execution_adapter.ethereum.client import LedgerError
from execution_adapter.ethereum.simulator import SimulatedLedger
from execution_engine.engine import PlanAlreadyExecutedError
from execution_engine.models import ExecutionOptions
from execution_engine.runtime import Runtime, build_runtime
from execution_plan.draft import validate_and_prepare
from execution_plan.validator import PlanValidationError, parse_amount
from market_data.client import CryptoComMarketClient
from settings.config import get_settings
from settings.logging_setup import configure_logging

app = FastAPI(title="Sentinel Execution Core", description="Local-only execution shell")

_RUNTIME: Dict[str, Optional[Runtime]] = {"current": None}


class PlanPayload(BaseModel):
    plan: Dict[str, Any]


class ExecuteRequest(BaseModel):
    plan: Dict[str, Any]
    balance: Optional[str] = None
    stop_on_failure: bool = True


@app.middleware("http")
async def _local_only(request: Request, call_next):
    client = request.client
    if client is not None:
        host = client.host
        if host not in {"127.0.0.1", "::1", "testclient"}:
            return JSONResponse({"error": "Remote access disabled."}, status_code=403)
    return await call_next(request)


async def _handle_errors(request: Request, exc: Exception):
    return JSONResponse({"error": str(exc)}, status_code=400)


async def _handle_validation_error(request: Request, exc: PlanValidationError):
    body = exc.result.to_dict()
    body["error"] = "Plan validation failed."
    return JSONResponse(body, status_code=400)


app.add_exception_handler(PlanValidationError, _handle_validation_error)
for _exc_class in (PlanAlreadyExecutedError, LedgerError, ValueError):
    app.add_exception_handler(_exc_class, _handle_errors)


@app.get("/api/status")
async def status():
    runtime = _get_runtime()
    settings = runtime.settings
    return {
        "account": settings.account_address,
        "token_address": settings.token_address,
        "token_symbol": settings.token_symbol,
        "chain_id": settings.chain_id,
        "operations": list(runtime.registry.names()),
        "cached_nonce": runtime.coordinator.cached_nonce,
        "execution_state": runtime.engine.execution_state,
    }


@app.post("/api/plans/validate")
async def validate_plan(payload: PlanPayload):
    result = _get_runtime().validator.validate(payload.plan)
    return result.to_dict()


@app.post("/api/plans/execute")
def execute_plan(payload: ExecuteRequest):
    runtime = _get_runtime()
    if payload.balance is not None:
        _set_balance(runtime, payload.balance)

    prepared = validate_and_prepare(payload.plan, runtime.validator)
    options = ExecutionOptions(stop_on_failure=payload.stop_on_failure)
    result = runtime.engine.execute(prepared.plan, options)
    body = result.to_dict()
    body["warnings"] = list(prepared.validation.warnings)
    return body


@app.post("/api/execution/clear")
async def clear_execution_state():
    _get_runtime().engine.clear_execution_state()
    return {"status": "ok"}


def configure_runtime(runtime: Runtime) -> None:
    _RUNTIME["current"] = runtime


def _get_runtime() -> Runtime:
    runtime = _RUNTIME["current"]
    if runtime is None:
        runtime = _default_runtime()
        _RUNTIME["current"] = runtime
    return runtime


def _default_runtime() -> Runtime:
    settings = get_settings()
    configure_logging(settings.log_level)
    ledger = SimulatedLedger(settings.account_address, symbol=settings.token_symbol)
    market_client = CryptoComMarketClient(
        base_url=settings.market_data_url,
        quote_currency=settings.market_quote_currency,
        timeout=settings.market_timeout,
    )
    return build_runtime(settings, ledger, market_client=market_client)


def _set_balance(runtime: Runtime, balance: str) -> None:
    if not isinstance(runtime.ledger, SimulatedLedger):
        raise ValueError("Balances can only be set on the simulated ledger.")
    runtime.ledger.set_balance(
        runtime.settings.token_address,
        runtime.settings.account_address,
        parse_amount(balance),
    )


def _reset_state() -> None:
    _RUNTIME["current"] = None
