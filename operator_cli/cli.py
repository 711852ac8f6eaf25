"""Operator CLI for the conditional execution core."""

from __future__ import annotations

import argparse
import json
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from execution_adapter.ethereum.client import LedgerError
from execution_adapter.ethereum.simulator import SimulatedLedger
from execution_adapter.ethereum.transfer import TransferError
from execution_engine.engine import PlanAlreadyExecutedError
from execution_engine.models import ExecutionOptions, RunOutcome
from execution_engine.runtime import build_runtime
from execution_plan.draft import validate_and_prepare
from execution_plan.planner import TransferIntent, TransferPlanner
from execution_plan.validator import PlanValidationError, parse_amount
from market_data.client import CryptoComMarketClient
from settings.config import EngineSettings, get_settings
from settings.logging_setup import configure_logging


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="sentinel")
    parser.add_argument("--log-level", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    plan_parser = subparsers.add_parser("plan")
    plan_sub = plan_parser.add_subparsers(dest="plan_command", required=True)
    plan_transfer = plan_sub.add_parser("transfer")
    plan_transfer.add_argument("--to", required=True)
    plan_transfer.add_argument("--amount", required=True)
    plan_transfer.add_argument("--symbol", default=None)
    plan_transfer.add_argument("--intent", default=None)
    plan_transfer.set_defaults(func=_plan_transfer)

    validate_parser = subparsers.add_parser("validate")
    validate_parser.add_argument("--plan", required=True)
    validate_parser.set_defaults(func=_validate_plan)

    execute_parser = subparsers.add_parser("execute")
    execute_parser.add_argument("--plan", required=True)
    execute_parser.add_argument("--balance", required=True)
    execute_parser.add_argument("--contract", action="append", default=[])
    execute_parser.add_argument("--allow-partial", action="store_true")
    execute_parser.add_argument("--offline-market", action="store_true")
    execute_parser.set_defaults(func=_execute_plan)

    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    try:
        return args.func(args, settings)
    except PlanValidationError as exc:
        print(json.dumps(exc.result.to_dict(), indent=2))
        print(f"ERROR: {'; '.join(exc.errors)}", file=sys.stderr)
        return 2
    except (
        OSError,
        ValueError,
        PlanAlreadyExecutedError,
        TransferError,
        LedgerError,
    ) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2


def _plan_transfer(args: argparse.Namespace, settings: EngineSettings) -> int:
    intent = TransferIntent(
        to=args.to,
        amount=args.amount,
        token_symbol=args.symbol or settings.token_symbol,
        raw_text=args.intent,
    )
    draft = TransferPlanner().plan(intent)
    print(json.dumps(draft, indent=2))
    return 0


def _validate_plan(args: argparse.Namespace, settings: EngineSettings) -> int:
    draft = _load_draft(args.plan)
    runtime = build_runtime(settings, _simulated_ledger(settings, "0", ()))
    result = runtime.validator.validate(draft)
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.valid else 2


def _execute_plan(args: argparse.Namespace, settings: EngineSettings) -> int:
    draft = _load_draft(args.plan)
    ledger = _simulated_ledger(settings, parse_amount(args.balance), args.contract)
    market_client = None
    if not args.offline_market:
        market_client = CryptoComMarketClient(
            base_url=settings.market_data_url,
            quote_currency=settings.market_quote_currency,
            timeout=settings.market_timeout,
        )
    runtime = build_runtime(settings, ledger, market_client=market_client)

    prepared = validate_and_prepare(draft, runtime.validator)
    for warning in prepared.validation.warnings:
        print(f"WARNING: {warning}", file=sys.stderr)

    options = ExecutionOptions(stop_on_failure=not args.allow_partial)
    result = runtime.engine.execute(prepared.plan, options)
    print(json.dumps(result.to_dict(), indent=2, default=str))
    return 0 if result.summary.outcome == RunOutcome.SUCCESS else 1


def _simulated_ledger(
    settings: EngineSettings, balance: Union[Decimal, str], contracts: Iterable[str]
) -> SimulatedLedger:
    return SimulatedLedger(
        settings.account_address,
        balances={settings.token_address: balance},
        symbol=settings.token_symbol,
        contracts=contracts,
    )


def _load_draft(plan_source: str) -> Dict[str, Any]:
    if plan_source == "-":
        payload = json.loads(sys.stdin.read())
    else:
        payload = json.loads(Path(plan_source).read_text())
    if not isinstance(payload, dict):
        raise ValueError("Plan file must contain a JSON object.")
    return payload


if __name__ == "__main__":
    raise SystemExit(main())
