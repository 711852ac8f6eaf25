"""Wiring of the execution core for callers (CLI, web)."""

from dataclasses import dataclass
from typing import Callable, Optional

from conditions.evaluator import ConditionEvaluator
from conditions.market import MarketConditionEvaluator
from execution_adapter.ethereum.client import LedgerClient
from execution_adapter.ethereum.nonce import NonceCoordinator
from execution_adapter.ethereum.operations import build_ledger_operations
from execution_adapter.ethereum.transfer import TransferExecutor
from execution_plan.validator import PlanValidator
from market_data.client import MarketDataClient
from settings.config import EngineSettings

from .engine import ExecutionEngine
from .registry import OperationRegistry


@dataclass(frozen=True)
class Runtime:
    settings: EngineSettings
    ledger: LedgerClient
    coordinator: NonceCoordinator
    transfers: TransferExecutor
    registry: OperationRegistry
    validator: PlanValidator
    engine: ExecutionEngine


def build_runtime(
    settings: EngineSettings,
    ledger: LedgerClient,
    market_client: Optional[MarketDataClient] = None,
    time_provider: Optional[Callable[[], str]] = None,
) -> Runtime:
    """Assemble one engine around ``ledger`` for the configured account.

    The nonce coordinator is created here once and shared by every transfer
    the runtime issues.
    """

    account = settings.account_address
    coordinator = NonceCoordinator(
        account,
        ledger,
        cache_window=settings.nonce_cache_window,
        release_delay=settings.nonce_release_delay,
        block_tag=settings.nonce_block_tag,
    )
    transfers = TransferExecutor(ledger, coordinator, settings.token_address, settings.chain_id)
    registry = OperationRegistry(build_ledger_operations(ledger, transfers, account))
    validator = PlanValidator(registry.names(), policy=settings.validation_policy())
    evaluator = ConditionEvaluator(MarketConditionEvaluator(market_client))
    engine = ExecutionEngine(
        registry,
        evaluator,
        ledger,
        account,
        settings.token_address,
        validator=validator,
        time_provider=time_provider,
    )
    return Runtime(
        settings=settings,
        ledger=ledger,
        coordinator=coordinator,
        transfers=transfers,
        registry=registry,
        validator=validator,
        engine=engine,
    )
