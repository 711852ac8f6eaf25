"""Execution state accumulated across steps."""

import copy
import threading
from typing import Any, Dict, Iterator, Mapping


class ExecutionState(Mapping[str, Any]):
    """Key/value map written by the engine and read by custom conditions.

    Values set through ``record_step`` are derived from each completed step's
    result shape. The map survives across runs until ``clear`` is called.
    Every access holds the map's lock, so status readers may snapshot it while
    a run is writing.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._values: Dict[str, Any] = {}

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            return self._values[key]

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._values))

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._values)

    def record_step(self, step_id: str, status: str, result: Any) -> None:
        with self._lock:
            self._values[f"step_{step_id}_result"] = result
            self._values[f"step_{step_id}_status"] = status
            if not isinstance(result, Mapping):
                return
            if "balance" in result and "symbol" in result:
                self._values["current_balance"] = result["balance"]
                self._values["balance_symbol"] = result["symbol"]
            if "tx_hash" in result:
                self._values["last_tx_hash"] = result["tx_hash"]
                self._values["last_transfer_amount"] = result.get("amount")

    def record_market(self, observed: Mapping[str, Any]) -> None:
        symbol = observed.get("symbol")
        if symbol:
            with self._lock:
                self._values[f"market_{str(symbol).upper()}"] = dict(observed)
