"""Name to callable mapping for the operations plan steps may invoke."""

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

Operation = Callable[[Mapping[str, Any]], Any]


class UnknownOperationError(RuntimeError):
    """Raised when a step names an operation that was never registered."""


class OperationRegistry:
    def __init__(self, operations: Optional[Mapping[str, Operation]] = None) -> None:
        self._operations: Dict[str, Operation] = {}
        for name, operation in (operations or {}).items():
            self.register(name, operation)

    def register(self, name: str, operation: Operation) -> None:
        if not name or not isinstance(name, str):
            raise ValueError("Operation name must be a non-empty string.")
        if not callable(operation):
            raise ValueError(f"Operation '{name}' must be callable.")
        self._operations[name] = operation

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._operations))

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def invoke(self, name: str, parameters: Mapping[str, Any]) -> Any:
        operation = self._operations.get(name)
        if operation is None:
            raise UnknownOperationError(f"Unknown operation '{name}'")
        return operation(parameters)
