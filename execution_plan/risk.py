"""Risk tiers and their total ordering."""

from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, Union


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_RANKS: Dict[RiskLevel, int] = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}

_ABORT_TIERS = (RiskLevel.HIGH, RiskLevel.CRITICAL)

MEDIUM_TRANSFER_CEILING = Decimal("10")
CRITICAL_TRANSFER_FLOOR = Decimal("100")


def risk_rank(level: RiskLevel) -> int:
    if not isinstance(level, RiskLevel):
        raise ValueError(f"Not a risk level: {level!r}")
    return _RANKS[level]


def highest_risk(levels: Iterable[RiskLevel]) -> RiskLevel:
    """Return the maximum tier, or LOW for an empty collection."""

    highest = RiskLevel.LOW
    for level in levels:
        if risk_rank(level) > risk_rank(highest):
            highest = level
    return highest


def is_abort_tier(level: RiskLevel) -> bool:
    return level in _ABORT_TIERS


def parse_risk_level(value: object) -> RiskLevel:
    if isinstance(value, RiskLevel):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid risk level: {value!r}")
    normalized = value.strip().lower()
    for level in RiskLevel:
        if level.value == normalized:
            return level
    raise ValueError(f"Invalid risk level: {value!r}")


def classify_transfer_amount(amount: Union[Decimal, str, int, float]) -> RiskLevel:
    """Assign the tier a transfer of ``amount`` tokens is proposed with.

    Bands: below 10 is medium, 10 up to 100 is high, above 100 is critical.
    Read-only steps are always low and never pass through here.
    """

    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    if value > CRITICAL_TRANSFER_FLOOR:
        return RiskLevel.CRITICAL
    if value >= MEDIUM_TRANSFER_CEILING:
        return RiskLevel.HIGH
    return RiskLevel.MEDIUM
