"""Market data records."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MarketQuote:
    symbol: str
    price: float
    change_24h: Optional[float] = None  # percent
    volatility: Optional[float] = None  # percent
