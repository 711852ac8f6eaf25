from .client import CryptoComMarketClient, MarketDataClient, MarketDataError
from .models import MarketQuote

__all__ = [
    "CryptoComMarketClient",
    "MarketDataClient",
    "MarketDataError",
    "MarketQuote",
]
