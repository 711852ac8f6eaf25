"""Read-only market data client for the Crypto.com public ticker API."""

import json
import logging
import urllib.parse
import urllib.request
from typing import Any, Dict, Optional, Protocol

from .models import MarketQuote

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.crypto.com/exchange/v1"


class MarketDataError(RuntimeError):
    """Raised when market data cannot be fetched or understood."""


class MarketDataClient(Protocol):
    def connect(self) -> None:
        ...

    def get_quote(self, symbol: str) -> MarketQuote:
        ...


class CryptoComMarketClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        quote_currency: str = "USD",
        timeout: float = 10.0,
        probe_symbol: str = "BTC",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._quote_currency = quote_currency.upper()
        self._timeout = timeout
        self._probe_symbol = probe_symbol
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        if self._connected:
            return
        self._fetch_ticker(self._probe_symbol)
        self._connected = True
        logger.info("Connected to market data at %s", self._base_url)

    def get_quote(self, symbol: str) -> MarketQuote:
        if not self._connected:
            raise MarketDataError("Market data client not connected")

        ticker = self._fetch_ticker(symbol)
        price = _to_float(ticker.get("a"))
        if price is None:
            raise MarketDataError(f"No last price reported for {symbol.upper()}")

        change = _to_float(ticker.get("c"))
        return MarketQuote(
            symbol=symbol.upper(),
            price=price,
            change_24h=change * 100.0 if change is not None else None,
        )

    def _fetch_ticker(self, symbol: str) -> Dict[str, Any]:
        instrument = f"{symbol.upper()}_{self._quote_currency}"
        query = urllib.parse.urlencode({"instrument_name": instrument})
        request = urllib.request.Request(
            f"{self._base_url}/public/get-tickers?{query}",
            headers={"Accept": "application/json"},
            method="GET",
        )

        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read().decode("utf-8")
        except OSError as exc:
            raise MarketDataError(f"Market data request failed: {exc}") from exc

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MarketDataError("Market data service returned invalid JSON.") from exc

        if not isinstance(payload, dict) or payload.get("code", 0) != 0:
            raise MarketDataError(f"Market data service rejected request for {instrument}")

        try:
            tickers = payload["result"]["data"]
        except (KeyError, TypeError) as exc:
            raise MarketDataError("Market data service returned an unexpected response.") from exc

        if not tickers:
            raise MarketDataError(f"No ticker data for {instrument}")
        return tickers[0]


def _to_float(value: object) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
