from .config import CRONOS_TESTNET_USDC, EngineSettings, get_settings
from .logging_setup import LOG_FORMAT, configure_logging

__all__ = [
    "CRONOS_TESTNET_USDC",
    "EngineSettings",
    "LOG_FORMAT",
    "configure_logging",
    "get_settings",
]
