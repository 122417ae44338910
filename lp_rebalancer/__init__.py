"""
LP Rebalancer - keeps a single concentrated-liquidity position centered on the market price
"""

from .core.config import BotConfig
from .core.exceptions import RebalancerError, ConfigError, ConnectivityError, InsufficientFunds

__version__ = "0.1.0"
__all__ = [
    "BotConfig",
    "RebalancerError",
    "ConfigError",
    "ConnectivityError",
    "InsufficientFunds",
]
