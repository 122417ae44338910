from .config import BotConfig
from .connection import Web3Manager
from .exceptions import (
    RebalancerError,
    ConfigError,
    ConnectivityError,
    OracleUnavailable,
    PoolNotFound,
    PositionError,
    InsufficientFunds,
    MathInvariantViolation,
    ActionFailed,
)

__all__ = [
    "BotConfig",
    "Web3Manager",
    "RebalancerError",
    "ConfigError",
    "ConnectivityError",
    "OracleUnavailable",
    "PoolNotFound",
    "PositionError",
    "InsufficientFunds",
    "MathInvariantViolation",
    "ActionFailed",
]
