"""Custom exceptions for the LP rebalancer"""


class RebalancerError(Exception):
    """Base exception for all rebalancer errors"""
    pass


class ConfigError(RebalancerError):
    """Configuration-related errors (missing or invalid settings)"""
    pass


class ConnectivityError(RebalancerError):
    """RPC or network errors while reading state"""
    pass


class OracleUnavailable(RebalancerError):
    """Price feed has no current value"""
    pass


class PoolNotFound(RebalancerError):
    """Pool does not exist or cannot be read"""
    pass


class PositionError(RebalancerError):
    """Position-related errors (not found, not owned, etc.)"""
    pass


class InsufficientFunds(RebalancerError):
    """Balance too small for a swap, an allocation or the gas reserve"""
    pass


class MathInvariantViolation(RebalancerError):
    """
    Computed amounts exceed what is available.

    Signals a planning bug rather than an environmental failure; the action
    that raised it must stop and must never be retried with clamped amounts.
    """
    pass


class ActionFailed(RebalancerError):
    """Close/open/swap transaction was rejected or reverted"""

    def __init__(self, message, tx_hash=None):
        super().__init__(message)
        self.tx_hash = tx_hash
