"""Keep, replace or open: judging the existing position against the target"""

from ..core.types import StalenessAction, StalenessDecision
from .boundaries import as_decimal


def select_active_position(positions):
    """First position holding liquidity, or None"""
    for position in positions or ():
        if position.is_active:
            return position
    return None


def evaluate_position(position, target_range, current_price, policy):
    """
    Decide what to do with the current position.

    A position is replaced when price has left its range, or when its
    mid-price has drifted from the target mid-price by more than half the
    policy width. Range boundaries count as in range.

    Args:
        position: Current Position or None
        target_range: PriceRange computed for the current price
        current_price: Quote per base
        policy: RangePolicy

    Returns:
        StalenessDecision
    """
    if position is None or not position.is_active:
        return StalenessDecision(StalenessAction.OPEN_NEW, "no_position")

    price = as_decimal(current_price)
    if price < position.price_lower or price > position.price_upper:
        return StalenessDecision(StalenessAction.REPLACE, "out_of_range")

    new_mid = target_range.mid_price
    drift = abs(position.mid_price - new_mid) / new_mid
    if drift > policy.stale_drift_fraction:
        return StalenessDecision(StalenessAction.REPLACE, "stale", drift)

    return StalenessDecision(StalenessAction.KEEP_OPEN, "in_range", drift)
