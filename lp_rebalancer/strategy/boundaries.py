"""Percentage range policy -> tick-aligned price range"""

import logging
from decimal import Decimal
from functools import partial

from ..core.types import PriceRange, RangePolicy
from ..utils.math import (
    align_tick_down,
    align_tick_up,
    ceil_tick,
    floor_tick,
    price_to_tick,
    tick_to_price,
)

logger = logging.getLogger(__name__)


def as_decimal(value):
    """Decimal from int/float/str/Decimal without binary float noise"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def policy_for_pool(pool_state, width_fraction):
    """RangePolicy for a pool: its tick spacing and usable tick bounds"""
    return RangePolicy(
        width_fraction=as_decimal(width_fraction),
        tick_spacing=pool_state.tick_spacing,
        min_tick=pool_state.min_tick,
        max_tick=pool_state.max_tick,
    )


def pool_converters(pool_state):
    """(price_to_tick, tick_to_price) bound to the pool's decimals"""
    return (
        partial(price_to_tick, base_decimals=pool_state.base_decimals, quote_decimals=pool_state.quote_decimals),
        partial(tick_to_price, base_decimals=pool_state.base_decimals, quote_decimals=pool_state.quote_decimals),
    )


def calculate_price_boundaries(current_price, policy, to_tick, to_price):
    """
    Compute the tick range for a new position centered on current_price.

    Args:
        current_price: Quote per base, > 0
        policy: RangePolicy
        to_tick: price -> fractional tick (monotonic increasing)
        to_price: tick -> price

    Returns:
        PriceRange whose prices are the ones implied by the final ticks
    """
    price = as_decimal(current_price)
    if price <= 0:
        raise ValueError(f"current_price must be positive, got {current_price}")

    spacing = policy.tick_spacing
    raw_lower = price * (1 - policy.width_fraction)
    raw_upper = price * (1 + policy.width_fraction)

    if raw_lower <= 0:
        raw_lower = to_price(policy.min_tick)

    lower_tick = align_tick_down(floor_tick(to_tick(raw_lower)), spacing)
    upper_tick = align_tick_up(ceil_tick(to_tick(raw_upper)), spacing)

    if lower_tick >= upper_tick:
        upper_tick = lower_tick + spacing

    lower_tick = min(max(lower_tick, policy.min_tick), policy.max_tick)
    upper_tick = min(max(upper_tick, policy.min_tick), policy.max_tick)
    if lower_tick >= upper_tick:
        # Both ends clamped onto the same bound
        if lower_tick >= policy.max_tick:
            lower_tick = policy.max_tick - spacing
            upper_tick = policy.max_tick
        else:
            lower_tick = policy.min_tick
            upper_tick = policy.min_tick + spacing

    price_range = PriceRange(
        lower_price=to_price(lower_tick),
        upper_price=to_price(upper_tick),
        lower_tick=lower_tick,
        upper_tick=upper_tick,
    )
    logger.debug(
        "Boundaries for price %s (+/-%s): ticks [%d, %d], prices [%s, %s]",
        price, policy.width_fraction, lower_tick, upper_tick,
        price_range.lower_price, price_range.upper_price,
    )
    return price_range
