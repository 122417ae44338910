"""Price boundary calculation: invariants, idempotence, monotonicity"""

from decimal import Decimal
from functools import partial

import pytest

from lp_rebalancer.core.types import RangePolicy
from lp_rebalancer.strategy.boundaries import (
    calculate_price_boundaries,
    policy_for_pool,
    pool_converters,
)
from lp_rebalancer.utils.math import price_to_tick, tick_to_price, usable_tick_bounds

from conftest import make_pool_state


def converters(base_decimals=0, quote_decimals=0):
    return (
        partial(price_to_tick, base_decimals=base_decimals, quote_decimals=quote_decimals),
        partial(tick_to_price, base_decimals=base_decimals, quote_decimals=quote_decimals),
    )


def policy(width="0.05", spacing=10):
    min_tick, max_tick = usable_tick_bounds(spacing)
    return RangePolicy(Decimal(width), spacing, min_tick, max_tick)


PRICES = ["0.0001", "0.37", "1", "50", "100", "2999.5", "65000", "1000000"]
SPACINGS = [1, 10, 60, 200]
WIDTHS = ["0.001", "0.05", "0.3"]


@pytest.mark.parametrize("price", PRICES)
@pytest.mark.parametrize("spacing", SPACINGS)
@pytest.mark.parametrize("width", WIDTHS)
def test_range_invariants(price, spacing, width):
    p = policy(width, spacing)
    result = calculate_price_boundaries(Decimal(price), p, *converters())

    assert result.lower_tick < result.upper_tick
    assert result.lower_tick % spacing == 0
    assert result.upper_tick % spacing == 0
    assert p.min_tick <= result.lower_tick and result.upper_tick <= p.max_tick
    # Alignment only ever widens the raw interval
    assert result.lower_price <= Decimal(price) * (1 - Decimal(width))
    assert result.upper_price >= Decimal(price) * (1 + Decimal(width))
    assert result.lower_price == tick_to_price(result.lower_tick, 0, 0)
    assert result.upper_price == tick_to_price(result.upper_tick, 0, 0)


@pytest.mark.parametrize("price", PRICES)
def test_idempotent(price):
    p = policy()
    first = calculate_price_boundaries(Decimal(price), p, *converters())
    second = calculate_price_boundaries(Decimal(price), p, *converters())
    assert first == second


def test_monotonic_in_price():
    p = policy("0.05", 60)
    previous = None
    for step in range(1, 200):
        result = calculate_price_boundaries(Decimal(step) * 7, p, *converters())
        if previous is not None:
            assert result.lower_tick >= previous.lower_tick
            assert result.upper_tick >= previous.upper_tick
        previous = result


def test_scenario_price_100():
    result = calculate_price_boundaries(Decimal(100), policy("0.05", 10), *converters())
    assert result.lower_tick % 10 == 0 and result.upper_tick % 10 == 0
    assert result.lower_tick <= price_to_tick(Decimal(95), 0, 0)
    assert result.upper_tick >= price_to_tick(Decimal(105), 0, 0)
    # Never more than one spacing wider than needed on either side
    assert result.lower_price > Decimal(95) / Decimal("1.0001") ** 11
    assert result.upper_price < Decimal(105) * Decimal("1.0001") ** 11


def test_clamped_at_max_tick():
    p = policy("0.05", 200)
    huge = tick_to_price(p.max_tick, 0, 0) * 10
    result = calculate_price_boundaries(huge, p, *converters())
    assert result.upper_tick == p.max_tick
    assert result.lower_tick == p.max_tick - 200


def test_width_reaching_zero_uses_min_tick():
    p = policy("1.5", 10)
    result = calculate_price_boundaries(Decimal("0.5"), p, *converters())
    assert result.lower_tick == p.min_tick
    assert result.lower_tick < result.upper_tick


def test_non_positive_price_rejected():
    with pytest.raises(ValueError):
        calculate_price_boundaries(Decimal(0), policy(), *converters())


def test_base_as_token1_keeps_price_orientation():
    # Pool ticks are token1/token0; with base = token1 prices stay quote-per-base
    state = make_pool_state(decimals0=6, decimals1=18, base_is_token0=False)
    p = policy_for_pool(state, "0.05")
    result = calculate_price_boundaries(Decimal(3000), p, *pool_converters(state))
    assert result.lower_price <= Decimal(2850)
    assert result.upper_price >= Decimal(3150)
    assert result.lower_price > Decimal(2800)
