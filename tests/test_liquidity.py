"""Mint sizing against the allocation envelope"""

from decimal import Decimal

import pytest

from lp_rebalancer.core.exceptions import InsufficientFunds
from lp_rebalancer.core.types import PriceRange
from lp_rebalancer.operations.liquidity import LiquidityManager
from lp_rebalancer.utils.math import Q96

from conftest import make_config, make_pool_state

RANGE = PriceRange(Decimal(95), Decimal(105), 45540, 46550)


def manager():
    # quote_open needs no chain access
    return LiquidityManager(manager=None, config=make_config(), nfpm=object())


def test_quote_stays_within_envelope():
    quote = manager().quote_open(make_pool_state(), RANGE, 5, 500)

    assert quote["liquidity"] > 0
    assert (quote["tick_lower"], quote["tick_upper"]) == (45540, 46550)
    assert quote["amount0_expected"] <= 5
    assert quote["amount1_expected"] <= 500


def test_quote_orients_ticks_and_amounts_when_base_is_token1():
    state = make_pool_state(base_is_token0=False, sqrt_price_x96=Q96 // 10, current_tick=-46054)
    quote = manager().quote_open(state, RANGE, 5, 500)

    assert (quote["tick_lower"], quote["tick_upper"]) == (-46550, -45540)
    assert (quote["amount0_desired"], quote["amount1_desired"]) == (500, 5)
    assert quote["amount0_expected"] <= 500
    assert quote["amount1_expected"] <= 5


def test_empty_envelope_funds_nothing():
    with pytest.raises(InsufficientFunds):
        manager().quote_open(make_pool_state(), RANGE, 0, 0)


def test_single_sided_envelope_in_range_funds_nothing():
    # In range a position needs both tokens
    with pytest.raises(InsufficientFunds):
        manager().quote_open(make_pool_state(), RANGE, 0, 500)
