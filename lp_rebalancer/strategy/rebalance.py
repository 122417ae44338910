"""Single directional swap that moves holdings toward a target"""

import logging

from ..core.exceptions import InsufficientFunds
from ..core.types import Asset, SwapPlan
from .allocation import base_in_quote, quote_in_base

logger = logging.getLogger(__name__)


def plan_rebalance_swap(target, balances, current_price, base_decimals=0, quote_decimals=0):
    """
    Plan at most one swap toward `target`.

    Base shortfall is covered by selling quote, otherwise a quote shortfall
    by selling base; the opposite correction, if still needed, is left for
    a later cycle. Conversions use the exact atomic price ratio and
    truncate toward zero once, so a plan never sells more than the
    shortfall is worth.

    Args:
        target: Balances or AllocationPlan-like object with base/quote amounts
        balances: Current Balances
        current_price: Quote per base
        base_decimals: Base token decimals
        quote_decimals: Quote token decimals

    Returns:
        SwapPlan, or None when no swap is needed

    Raises:
        InsufficientFunds: the sell side cannot cover the shortfall
    """
    target_base, target_quote = _amounts(target)
    base_needed = target_base - balances.base
    quote_needed = target_quote - balances.quote

    if base_needed > 0:
        quote_to_sell = base_in_quote(base_needed, current_price, base_decimals, quote_decimals)
        return _checked_plan(Asset.QUOTE, quote_to_sell, balances.quote, base_needed)

    if quote_needed > 0:
        base_to_sell = quote_in_base(quote_needed, current_price, base_decimals, quote_decimals)
        return _checked_plan(Asset.BASE, base_to_sell, balances.base, quote_needed)

    return None


def _amounts(target):
    if hasattr(target, "base_amount"):
        return target.base_amount, target.quote_amount
    return target.base, target.quote


def _checked_plan(sell_asset, sell_amount, available, needed):
    if sell_amount <= 0:
        logger.info("Shortfall of %d %s is below one unit of %s, no swap", needed, sell_asset.other.value, sell_asset.value)
        return None
    if sell_amount > available:
        raise InsufficientFunds(
            f"Need {sell_amount} {sell_asset.value} to buy {needed} {sell_asset.other.value}, "
            f"have {available}"
        )
    return SwapPlan(sell_asset=sell_asset, buy_asset=sell_asset.other, sell_amount=sell_amount)
