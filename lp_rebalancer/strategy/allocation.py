"""Funding envelope for a new position"""

import logging

from ..core.types import AllocationPlan, Balances
from .boundaries import as_decimal

logger = logging.getLogger(__name__)


def deployable_amount(balance, fraction):
    """
    balance * fraction in exact integer arithmetic, truncated.

    `fraction` is converted to an exact ratio first so large atomic
    balances never pass through a float or a limited-precision Decimal.
    """
    numerator, denominator = as_decimal(fraction).as_integer_ratio()
    return balance * numerator // denominator


def atomic_price_ratio(price, base_decimals, quote_decimals):
    """
    Quote atomic units per base atomic unit as an exact fraction.

    This is the single step between a human price and atomic-unit
    arithmetic. Nothing is rounded here; callers truncate once, on the
    final amount, so prices far below one quote unit per base token keep
    their precision.

    Returns:
        (numerator, denominator), both positive ints

    Raises:
        ValueError: price is not positive
    """
    numerator, denominator = as_decimal(price).as_integer_ratio()
    if numerator <= 0:
        raise ValueError(f"Price must be positive, got {price}")
    return numerator * 10 ** quote_decimals, denominator * 10 ** base_decimals


def base_in_quote(base_amount, price, base_decimals, quote_decimals):
    """Quote atomic value of base_amount, truncated"""
    numerator, denominator = atomic_price_ratio(price, base_decimals, quote_decimals)
    return base_amount * numerator // denominator


def quote_in_base(quote_amount, price, base_decimals, quote_decimals):
    """Base atomic amount that quote_amount buys, truncated"""
    numerator, denominator = atomic_price_ratio(price, base_decimals, quote_decimals)
    return quote_amount * denominator // numerator


def plan_allocation(balances, target_range, current_price, max_deploy_fraction):
    """
    Decide how much of each asset a new position may use.

    Below the range only the base asset is useful, above it only the quote
    asset; inside (boundaries included) both. The exact two-sided ratio is
    left to the liquidity math at open time, which must stay within this
    envelope.

    Returns:
        AllocationPlan (is_empty when there is nothing to deploy)
    """
    price = as_decimal(current_price)
    deployable_base = deployable_amount(balances.base, max_deploy_fraction)
    deployable_quote = deployable_amount(balances.quote, max_deploy_fraction)

    if price < target_range.lower_price:
        plan = AllocationPlan(base_amount=deployable_base, quote_amount=0)
        side = "below range, base only"
    elif price > target_range.upper_price:
        plan = AllocationPlan(base_amount=0, quote_amount=deployable_quote)
        side = "above range, quote only"
    else:
        plan = AllocationPlan(base_amount=deployable_base, quote_amount=deployable_quote)
        side = "in range, both sides"

    logger.debug("Allocation (%s): base=%d quote=%d", side, plan.base_amount, plan.quote_amount)
    return plan


def target_holdings(balances, target_range, current_price, base_decimals, quote_decimals):
    """
    Holdings the wallet should have before deploying into target_range.

    The whole inventory is valued in quote units at current_price. Below
    the range everything should be base, above it everything quote, inside
    it half of the value on each side.

    Returns:
        Balances with the desired base/quote (native copied through)
    """
    price = as_decimal(current_price)
    total_value = base_in_quote(balances.base, price, base_decimals, quote_decimals) + balances.quote

    if price < target_range.lower_price:
        base, quote = quote_in_base(total_value, price, base_decimals, quote_decimals), 0
    elif price > target_range.upper_price:
        base, quote = 0, total_value
    else:
        half_value = total_value // 2
        base = quote_in_base(half_value, price, base_decimals, quote_decimals)
        quote = total_value - half_value

    return Balances(base=base, quote=quote, native=balances.native)
