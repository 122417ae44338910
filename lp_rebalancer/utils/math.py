"""
Tick and amount math for Uniswap V3 style pools.

Prices are quote-per-base in human units and always increase with the
tick. A pool stores ticks as token1/token0, so when the base asset is
token1 the bot works in negated ticks; `to_pool_ticks` and
`from_pool_ticks` translate at the contract boundary.
"""

from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, localcontext

MIN_TICK = -887272
MAX_TICK = 887272
Q96 = 2 ** 96

TICK_BASE = Decimal("1.0001")
_PRECISION = 50


def tick_to_price(tick, base_decimals, quote_decimals):
    """
    Convert tick to human-readable price.

    Args:
        tick: Base-oriented tick
        base_decimals: Base token decimals
        quote_decimals: Quote token decimals

    Returns:
        Price as quote per base (Decimal)
    """
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        price = TICK_BASE ** tick * Decimal(10) ** (base_decimals - quote_decimals)
    return +price


def price_to_tick(price, base_decimals, quote_decimals):
    """
    Convert price to a fractional tick (caller decides rounding).

    Args:
        price: Quote per base (human units), must be > 0
        base_decimals: Base token decimals
        quote_decimals: Quote token decimals

    Returns:
        Tick value as Decimal, not rounded
    """
    price = Decimal(price)
    if price <= 0:
        raise ValueError(f"price must be positive, got {price}")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        adjusted = price / Decimal(10) ** (base_decimals - quote_decimals)
        return adjusted.ln() / TICK_BASE.ln()


def floor_tick(value):
    return int(Decimal(value).to_integral_value(rounding=ROUND_FLOOR))


def ceil_tick(value):
    return int(Decimal(value).to_integral_value(rounding=ROUND_CEILING))


def align_tick_down(tick, spacing):
    """Largest multiple of spacing <= tick (floor, also for negative ticks)"""
    return (tick // spacing) * spacing


def align_tick_up(tick, spacing):
    """Smallest multiple of spacing >= tick"""
    return -((-tick) // spacing) * spacing


def usable_tick_bounds(spacing):
    """(min_tick, max_tick) aligned inward to spacing"""
    return align_tick_up(MIN_TICK, spacing), align_tick_down(MAX_TICK, spacing)


def to_pool_ticks(tick_lower, tick_upper, base_is_token0):
    """Base-oriented tick range -> pool (token1/token0) tick range"""
    if base_is_token0:
        return tick_lower, tick_upper
    return -tick_upper, -tick_lower


def from_pool_ticks(tick_lower, tick_upper, base_is_token0):
    """Pool tick range -> base-oriented tick range"""
    return to_pool_ticks(tick_lower, tick_upper, base_is_token0)


def sqrt_price_x96_to_price(sqrt_price_x96, base_decimals, quote_decimals, base_is_token0=True):
    """Convert the pool's sqrtPriceX96 to quote-per-base in human units"""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        raw = (Decimal(sqrt_price_x96) / Q96) ** 2
        if not base_is_token0:
            raw = 1 / raw
        price = raw * Decimal(10) ** (base_decimals - quote_decimals)
    return +price


def _sqrt_at_tick(tick):
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return (TICK_BASE ** tick).sqrt()


def liquidity_for_amounts(sqrt_price_x96, pool_tick_lower, pool_tick_upper, amount0, amount1):
    """
    Largest liquidity that both amounts can fund (pool orientation,
    atomic units). Rounds down.
    """
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        sqrt_p = Decimal(sqrt_price_x96) / Q96
        sqrt_a = _sqrt_at_tick(pool_tick_lower)
        sqrt_b = _sqrt_at_tick(pool_tick_upper)

        def from_amount0(lo, hi):
            return Decimal(amount0) * lo * hi / (hi - lo)

        def from_amount1(lo, hi):
            return Decimal(amount1) / (hi - lo)

        if sqrt_p <= sqrt_a:
            liquidity = from_amount0(sqrt_a, sqrt_b)
        elif sqrt_p < sqrt_b:
            liquidity = min(from_amount0(sqrt_p, sqrt_b), from_amount1(sqrt_a, sqrt_p))
        else:
            liquidity = from_amount1(sqrt_a, sqrt_b)
        return int(liquidity.to_integral_value(rounding=ROUND_FLOOR))


def amounts_for_liquidity(sqrt_price_x96, pool_tick_lower, pool_tick_upper, liquidity):
    """
    Token amounts (amount0, amount1) held by `liquidity` in the range at the
    current price (pool orientation, atomic units). Rounds down.
    """
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        sqrt_p = Decimal(sqrt_price_x96) / Q96
        sqrt_a = _sqrt_at_tick(pool_tick_lower)
        sqrt_b = _sqrt_at_tick(pool_tick_upper)
        liquidity = Decimal(liquidity)

        if sqrt_p <= sqrt_a:
            amount0 = liquidity * (sqrt_b - sqrt_a) / (sqrt_a * sqrt_b)
            amount1 = Decimal(0)
        elif sqrt_p < sqrt_b:
            amount0 = liquidity * (sqrt_b - sqrt_p) / (sqrt_p * sqrt_b)
            amount1 = liquidity * (sqrt_p - sqrt_a)
        else:
            amount0 = Decimal(0)
            amount1 = liquidity * (sqrt_b - sqrt_a)
        return (
            int(amount0.to_integral_value(rounding=ROUND_FLOOR)),
            int(amount1.to_integral_value(rounding=ROUND_FLOOR)),
        )


def calculate_slippage_amounts(amount0, amount1, slippage_bps):
    """
    Calculate minimum amounts with slippage protection.

    Args:
        amount0: Expected amount0 in atomic units
        amount1: Expected amount1 in atomic units
        slippage_bps: Slippage in basis points (50 = 0.5%)

    Returns:
        (amount0_min, amount1_min), rounded down
    """
    return (
        amount0 * (10000 - slippage_bps) // 10000,
        amount1 * (10000 - slippage_bps) // 10000,
    )


def ui_to_atomic(amount, decimals):
    """Human amount -> atomic units, truncating extra precision"""
    scaled = Decimal(str(amount)) * Decimal(10) ** decimals
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def atomic_to_ui(amount, decimals):
    """Atomic units -> human amount (exact Decimal)"""
    return Decimal(int(amount)) / Decimal(10) ** decimals
