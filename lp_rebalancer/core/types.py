"""Value objects shared by the planner and the orchestrator"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class Asset(str, Enum):
    """The two sides of the managed pool"""

    BASE = "base"
    QUOTE = "quote"

    @property
    def other(self) -> "Asset":
        return Asset.QUOTE if self is Asset.BASE else Asset.BASE


class StalenessAction(str, Enum):
    KEEP_OPEN = "keep_open"
    REPLACE = "replace"
    OPEN_NEW = "open_new"


@dataclass(frozen=True)
class RangePolicy:
    """
    How wide a new position should be and which ticks the pool accepts.

    Attributes:
        width_fraction: Half-width of the range as a fraction of price (0.05 = +/-5%)
        tick_spacing: Pool tick spacing
        min_tick: Lowest usable tick (aligned to spacing)
        max_tick: Highest usable tick (aligned to spacing)
    """

    width_fraction: Decimal
    tick_spacing: int
    min_tick: int
    max_tick: int

    def __post_init__(self):
        if self.width_fraction <= 0:
            raise ValueError(f"width_fraction must be > 0, got {self.width_fraction}")
        if self.tick_spacing <= 0:
            raise ValueError(f"tick_spacing must be positive, got {self.tick_spacing}")
        if self.min_tick >= self.max_tick:
            raise ValueError(f"Invalid tick bounds: {self.min_tick} >= {self.max_tick}")

    @property
    def stale_drift_fraction(self) -> Decimal:
        """Mid-price drift tolerated before a position counts as stale"""
        return self.width_fraction / 2


@dataclass(frozen=True)
class PriceRange:
    lower_price: Decimal
    upper_price: Decimal
    lower_tick: int
    upper_tick: int

    @property
    def mid_price(self) -> Decimal:
        return (self.lower_price + self.upper_price) / 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lower_price": str(self.lower_price),
            "upper_price": str(self.upper_price),
            "lower_tick": self.lower_tick,
            "upper_tick": self.upper_tick,
        }


@dataclass(frozen=True)
class Position:
    """Read-only snapshot of an on-chain liquidity position"""

    id: int
    liquidity: int
    tick_lower: int
    tick_upper: int
    price_lower: Decimal
    price_upper: Decimal

    @property
    def is_active(self) -> bool:
        return self.liquidity > 0

    @property
    def mid_price(self) -> Decimal:
        return (self.price_lower + self.price_upper) / 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "liquidity": self.liquidity,
            "tick_lower": self.tick_lower,
            "tick_upper": self.tick_upper,
            "price_lower": str(self.price_lower),
            "price_upper": str(self.price_upper),
        }


@dataclass(frozen=True)
class Balances:
    """Wallet balances in atomic units"""

    base: int
    quote: int
    native: int = 0

    def __post_init__(self):
        for name in ("base", "quote", "native"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} balance must be a non-negative int, got {value!r}")


@dataclass(frozen=True)
class AllocationPlan:
    base_amount: int
    quote_amount: int

    @property
    def is_empty(self) -> bool:
        return self.base_amount == 0 and self.quote_amount == 0


@dataclass(frozen=True)
class SwapPlan:
    sell_asset: Asset
    buy_asset: Asset
    sell_amount: int

    def __post_init__(self):
        if self.sell_asset is self.buy_asset:
            raise ValueError("sell_asset and buy_asset must differ")
        if self.sell_amount <= 0:
            raise ValueError(f"sell_amount must be positive, got {self.sell_amount}")


@dataclass(frozen=True)
class StalenessDecision:
    action: StalenessAction
    reason: str
    drift: Optional[Decimal] = None


@dataclass(frozen=True)
class PoolState:
    """
    Snapshot of the managed pool.

    `base_is_token0` records the orientation: prices throughout the bot are
    quoted as quote-per-base, which is token1/token0 only when the base
    asset is token0.
    """

    address: str
    token0: str
    token1: str
    fee: int
    tick_spacing: int
    current_tick: int
    sqrt_price_x96: int
    decimals0: int
    decimals1: int
    base_is_token0: bool

    @property
    def base_token(self) -> str:
        return self.token0 if self.base_is_token0 else self.token1

    @property
    def quote_token(self) -> str:
        return self.token1 if self.base_is_token0 else self.token0

    @property
    def base_decimals(self) -> int:
        return self.decimals0 if self.base_is_token0 else self.decimals1

    @property
    def quote_decimals(self) -> int:
        return self.decimals1 if self.base_is_token0 else self.decimals0

    @property
    def min_tick(self) -> int:
        from ..utils.math import usable_tick_bounds
        return usable_tick_bounds(self.tick_spacing)[0]

    @property
    def max_tick(self) -> int:
        from ..utils.math import usable_tick_bounds
        return usable_tick_bounds(self.tick_spacing)[1]

    def token_for(self, asset: Asset) -> str:
        return self.base_token if asset is Asset.BASE else self.quote_token

    def decimals_for(self, asset: Asset) -> int:
        return self.base_decimals if asset is Asset.BASE else self.quote_decimals


@dataclass(frozen=True)
class TxResult:
    tx_hash: str
    block: Optional[int] = None
    gas_used: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CycleReport:
    """What one cycle saw and did; returned by run_cycle()"""

    started_at: float
    finished_at: Optional[float] = None
    price: Optional[Decimal] = None
    target_range: Optional[PriceRange] = None
    decision: Optional[StalenessDecision] = None
    allocation: Optional[AllocationPlan] = None
    swap: Optional[SwapPlan] = None
    closed: Optional[TxResult] = None
    swapped: Optional[TxResult] = None
    opened: Optional[TxResult] = None
    errors: List[str] = field(default_factory=list)
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "price": str(self.price) if self.price is not None else None,
            "target_range": self.target_range.to_dict() if self.target_range else None,
            "decision": self.decision.action.value if self.decision else None,
            "reason": self.decision.reason if self.decision else None,
            "allocation": {
                "base": self.allocation.base_amount,
                "quote": self.allocation.quote_amount,
            } if self.allocation else None,
            "swap": {
                "sell": self.swap.sell_asset.value,
                "buy": self.swap.buy_asset.value,
                "amount": self.swap.sell_amount,
            } if self.swap else None,
            "closed": self.closed.tx_hash if self.closed else None,
            "swapped": self.swapped.tx_hash if self.swapped else None,
            "opened": self.opened.tx_hash if self.opened else None,
            "errors": list(self.errors),
            "skipped": self.skipped,
        }
