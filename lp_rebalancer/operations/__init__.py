from .pools import PoolQuery
from .positions import PositionQuery
from .liquidity import LiquidityManager
from .swap import SwapManager

__all__ = ["PoolQuery", "PositionQuery", "LiquidityManager", "SwapManager"]
