"""Pure decision logic: boundaries, staleness, allocation and swap planning"""

from .boundaries import calculate_price_boundaries, policy_for_pool, pool_converters
from .staleness import evaluate_position, select_active_position
from .allocation import plan_allocation, target_holdings, deployable_amount
from .rebalance import plan_rebalance_swap

__all__ = [
    "calculate_price_boundaries",
    "policy_for_pool",
    "pool_converters",
    "evaluate_position",
    "select_active_position",
    "plan_allocation",
    "target_holdings",
    "deployable_amount",
    "plan_rebalance_swap",
]
