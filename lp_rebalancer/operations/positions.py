"""Position query operations"""

import logging

from ..core.connection import rpc_errors
from ..core.types import Position
from ..contracts.nfpm import NFPM
from ..utils.math import from_pool_ticks, tick_to_price

logger = logging.getLogger(__name__)


class PositionQuery:
    """Enumerate the wallet's Uniswap V3 positions in the managed pool"""

    def __init__(self, manager, config, nfpm=None):
        """
        Args:
            manager: Web3Manager instance (its address is the owner queried)
            config: BotConfig (supplies the NFPM address)
            nfpm: NFPM wrapper (created if None)
        """
        self.manager = manager
        self.config = config
        self.nfpm = nfpm or NFPM(manager, config.nfpm_address)

    def _belongs_to_pool(self, raw, pool_state):
        return (
            raw["token0"].lower() == pool_state.token0.lower()
            and raw["token1"].lower() == pool_state.token1.lower()
            and raw["fee"] == pool_state.fee
        )

    def to_position(self, token_id, raw, pool_state):
        """Convert an NFPM positions() record into a base-oriented Position"""
        tick_lower, tick_upper = from_pool_ticks(
            raw["tick_lower"], raw["tick_upper"], pool_state.base_is_token0
        )
        return Position(
            id=token_id,
            liquidity=raw["liquidity"],
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            price_lower=tick_to_price(tick_lower, pool_state.base_decimals, pool_state.quote_decimals),
            price_upper=tick_to_price(tick_upper, pool_state.base_decimals, pool_state.quote_decimals),
        )

    def fetch_owned_positions(self, pool_state):
        """
        All positions owned by the wallet in the given pool, including
        empty ones left behind by earlier cycles.

        Returns:
            List of Position, in NFPM enumeration order
        """
        positions = []
        with rpc_errors("Enumerating positions"):
            count = self.nfpm.balance_of()
            for index in range(count):
                token_id = self.nfpm.token_of_owner_by_index(index)
                raw = self.nfpm.get_position(token_id)
                if self._belongs_to_pool(raw, pool_state):
                    positions.append(self.to_position(token_id, raw, pool_state))

        logger.debug("Found %d position(s) in pool %s (of %d owned)", len(positions), pool_state.address, count)
        return positions
