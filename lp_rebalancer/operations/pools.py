"""Pool query operations"""

import logging

from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ..core.connection import rpc_errors
from ..core.exceptions import ConfigError, PoolNotFound
from ..core.types import PoolState
from ..contracts.pool import Pool
from ..contracts.erc20 import ERC20

logger = logging.getLogger(__name__)


class PoolQuery:
    """Read the managed pool's live state"""

    def __init__(self, manager, config):
        """
        Args:
            manager: Web3Manager instance
            config: BotConfig (supplies the base token)
        """
        self.manager = manager
        self.config = config
        # Token decimals never change, so they are read once per token
        self._decimals = {}

    def _token_decimals(self, address):
        key = address.lower()
        if key not in self._decimals:
            self._decimals[key] = ERC20(self.manager, address).decimals
        return self._decimals[key]

    def fetch_pool_state(self, address=None):
        """
        Fetch slot0, fee, spacing and token metadata for a pool.

        Args:
            address: Pool address (defaults to the configured pool)

        Returns:
            PoolState

        Raises:
            PoolNotFound: No contract at the address or it is not a V3 pool
            ConfigError: The configured base token is not in the pool
            ConnectivityError: The RPC endpoint failed
        """
        address = address or self.config.pool_address
        with rpc_errors(f"Reading pool {address}"):
            if not self.manager.has_code(address):
                raise PoolNotFound(f"No contract deployed at {address}")

            pool = Pool(self.manager, address)
            try:
                token0 = pool.token0
                token1 = pool.token1
                fee = pool.fee
                tick_spacing = pool.tick_spacing
                slot0 = pool.slot0()
            except (ContractLogicError, BadFunctionCallOutput) as e:
                raise PoolNotFound(f"{address} is not a Uniswap V3 pool: {e}") from e

            base = self.config.base_token.lower()
            if base not in (token0.lower(), token1.lower()):
                raise ConfigError(
                    f"BASE_TOKEN {self.config.base_token} is neither token0 ({token0}) "
                    f"nor token1 ({token1}) of pool {address}"
                )

            state = PoolState(
                address=pool.address,
                token0=token0,
                token1=token1,
                fee=fee,
                tick_spacing=tick_spacing,
                current_tick=slot0[1],
                sqrt_price_x96=slot0[0],
                decimals0=self._token_decimals(token0),
                decimals1=self._token_decimals(token1),
                base_is_token0=base == token0.lower(),
            )

        logger.debug("Pool %s: tick=%s fee=%s spacing=%s", state.address, state.current_tick, fee, tick_spacing)
        return state
