"""Token balance query operations"""

import logging

from .connection import rpc_errors
from .types import Balances
from ..contracts.erc20 import ERC20
from ..utils.math import atomic_to_ui

logger = logging.getLogger(__name__)


class BalanceQuery:
    """Query the wallet's native and pool-token balances"""

    def __init__(self, manager):
        """
        Args:
            manager: Web3Manager instance (its address is the wallet queried)
        """
        self.manager = manager

    def get_native_balance(self):
        """Native gas balance in wei"""
        with rpc_errors("Reading native balance"):
            return self.manager.get_native_balance()

    def fetch_balances(self, pool_state):
        """
        Balances of the pool's base and quote tokens plus native gas.

        Returns:
            Balances in atomic units
        """
        with rpc_errors("Reading balances"):
            native = self.manager.get_native_balance()
            base = ERC20(self.manager, pool_state.base_token).balance_of()
            quote = ERC20(self.manager, pool_state.quote_token).balance_of()

        logger.debug(
            "Balances: %s base, %s quote, %s native",
            atomic_to_ui(base, pool_state.base_decimals),
            atomic_to_ui(quote, pool_state.quote_decimals),
            atomic_to_ui(native, 18),
        )
        return Balances(base=base, quote=quote, native=native)
