"""Token swap operations"""

import logging

from web3.exceptions import ContractLogicError

from ..core.connection import rpc_errors
from ..core.exceptions import ActionFailed, InsufficientFunds
from ..contracts.erc20 import ERC20
from ..contracts.router import SwapRouter
from ..utils.math import atomic_to_ui
from ..utils.transactions import to_tx_result

logger = logging.getLogger(__name__)


class SwapManager:
    """Execute rebalancing swaps through the managed pool on the V3 SwapRouter"""

    def __init__(self, manager, config, router=None):
        """
        Args:
            manager: Web3Manager instance with signer
            config: BotConfig (router address and slippage)
            router: SwapRouter wrapper (created if None)
        """
        self.manager = manager
        self.config = config
        self.router = router or SwapRouter(manager, config.router_address)

    def execute_swap(self, pool_state, swap_plan, deadline_minutes=30):
        """
        Sell swap_plan.sell_amount of the sell asset for the buy asset.

        The swap is simulated first; the minimum output is the simulated
        output less the configured slippage.

        Returns:
            TxResult with amount_in, expected_out and min_out in details

        Raises:
            InsufficientFunds: Wallet holds less than the sell amount
            ActionFailed: Simulation reverted, quoted zero, or the tx failed
        """
        token_in = pool_state.token_for(swap_plan.sell_asset)
        token_out = pool_state.token_for(swap_plan.buy_asset)
        amount_in = swap_plan.sell_amount
        in_decimals = pool_state.decimals_for(swap_plan.sell_asset)
        out_decimals = pool_state.decimals_for(swap_plan.buy_asset)

        with rpc_errors("Executing swap"):
            token = ERC20(self.manager, token_in, self.router.tx_builder)
            balance = token.balance_of()
            if balance < amount_in:
                raise InsufficientFunds(
                    f"Swap needs {atomic_to_ui(amount_in, in_decimals)} {swap_plan.sell_asset.value} "
                    f"but wallet holds {atomic_to_ui(balance, in_decimals)}"
                )

            token.approve(self.router.address, amount_in)

            try:
                expected_out = self.router.simulate(
                    token_in, token_out, pool_state.fee, amount_in, deadline_minutes
                )
            except ContractLogicError as e:
                raise ActionFailed(f"Swap simulation reverted: {e}") from e
            if expected_out <= 0:
                raise ActionFailed(f"Swap of {amount_in} {swap_plan.sell_asset.value} quotes zero output")

            min_out = expected_out * (10000 - self.config.slippage_bps) // 10000
            logger.info(
                "Swapping %s %s for ~%s %s (min %s)",
                atomic_to_ui(amount_in, in_decimals),
                swap_plan.sell_asset.value,
                atomic_to_ui(expected_out, out_decimals),
                swap_plan.buy_asset.value,
                atomic_to_ui(min_out, out_decimals),
            )

            receipt = self.router.exact_input_single(
                token_in, token_out, pool_state.fee, amount_in, min_out, deadline_minutes
            )

        return to_tx_result(receipt, amount_in=amount_in, expected_out=expected_out, min_out=min_out)
