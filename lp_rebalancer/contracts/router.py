"""Uniswap V3 SwapRouter contract wrapper"""

import time

from ..utils.transactions import TransactionBuilder


class SwapRouter:
    """Wrapper for SwapRouter exactInputSingle swaps"""

    def __init__(self, manager, address, tx_builder=None):
        self.manager = manager
        self.address = manager.checksum(address)
        self.contract = manager.get_contract(self.address, "router")
        self.tx_builder = tx_builder or TransactionBuilder(manager)

    def _params(self, token_in, token_out, fee, amount_in, amount_out_min, deadline):
        return (
            self.manager.checksum(token_in),   # tokenIn
            self.manager.checksum(token_out),  # tokenOut
            fee,                               # fee
            self.manager.address,              # recipient
            deadline,                          # deadline
            amount_in,                         # amountIn
            amount_out_min,                    # amountOutMinimum
            0,                                 # sqrtPriceLimitX96 (0 = no limit)
        )

    def simulate(self, token_in, token_out, fee, amount_in, deadline_minutes=30):
        """Expected output of the swap, from an eth_call against the router"""
        deadline = int(time.time()) + deadline_minutes * 60
        params = self._params(token_in, token_out, fee, amount_in, 0, deadline)
        return self.contract.functions.exactInputSingle(params).call({"from": self.manager.address})

    def exact_input_single(self, token_in, token_out, fee, amount_in, amount_out_min, deadline_minutes=30):
        """Execute the swap and return the receipt"""
        deadline = int(time.time()) + deadline_minutes * 60
        params = self._params(token_in, token_out, fee, amount_in, amount_out_min, deadline)
        contract_func = self.contract.functions.exactInputSingle(params)
        return self.tx_builder.build_and_send(contract_func, operation_type="swap")
