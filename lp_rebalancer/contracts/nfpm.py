"""Uniswap V3 NonfungiblePositionManager contract wrapper"""

import time

from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ..core.exceptions import PositionError
from ..utils.transactions import TransactionBuilder

MAX_UINT128 = 2 ** 128 - 1


class NFPM:
    """Wrapper for NonfungiblePositionManager interactions"""

    def __init__(self, manager, address, tx_builder=None):
        """
        Args:
            manager: Web3Manager instance
            address: NonfungiblePositionManager address
            tx_builder: TransactionBuilder (created if None)
        """
        self.manager = manager
        self.address = manager.checksum(address)
        self.contract = manager.get_contract(self.address, "nfpm")
        self.tx_builder = tx_builder or TransactionBuilder(manager)

    def get_position(self, token_id):
        """
        Get position data by token ID.
        Returns dict with position fields.
        """
        try:
            pos = self.contract.functions.positions(token_id).call()
        except (ContractLogicError, BadFunctionCallOutput) as e:
            raise PositionError(f"Position {token_id} not found: {e}") from e

        return {
            "token0": pos[2],
            "token1": pos[3],
            "fee": pos[4],
            "tick_lower": pos[5],
            "tick_upper": pos[6],
            "liquidity": pos[7],
            "tokens_owed_0": pos[10],
            "tokens_owed_1": pos[11],
        }

    def balance_of(self, address=None):
        """Get number of positions owned by address"""
        addr = address or self.manager.address
        return self.contract.functions.balanceOf(addr).call()

    def token_of_owner_by_index(self, index, address=None):
        """Get token ID at index for owner"""
        addr = address or self.manager.address
        return self.contract.functions.tokenOfOwnerByIndex(addr, index).call()

    def mint(self, params, gas_buffer=1.2):
        """
        Mint new liquidity position.

        Args:
            params: dict with token0, token1, fee, tick_lower, tick_upper,
                   amount0_desired, amount1_desired, amount0_min, amount1_min,
                   recipient, deadline
            gas_buffer: multiplier for gas estimate
        """
        mint_params = (
            Web3.to_checksum_address(params["token0"]),
            Web3.to_checksum_address(params["token1"]),
            params["fee"],
            params["tick_lower"],
            params["tick_upper"],
            params["amount0_desired"],
            params["amount1_desired"],
            params["amount0_min"],
            params["amount1_min"],
            params["recipient"],
            params.get("deadline", int(time.time()) + 1800),
        )

        contract_func = self.contract.functions.mint(mint_params)
        receipt = self.tx_builder.build_and_send(
            contract_func,
            operation_type="mint",
            gas_buffer=gas_buffer
        )

        # Parse token ID from event
        events = self.contract.events.IncreaseLiquidity().process_receipt(receipt)
        token_id = events[0]["args"]["tokenId"] if events else None

        return {"receipt": receipt, "token_id": token_id}

    def decrease_liquidity(self, token_id, liquidity, amount0_min=0, amount1_min=0, deadline=None):
        """Decrease liquidity from position"""
        params = (
            token_id,
            liquidity,
            amount0_min,
            amount1_min,
            deadline or int(time.time()) + 1800,
        )

        contract_func = self.contract.functions.decreaseLiquidity(params)
        return self.tx_builder.build_and_send(contract_func, operation_type="decreaseLiquidity")

    def collect(self, token_id, recipient=None):
        """Collect everything owed to the position (withdrawn tokens and fees)"""
        params = (
            token_id,
            recipient or self.manager.address,
            MAX_UINT128,
            MAX_UINT128,
        )

        contract_func = self.contract.functions.collect(params)
        return self.tx_builder.build_and_send(contract_func, operation_type="collect")

    def burn(self, token_id):
        """Burn position NFT (must have 0 liquidity and collected all tokens)"""
        contract_func = self.contract.functions.burn(token_id)
        return self.tx_builder.build_and_send(contract_func, operation_type="burn")
