"""Liquidity management operations"""

import logging

from ..core.connection import rpc_errors
from ..core.exceptions import InsufficientFunds, MathInvariantViolation
from ..contracts.nfpm import NFPM
from ..contracts.erc20 import ERC20
from ..utils.math import (
    amounts_for_liquidity,
    atomic_to_ui,
    calculate_slippage_amounts,
    liquidity_for_amounts,
    to_pool_ticks,
)
from ..utils.transactions import to_tx_result

logger = logging.getLogger(__name__)


class LiquidityManager:
    """Open and close Uniswap V3 positions in the managed pool"""

    def __init__(self, manager, config, nfpm=None):
        """
        Args:
            manager: Web3Manager instance with signer
            config: BotConfig (NFPM address and slippage)
            nfpm: NFPM wrapper (created if None)
        """
        self.manager = manager
        self.config = config
        self.nfpm = nfpm or NFPM(manager, config.nfpm_address)

    def _pool_amounts(self, pool_state, base_amount, quote_amount):
        """(amount0, amount1) from base/quote amounts"""
        if pool_state.base_is_token0:
            return base_amount, quote_amount
        return quote_amount, base_amount

    def quote_open(self, pool_state, price_range, base_amount, quote_amount):
        """
        Liquidity and exact token amounts a mint would use for this envelope.

        Returns:
            Dict with pool ticks, liquidity, desired and expected amounts (pool order)

        Raises:
            InsufficientFunds: The envelope cannot fund any liquidity
            MathInvariantViolation: Expected amounts exceed the envelope
        """
        tick_lower, tick_upper = to_pool_ticks(
            price_range.lower_tick, price_range.upper_tick, pool_state.base_is_token0
        )
        amount0, amount1 = self._pool_amounts(pool_state, base_amount, quote_amount)

        liquidity = liquidity_for_amounts(
            pool_state.sqrt_price_x96, tick_lower, tick_upper, amount0, amount1
        )
        if liquidity <= 0:
            raise InsufficientFunds(
                f"Allocation base={base_amount} quote={quote_amount} funds no liquidity "
                f"in ticks [{price_range.lower_tick}, {price_range.upper_tick}]"
            )

        expected0, expected1 = amounts_for_liquidity(
            pool_state.sqrt_price_x96, tick_lower, tick_upper, liquidity
        )
        if expected0 > amount0 or expected1 > amount1:
            raise MathInvariantViolation(
                f"Position needs amount0={expected0} amount1={expected1} but only "
                f"amount0={amount0} amount1={amount1} were allocated"
            )

        return {
            "tick_lower": tick_lower,
            "tick_upper": tick_upper,
            "liquidity": liquidity,
            "amount0_desired": amount0,
            "amount1_desired": amount1,
            "amount0_expected": expected0,
            "amount1_expected": expected1,
        }

    def open_position(self, pool_state, price_range, base_amount, quote_amount):
        """
        Mint a position over price_range funded by at most the given amounts.

        Args:
            pool_state: PoolState of the managed pool
            price_range: Base-oriented PriceRange from the boundary calculator
            base_amount: Base token envelope (atomic)
            quote_amount: Quote token envelope (atomic)

        Returns:
            TxResult of the mint, details carry token_id and the amounts
        """
        quote = self.quote_open(pool_state, price_range, base_amount, quote_amount)
        amount0_min, amount1_min = calculate_slippage_amounts(
            quote["amount0_expected"], quote["amount1_expected"], self.config.slippage_bps
        )

        logger.info(
            "Opening position [%s, %s] with up to %s base / %s quote",
            price_range.lower_price,
            price_range.upper_price,
            atomic_to_ui(base_amount, pool_state.base_decimals),
            atomic_to_ui(quote_amount, pool_state.quote_decimals),
        )

        with rpc_errors("Opening position"):
            for token, amount in (
                (pool_state.token0, quote["amount0_desired"]),
                (pool_state.token1, quote["amount1_desired"]),
            ):
                ERC20(self.manager, token, self.nfpm.tx_builder).approve(self.nfpm.address, amount)

            result = self.nfpm.mint({
                "token0": pool_state.token0,
                "token1": pool_state.token1,
                "fee": pool_state.fee,
                "tick_lower": quote["tick_lower"],
                "tick_upper": quote["tick_upper"],
                "amount0_desired": quote["amount0_desired"],
                "amount1_desired": quote["amount1_desired"],
                "amount0_min": amount0_min,
                "amount1_min": amount1_min,
                "recipient": self.manager.address,
            })

        logger.info("Opened position #%s (liquidity %s)", result["token_id"], quote["liquidity"])
        return to_tx_result(
            result["receipt"],
            token_id=result["token_id"],
            liquidity=quote["liquidity"],
            amount0_expected=quote["amount0_expected"],
            amount1_expected=quote["amount1_expected"],
        )

    def close_position(self, position, pool_state=None):
        """
        Withdraw all liquidity, collect tokens and fees, then burn the NFT.

        When pool_state is given the withdrawal is slippage-bounded against
        the amounts the position currently holds.

        Returns:
            TxResult of the burn, details carry the decrease/collect hashes
        """
        logger.info("Closing position #%s (liquidity %s)", position.id, position.liquidity)
        details = {"token_id": position.id}

        with rpc_errors(f"Closing position #{position.id}"):
            if position.liquidity > 0:
                amount0_min = amount1_min = 0
                if pool_state is not None:
                    tick_lower, tick_upper = to_pool_ticks(
                        position.tick_lower, position.tick_upper, pool_state.base_is_token0
                    )
                    held0, held1 = amounts_for_liquidity(
                        pool_state.sqrt_price_x96, tick_lower, tick_upper, position.liquidity
                    )
                    amount0_min, amount1_min = calculate_slippage_amounts(
                        held0, held1, self.config.slippage_bps
                    )
                receipt = self.nfpm.decrease_liquidity(
                    position.id, position.liquidity, amount0_min, amount1_min
                )
                details["decrease_tx"] = receipt.transactionHash.hex()

            receipt = self.nfpm.collect(position.id)
            details["collect_tx"] = receipt.transactionHash.hex()

            receipt = self.nfpm.burn(position.id)

        logger.info("Closed position #%s", position.id)
        return to_tx_result(receipt, **details)

