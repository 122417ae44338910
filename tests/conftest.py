"""Shared fixtures and fake collaborators"""

from decimal import Decimal

import pytest

from lp_rebalancer.bot.orchestrator import Collaborators
from lp_rebalancer.core.config import BotConfig
from lp_rebalancer.core.types import Balances, PoolState, Position, TxResult
from lp_rebalancer.utils.math import Q96

POOL = "0x" + "a" * 40
TOKEN0 = "0x" + "1" * 40
TOKEN1 = "0x" + "2" * 40


def make_config(**overrides):
    values = dict(
        rpc_url="http://localhost:8545",
        private_key="0x" + "11" * 32,
        pool_address=POOL,
        base_token=TOKEN0,
        price_feed_id="0x" + "ff" * 32,
        width_fraction=Decimal("0.05"),
        max_deploy_fraction=Decimal("0.5"),
        min_gas_reserve=Decimal("0.01"),
        poll_interval=60.0,
        slippage_bps=50,
        call_timeout=5.0,
    )
    values.update(overrides)
    return BotConfig(**values)


def make_pool_state(**overrides):
    values = dict(
        address=POOL,
        token0=TOKEN0,
        token1=TOKEN1,
        fee=3000,
        tick_spacing=10,
        current_tick=46054,
        sqrt_price_x96=10 * Q96,
        decimals0=0,
        decimals1=0,
        base_is_token0=True,
    )
    values.update(overrides)
    return PoolState(**values)


def make_position(lower, upper, liquidity=1000, position_id=7):
    return Position(
        id=position_id,
        liquidity=liquidity,
        tick_lower=0,
        tick_upper=10,
        price_lower=Decimal(lower),
        price_upper=Decimal(upper),
    )


class FakeChain:
    """
    Records every collaborator call in `calls`, in order.

    `balances` is a list: each fetch_balances() pops the next entry while
    more than one remains, so tests can model post-close/post-swap state.
    Put an exception in `failures[name]` to make that call raise it.
    """

    def __init__(self, pool_state=None, price=Decimal(100), balances=None, positions=(), native=10 ** 18):
        self.pool_state = pool_state or make_pool_state()
        self.price = price
        self.balances = list(balances or [Balances(base=10, quote=1000, native=native)])
        self.positions = list(positions)
        self.native = native
        self.calls = []
        self.notifications = []
        self.failures = {}

    def _call(self, name, *args):
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    def fetch_pool_state(self):
        self._call("fetch_pool_state")
        return self.pool_state

    def fetch_price(self):
        self._call("fetch_price")
        return self.price

    def fetch_balances(self, pool_state):
        self._call("fetch_balances")
        if len(self.balances) > 1:
            return self.balances.pop(0)
        return self.balances[0]

    def fetch_owned_positions(self, pool_state):
        self._call("fetch_owned_positions")
        return list(self.positions)

    def fetch_native_balance(self):
        self._call("fetch_native_balance")
        return self.native

    def close_position(self, position, pool_state=None):
        self._call("close_position", position.id)
        return TxResult(tx_hash="0xclose")

    def open_position(self, pool_state, price_range, base_amount, quote_amount):
        self._call("open_position", base_amount, quote_amount)
        return TxResult(tx_hash="0xopen")

    def execute_swap(self, pool_state, swap_plan):
        self._call("execute_swap", swap_plan.sell_asset, swap_plan.sell_amount)
        return TxResult(tx_hash="0xswap")

    def notify(self, message, severity="info"):
        self.notifications.append((severity, message))

    def names(self):
        return [name for name, _ in self.calls]

    def args_of(self, name):
        return [args for call, args in self.calls if call == name]

    def collaborators(self):
        return Collaborators(
            fetch_pool_state=self.fetch_pool_state,
            fetch_price=self.fetch_price,
            fetch_balances=self.fetch_balances,
            fetch_owned_positions=self.fetch_owned_positions,
            fetch_native_balance=self.fetch_native_balance,
            close_position=self.close_position,
            open_position=self.open_position,
            execute_swap=self.execute_swap,
            notify=self.notify,
        )


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def chain():
    return FakeChain()
