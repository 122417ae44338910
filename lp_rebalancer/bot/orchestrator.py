"""One rebalancing cycle: fetch state, decide, act, settle"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, List

from ..core.exceptions import ConnectivityError, InsufficientFunds, MathInvariantViolation
from ..core.types import (
    AllocationPlan,
    Asset,
    Balances,
    CycleReport,
    PoolState,
    Position,
    StalenessAction,
)
from ..services.notifier import CRITICAL, ERROR, INFO
from ..strategy import (
    calculate_price_boundaries,
    evaluate_position,
    plan_allocation,
    plan_rebalance_swap,
    policy_for_pool,
    pool_converters,
    select_active_position,
    target_holdings,
)
from ..utils.math import atomic_to_ui, sqrt_price_x96_to_price

logger = logging.getLogger(__name__)

IDLE = "IDLE"
FETCHING = "FETCHING"
DECIDING = "DECIDING"
ACTING = "ACTING"
SETTLING = "SETTLING"


@dataclass
class Collaborators:
    """
    Everything the orchestrator talks to, as plain callables.

    The live wiring is in `build_collaborators`; tests pass fakes.
    """

    fetch_pool_state: Callable[[], PoolState]
    fetch_price: Callable[[], Any]
    fetch_balances: Callable[[PoolState], Balances]
    fetch_owned_positions: Callable[[PoolState], List[Position]]
    fetch_native_balance: Callable[[], int]
    close_position: Callable[..., Any]
    open_position: Callable[..., Any]
    execute_swap: Callable[..., Any]
    notify: Callable[..., Any]


@dataclass
class Snapshot:
    pool_state: PoolState
    price: Any
    balances: Balances
    positions: List[Position]


@dataclass
class Decision:
    policy: Any
    target_range: Any
    position: Any
    staleness: Any


def build_collaborators(manager, config, notifier):
    """Wire the on-chain and HTTP implementations for a live bot"""
    from ..core.balances import BalanceQuery
    from ..operations import LiquidityManager, PoolQuery, PositionQuery, SwapManager
    from ..services.oracle import PythPriceOracle

    pools = PoolQuery(manager, config)
    positions = PositionQuery(manager, config)
    balances = BalanceQuery(manager)
    liquidity = LiquidityManager(manager, config)
    swaps = SwapManager(manager, config)
    oracle = PythPriceOracle(config)

    return Collaborators(
        fetch_pool_state=lambda: pools.fetch_pool_state(config.pool_address),
        fetch_price=oracle.fetch_price,
        fetch_balances=balances.fetch_balances,
        fetch_owned_positions=positions.fetch_owned_positions,
        fetch_native_balance=balances.get_native_balance,
        close_position=liquidity.close_position,
        open_position=liquidity.open_position,
        execute_swap=swaps.execute_swap,
        notify=notifier.notify,
    )


class CycleOrchestrator:
    """
    Runs one decision cycle at a time against injected collaborators.

    Fetch failures abort the cycle. Action failures are reported and
    the cycle carries on where that is safe: a failed close skips the
    open, a failed swap does not. Settling always runs.
    """

    def __init__(self, config, collaborators, clock=time.time):
        self.config = config
        self.c = collaborators
        self.clock = clock
        self.state = IDLE
        self._lock = threading.Lock()

    def _set_state(self, state):
        logger.debug("Cycle state %s -> %s", self.state, state)
        self.state = state

    # --- startup ---------------------------------------------------------

    def preflight(self):
        """
        Check the native gas balance before the first cycle.

        Raises:
            InsufficientFunds: Below MIN_GAS_BALANCE (notified as critical)
        """
        native = self.c.fetch_native_balance()
        if native < self.config.min_gas_reserve_wei:
            message = (
                f"Native balance {atomic_to_ui(native, 18)} is below the minimum gas reserve "
                f"{self.config.min_gas_reserve}. Refusing to start."
            )
            logger.critical(message)
            self.c.notify(message, CRITICAL)
            raise InsufficientFunds(message)

        logger.info("Preflight ok: native balance %s", atomic_to_ui(native, 18))
        self.c.notify(
            f"LP rebalancer started for pool {self.config.pool_address} "
            f"(range +/-{self.config.width_fraction}, interval {self.config.poll_interval}s)",
            INFO,
        )

    # --- cycle -----------------------------------------------------------

    def run_cycle(self):
        """
        Run one cycle and return its CycleReport.

        An overlapping call returns immediately with skipped=True.
        """
        report = CycleReport(started_at=self.clock())
        if not self._lock.acquire(blocking=False):
            logger.warning("Previous cycle still running, skipping this one")
            report.skipped = True
            report.finished_at = self.clock()
            return report

        try:
            self._run(report)
        finally:
            try:
                self._settle(report)
            finally:
                report.finished_at = self.clock()
                self._set_state(IDLE)
                self._lock.release()

        logger.info("Cycle finished in %.1fs", report.finished_at - report.started_at)
        return report

    def _run(self, report):
        self._set_state(FETCHING)
        try:
            snapshot = self.fetch_snapshot()
        except Exception as e:
            self._report_failure(report, "Fetching cycle inputs failed", e)
            return
        report.price = snapshot.price

        try:
            self._set_state(DECIDING)
            decision = self.decide(snapshot)
            report.target_range = decision.target_range
            report.decision = decision.staleness

            self._set_state(ACTING)
            self._act(report, snapshot, decision)
        except Exception as e:
            self._report_failure(report, "Cycle failed", e)

    def fetch_snapshot(self):
        """
        Pool state and price first, then balances and positions, all on a
        thread pool with a per-call timeout.
        """
        timeout = self.config.call_timeout
        executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="fetch")
        try:
            price_future = executor.submit(self.c.fetch_price)
            pool_future = executor.submit(self.c.fetch_pool_state)
            pool_state = self._result(pool_future, "pool state", timeout)

            balances_future = executor.submit(self.c.fetch_balances, pool_state)
            positions_future = executor.submit(self.c.fetch_owned_positions, pool_state)

            price = self._result(price_future, "price", timeout)
            balances = self._result(balances_future, "balances", timeout)
            positions = self._result(positions_future, "positions", timeout)
        finally:
            # Hung calls are abandoned, not waited on
            executor.shutdown(wait=False)

        logger.info(
            "Fetched: price=%s tick=%s balances base=%s quote=%s, %d position(s)",
            price,
            pool_state.current_tick,
            atomic_to_ui(balances.base, pool_state.base_decimals),
            atomic_to_ui(balances.quote, pool_state.quote_decimals),
            len(positions),
        )
        return Snapshot(pool_state=pool_state, price=price, balances=balances, positions=positions)

    def _result(self, future, what, timeout):
        try:
            return future.result(timeout=timeout)
        except FutureTimeout:
            future.cancel()
            raise ConnectivityError(f"Timed out after {timeout}s fetching {what}")

    def decide(self, snapshot):
        """Target range and staleness decision for a snapshot (pure)"""
        pool_state = snapshot.pool_state
        policy = policy_for_pool(pool_state, self.config.width_fraction)
        to_tick, to_price = pool_converters(pool_state)
        target_range = calculate_price_boundaries(snapshot.price, policy, to_tick, to_price)

        position = select_active_position(snapshot.positions)
        staleness = evaluate_position(position, target_range, snapshot.price, policy)

        logger.info(
            "Target range [%s, %s] ticks [%s, %s]; decision %s (%s)",
            target_range.lower_price,
            target_range.upper_price,
            target_range.lower_tick,
            target_range.upper_tick,
            staleness.action.value,
            staleness.reason,
        )
        return Decision(policy=policy, target_range=target_range, position=position, staleness=staleness)

    def plan_swap(self, balances, target_range, price, pool_state):
        """Swap toward the target holdings, or None (also None when disabled or unaffordable)"""
        if not self.config.rebalance_swaps:
            return None
        wanted = target_holdings(
            balances, target_range, price, pool_state.base_decimals, pool_state.quote_decimals
        )
        try:
            return plan_rebalance_swap(
                wanted, balances, price, pool_state.base_decimals, pool_state.quote_decimals
            )
        except InsufficientFunds as e:
            logger.warning("Skipping rebalance swap: %s", e)
            return None

    def plan_cycle(self):
        """
        Fetch and decide without acting.

        The allocation and swap are computed from current balances, so
        after a replace they do not include what the close would release.
        """
        snapshot = self.fetch_snapshot()
        decision = self.decide(snapshot)
        allocation = plan_allocation(
            snapshot.balances, decision.target_range, snapshot.price, self.config.max_deploy_fraction
        )
        swap = self.plan_swap(snapshot.balances, decision.target_range, snapshot.price, snapshot.pool_state)
        return {
            "price": str(snapshot.price),
            "pool_price": str(sqrt_price_x96_to_price(
                snapshot.pool_state.sqrt_price_x96,
                snapshot.pool_state.base_decimals,
                snapshot.pool_state.quote_decimals,
                snapshot.pool_state.base_is_token0,
            )),
            "current_tick": snapshot.pool_state.current_tick,
            "target_range": decision.target_range.to_dict(),
            "position": decision.position.to_dict() if decision.position else None,
            "decision": decision.staleness.action.value,
            "reason": decision.staleness.reason,
            "drift": str(decision.staleness.drift) if decision.staleness.drift is not None else None,
            "allocation": {"base": allocation.base_amount, "quote": allocation.quote_amount},
            "swap": {
                "sell": swap.sell_asset.value,
                "buy": swap.buy_asset.value,
                "amount": swap.sell_amount,
            } if swap else None,
        }

    def _act(self, report, snapshot, decision):
        pool_state = snapshot.pool_state
        balances = snapshot.balances
        action = decision.staleness.action

        if action is StalenessAction.KEEP_OPEN:
            logger.info("Position #%s stays open", decision.position.id)
            return

        if action is StalenessAction.REPLACE:
            try:
                report.closed = self.c.close_position(decision.position, pool_state)
            except MathInvariantViolation as e:
                self._report_invariant(report, "close", e)
                return
            except Exception as e:
                # The old position still holds the funds; opening now would underfund
                self._report_failure(report, f"Closing position #{decision.position.id} failed", e)
                return
            self.c.notify(f"Closed position #{decision.position.id} ({decision.staleness.reason})", INFO)
            balances = self.c.fetch_balances(pool_state)

        self._open(report, snapshot, decision, balances)

    def _open(self, report, snapshot, decision, balances):
        pool_state = snapshot.pool_state
        target_range = decision.target_range
        price = snapshot.price

        allocation = plan_allocation(balances, target_range, price, self.config.max_deploy_fraction)
        swap = self.plan_swap(balances, target_range, price, pool_state)

        if swap is not None:
            report.swap = swap
            try:
                report.swapped = self.c.execute_swap(pool_state, swap)
            except MathInvariantViolation as e:
                self._report_invariant(report, "swap", e)
            except Exception as e:
                self._report_failure(report, "Rebalance swap failed", e)

            if self.config.refresh_after_swap:
                balances = self.c.fetch_balances(pool_state)
                allocation = plan_allocation(balances, target_range, price, self.config.max_deploy_fraction)
            else:
                allocation = self._without_sold(allocation, swap)

        report.allocation = allocation
        if allocation.is_empty:
            logger.info("Nothing to deploy, no position opened")
            return
        if target_range.lower_price < price < target_range.upper_price and (
            allocation.base_amount == 0 or allocation.quote_amount == 0
        ):
            # An in-range position needs both tokens; the next cycle sees the swapped balances
            logger.info(
                "Only one side funded inside the range (base=%d quote=%d), no position opened",
                allocation.base_amount,
                allocation.quote_amount,
            )
            return

        if balances.native < self.config.min_gas_reserve_wei:
            message = (
                f"Native balance {atomic_to_ui(balances.native, 18)} is below the gas reserve "
                f"{self.config.min_gas_reserve} before opening"
            )
            logger.warning(message)
            self.c.notify(message, ERROR)

        try:
            report.opened = self.c.open_position(
                pool_state, target_range, allocation.base_amount, allocation.quote_amount
            )
        except MathInvariantViolation as e:
            self._report_invariant(report, "open", e)
            return
        except Exception as e:
            self._report_failure(report, "Opening position failed", e)
            return

        self.c.notify(
            f"Opened position [{target_range.lower_price}, {target_range.upper_price}] with "
            f"{atomic_to_ui(allocation.base_amount, pool_state.base_decimals)} base / "
            f"{atomic_to_ui(allocation.quote_amount, pool_state.quote_decimals)} quote",
            INFO,
        )

    def _without_sold(self, allocation, swap):
        """Take the sold amount out of the envelope; proceeds are never counted"""
        if swap.sell_asset is Asset.BASE:
            return AllocationPlan(
                base_amount=max(0, allocation.base_amount - swap.sell_amount),
                quote_amount=allocation.quote_amount,
            )
        return AllocationPlan(
            base_amount=allocation.base_amount,
            quote_amount=max(0, allocation.quote_amount - swap.sell_amount),
        )

    def _settle(self, report):
        self._set_state(SETTLING)
        try:
            native = self.c.fetch_native_balance()
        except Exception as e:
            logger.error("Could not read native balance while settling: %s", e)
            report.errors.append(f"settle: {e}")
            return

        if native < self.config.gas_warning_wei:
            message = (
                f"Low gas: native balance {atomic_to_ui(native, 18)} is below "
                f"{self.config.gas_warning_multiplier}x the reserve of {self.config.min_gas_reserve}"
            )
            logger.warning(message)
            self.c.notify(message, ERROR)

    def _report_failure(self, report, what, error):
        logger.error("%s: %s", what, error, exc_info=True)
        report.errors.append(f"{what}: {error}")
        self.c.notify(f"{what}: {error}", ERROR)

    def _report_invariant(self, report, action, error):
        logger.critical("Invariant violated during %s, action halted: %s", action, error, exc_info=True)
        report.errors.append(f"{action}: {error}")
        self.c.notify(f"Invariant violated during {action}: {error}", ERROR)
