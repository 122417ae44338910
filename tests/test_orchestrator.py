"""Cycle flows against fake collaborators"""

import json
import logging
import time
from decimal import Decimal

import pytest

from lp_rebalancer.bot.orchestrator import IDLE, CycleOrchestrator
from lp_rebalancer.core.exceptions import (
    ActionFailed,
    InsufficientFunds,
    MathInvariantViolation,
    OracleUnavailable,
)
from lp_rebalancer.core.types import Asset, Balances, StalenessAction

from conftest import FakeChain, make_config, make_pool_state, make_position


def run(chain, **config_overrides):
    orchestrator = CycleOrchestrator(make_config(**config_overrides), chain.collaborators())
    return orchestrator.run_cycle()


def severities(chain):
    return [severity for severity, _ in chain.notifications]


def test_opens_new_position_when_none_exists(chain):
    report = run(chain)

    assert report.decision.action is StalenessAction.OPEN_NEW
    assert "close_position" not in chain.names()
    assert "execute_swap" not in chain.names()
    assert chain.args_of("open_position") == [(5, 500)]
    assert report.opened.tx_hash == "0xopen"
    assert report.errors == []
    assert chain.names()[-1] == "fetch_native_balance"


def test_keeps_centered_position():
    chain = FakeChain(positions=[make_position(90, 110)])
    report = run(chain)

    assert report.decision.action is StalenessAction.KEEP_OPEN
    assert "close_position" not in chain.names()
    assert "open_position" not in chain.names()
    assert report.allocation is None


def test_replaces_out_of_range_position_with_fresh_balances():
    chain = FakeChain(
        positions=[make_position(80, 90)],
        balances=[Balances(base=0, quote=0, native=10 ** 18), Balances(base=20, quote=2000, native=10 ** 18)],
    )
    report = run(chain)

    names = chain.names()
    assert report.decision.reason == "out_of_range"
    assert chain.args_of("close_position") == [(7,)]
    assert names.index("close_position") < len(names) - 1 - names[::-1].index("fetch_balances")
    assert chain.args_of("open_position") == [(10, 1000)]
    assert report.closed.tx_hash == "0xclose"
    assert report.opened.tx_hash == "0xopen"


def test_fetch_failure_aborts_cycle_but_settles(chain):
    chain.failures["fetch_price"] = OracleUnavailable("feed is stale")
    report = run(chain)

    assert report.decision is None
    assert "open_position" not in chain.names()
    assert any("feed is stale" in error for error in report.errors)
    assert "error" in severities(chain)
    assert "fetch_native_balance" in chain.names()


def test_failed_close_skips_open():
    chain = FakeChain(positions=[make_position(80, 90)])
    chain.failures["close_position"] = ActionFailed("reverted", tx_hash="0xdead")
    report = run(chain)

    assert "open_position" not in chain.names()
    assert report.closed is None
    assert len(report.errors) == 1


def test_failed_swap_does_not_block_open():
    # Worth 2500 quote: the target is 12 base, so 700 quote are sold for 7 base
    chain = FakeChain(balances=[Balances(base=5, quote=2000, native=10 ** 18)])
    chain.failures["execute_swap"] = ActionFailed("slippage")
    report = run(chain, max_deploy_fraction=Decimal(1))

    assert chain.args_of("execute_swap") == [(Asset.QUOTE, 700)]
    assert report.swap.sell_amount == 700
    assert report.swapped is None
    # The sold amount is taken out of the envelope even though the swap failed
    assert chain.args_of("open_position") == [(5, 1300)]
    assert len(report.errors) == 1


def test_swap_sell_amount_is_deducted_without_counting_proceeds():
    chain = FakeChain(balances=[Balances(base=5, quote=2000, native=10 ** 18)])
    report = run(chain, max_deploy_fraction=Decimal(1))

    assert report.swapped.tx_hash == "0xswap"
    assert chain.args_of("open_position") == [(5, 1300)]
    assert chain.names().count("fetch_balances") == 1


def test_one_sided_envelope_in_range_waits_for_next_cycle():
    # Only quote held: the swap buys base, but its proceeds are not counted yet
    chain = FakeChain(balances=[Balances(base=0, quote=2000, native=10 ** 18)])
    report = run(chain, max_deploy_fraction=Decimal(1))

    assert chain.args_of("execute_swap") == [(Asset.QUOTE, 1000)]
    assert (report.allocation.base_amount, report.allocation.quote_amount) == (0, 1000)
    assert "open_position" not in chain.names()
    assert report.errors == []
    assert "error" not in severities(chain)


def test_low_priced_base_token_opens_position():
    # 1e-7 USDC (6 decimals) per 18-decimal token: below one quote unit per whole token
    chain = FakeChain(
        pool_state=make_pool_state(decimals0=18, decimals1=6),
        price=Decimal("0.0000001"),
        balances=[Balances(base=10 ** 24, quote=10 ** 6, native=10 ** 18)],
    )
    report = run(chain)

    assert report.errors == []
    # Inventory worth 1.1 USDC, half of it (0.55 USDC) should be base: buy 4.5e24 base
    assert chain.args_of("execute_swap") == [(Asset.QUOTE, 450000)]
    assert chain.args_of("open_position") == [(5 * 10 ** 23, 50000)]
    assert report.opened.tx_hash == "0xopen"


def test_refresh_after_swap_recomputes_allocation():
    chain = FakeChain(balances=[
        Balances(base=0, quote=2000, native=10 ** 18),
        Balances(base=10, quote=1000, native=10 ** 18),
    ])
    run(chain, max_deploy_fraction=Decimal(1), refresh_after_swap=True)

    names = chain.names()
    assert names.index("execute_swap") < names.index("open_position")
    assert names.count("fetch_balances") == 2
    assert names.index("execute_swap") < len(names) - 1 - names[::-1].index("fetch_balances")
    assert chain.args_of("open_position") == [(10, 1000)]


def test_swaps_can_be_disabled():
    chain = FakeChain(balances=[Balances(base=4, quote=2000, native=10 ** 18)])
    report = run(chain, rebalance_swaps=False)

    assert "execute_swap" not in chain.names()
    assert report.swap is None
    assert chain.args_of("open_position") == [(2, 1000)]


def test_sub_unit_swap_is_skipped():
    # Half of the inventory value is 0.5 base units, which truncates to no swap
    chain = FakeChain(balances=[Balances(base=1, quote=0, native=10 ** 18)])
    report = run(chain)

    assert "execute_swap" not in chain.names()
    assert report.swap is None


def test_empty_allocation_is_a_no_op():
    chain = FakeChain(balances=[Balances(base=0, quote=0, native=10 ** 18)])
    report = run(chain)

    assert report.allocation.is_empty
    assert "open_position" not in chain.names()
    assert report.errors == []


def test_math_violation_halts_open_and_logs_critical(chain, caplog):
    chain.failures["open_position"] = MathInvariantViolation("needs more than allocated")
    with caplog.at_level(logging.WARNING):
        report = run(chain)

    assert report.opened is None
    assert any(error.startswith("open:") for error in report.errors)
    assert any(record.levelno == logging.CRITICAL for record in caplog.records)
    assert "error" in severities(chain)


def test_overlapping_cycle_is_skipped(chain):
    orchestrator = CycleOrchestrator(make_config(), chain.collaborators())
    orchestrator._lock.acquire()
    try:
        report = orchestrator.run_cycle()
    finally:
        orchestrator._lock.release()

    assert report.skipped
    assert chain.calls == []


def test_reentrant_call_from_fetch_is_skipped():
    chain = FakeChain()
    inner = []

    def reentrant_price():
        inner.append(orchestrator.run_cycle())
        return Decimal(100)

    chain.fetch_price = reentrant_price
    orchestrator = CycleOrchestrator(make_config(), chain.collaborators())
    report = orchestrator.run_cycle()

    assert inner[0].skipped
    assert not report.skipped
    assert report.opened is not None
    assert orchestrator.state == IDLE


def test_settling_warns_on_low_gas():
    chain = FakeChain(native=15 * 10 ** 15)  # 0.015 ETH, reserve 0.01, warning at 0.02
    run(chain)

    assert any(severity == "error" and "Low gas" in message for severity, message in chain.notifications)


def test_gas_check_before_open_warns():
    chain = FakeChain(balances=[Balances(base=10, quote=1000, native=0)])
    report = run(chain)

    assert any("before opening" in message for _, message in chain.notifications)
    assert report.opened is not None


def test_fetch_timeout_aborts_cycle():
    chain = FakeChain()

    def slow_price():
        time.sleep(0.5)
        return Decimal(100)

    chain.fetch_price = slow_price
    report = run(chain, call_timeout=0.05)

    assert any("Timed out" in error for error in report.errors)
    assert "open_position" not in chain.names()


def test_preflight_refuses_low_gas():
    chain = FakeChain(native=10 ** 15)
    orchestrator = CycleOrchestrator(make_config(), chain.collaborators())

    with pytest.raises(InsufficientFunds):
        orchestrator.preflight()
    assert severities(chain) == ["critical"]


def test_preflight_announces_start(chain):
    CycleOrchestrator(make_config(), chain.collaborators()).preflight()
    assert severities(chain) == ["info"]
    assert "started" in chain.notifications[0][1]


def test_plan_cycle_does_not_act():
    chain = FakeChain(positions=[make_position(80, 90)])
    plan = CycleOrchestrator(make_config(), chain.collaborators()).plan_cycle()

    assert plan["decision"] == "replace"
    assert plan["reason"] == "out_of_range"
    assert Decimal(plan["pool_price"]) == 100
    assert not {"close_position", "open_position", "execute_swap"} & set(chain.names())
    json.dumps(plan)


def test_report_serializes(chain):
    report = run(chain)
    data = json.loads(json.dumps(report.to_dict()))
    assert data["decision"] == "open_new"
    assert data["opened"] == "0xopen"
    assert data["finished_at"] >= data["started_at"]
