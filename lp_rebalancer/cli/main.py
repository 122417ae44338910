"""Main CLI entry point"""

import sys
import json
import signal
import logging
import argparse

from ..core.config import BotConfig
from ..core.connection import Web3Manager
from ..core.exceptions import ConfigError, InsufficientFunds, RebalancerError
from ..bot import CycleOrchestrator, CycleScheduler, build_collaborators
from ..services.notifier import DiscordNotifier
from ..logging_setup import configure_logging

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_CONFIG = 2


def load_config(args):
    """Load config from the environment, applying the --log-level override"""
    config = BotConfig.from_env()
    configure_logging(args.log_level or config.log_level)
    return config


def build_orchestrator(config):
    """Connect to the node and wire the live collaborators"""
    manager = Web3Manager(config)
    notifier = DiscordNotifier(config.discord_webhook_url, timeout=config.call_timeout)
    logger.info("Connected to chain %s as %s", manager.chain_id, manager.address)
    return CycleOrchestrator(config, build_collaborators(manager, config, notifier))


def cmd_run(args):
    """Preflight, then cycle every CHECK_INTERVAL_SECONDS until stopped"""
    config = load_config(args)
    orchestrator = build_orchestrator(config)
    orchestrator.preflight()

    scheduler = CycleScheduler(orchestrator, config.poll_interval)
    signal.signal(signal.SIGTERM, lambda signum, frame: scheduler.stop())
    try:
        scheduler.run(max_cycles=args.max_cycles)
    except KeyboardInterrupt:
        scheduler.stop()
        print("\nStopped.", file=sys.stderr)


def cmd_once(args):
    """Preflight and a single cycle"""
    config = load_config(args)
    orchestrator = build_orchestrator(config)
    orchestrator.preflight()

    report = orchestrator.run_cycle()
    print(json.dumps(report.to_dict(), indent=2, default=str))
    if report.errors:
        sys.exit(EXIT_FAILURE)


def cmd_plan(args):
    """Show what the next cycle would do, without sending transactions"""
    config = load_config(args)
    orchestrator = build_orchestrator(config)
    print(json.dumps(orchestrator.plan_cycle(), indent=2, default=str))


def cmd_check_config(args):
    """Validate configuration and print it with secrets redacted"""
    config = load_config(args)
    print(json.dumps(config.redacted(), indent=2, default=str))


def build_parser():
    parser = argparse.ArgumentParser(
        prog="lp-rebalancer",
        description="LP Rebalancer - keep a Uniswap V3 position centered on the oracle price",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands overview:
  run           Preflight, then run a cycle every CHECK_INTERVAL_SECONDS
  once          Preflight and run a single cycle, print the report
  plan          Read-only: print target range, decision, allocation and swap
  check-config  Validate configuration and print it (secrets redacted)

examples:
  lp-rebalancer check-config
  lp-rebalancer plan
  lp-rebalancer once --log-level DEBUG
  lp-rebalancer run

configuration:
  RPC_URL, POOL_ADDRESS, BASE_TOKEN, ...   Set in .env file
  PRIVATE_KEY                               Set in wallet.env
""",
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    run_parser = subparsers.add_parser("run", help="Run the bot loop")
    run_parser.add_argument("--max-cycles", type=int, default=None, help="Stop after N cycles")
    run_parser.set_defaults(func=cmd_run)

    once_parser = subparsers.add_parser("once", help="Run a single cycle")
    once_parser.set_defaults(func=cmd_once)

    plan_parser = subparsers.add_parser("plan", help="Show the next cycle's plan without acting")
    plan_parser.set_defaults(func=cmd_plan)

    check_parser = subparsers.add_parser("check-config", help="Validate configuration")
    check_parser.set_defaults(func=cmd_check_config)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_FAILURE)

    try:
        args.func(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG)
    except InsufficientFunds as e:
        print(f"Startup check failed: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILURE)
    except RebalancerError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
