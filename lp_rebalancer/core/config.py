"""Configuration loading and validation"""

import os
import json
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigError

# Shared ABIs are inside the package (not user-configurable)
PACKAGE_ABIS = Path(__file__).parent.parent / "abis.json"

# Uniswap V3 periphery on Ethereum mainnet (same addresses on most L2s)
DEFAULT_NFPM_ADDRESS = "0xC36442b4a4522E871399CD717aBDD847Ab11FE88"
DEFAULT_ROUTER_ADDRESS = "0xE592427A0AEce114a6C60Bb5fB2A2B54DF4A1E45"
DEFAULT_HERMES_URL = "https://hermes.pyth.network"

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")

_abis = None


def get_abi(name):
    """Get a contract ABI by name from the packaged abis.json"""
    global _abis
    if _abis is None:
        if not PACKAGE_ABIS.exists():
            raise ConfigError(f"Shared ABIs not found: {PACKAGE_ABIS}")
        with open(PACKAGE_ABIS) as f:
            _abis = json.load(f)
    if name not in _abis:
        raise ConfigError(f"ABI not found: {name}")
    return _abis[name]


@dataclass(frozen=True)
class BotConfig:
    """
    Flat set of named parameters for one bot instance.

    Ratios are fractions (0.05 = 5%). `min_gas_reserve` is in ether, the
    other amounts are plain numbers. Build with `BotConfig.from_env()` so
    every value is validated before the first cycle runs.
    """

    rpc_url: str
    private_key: str
    pool_address: str
    base_token: str
    price_feed_id: str
    width_fraction: Decimal
    max_deploy_fraction: Decimal
    min_gas_reserve: Decimal
    poll_interval: float
    slippage_bps: int
    hermes_url: str = DEFAULT_HERMES_URL
    price_max_age: int = 60
    gas_warning_multiplier: Decimal = Decimal(2)
    call_timeout: float = 60.0
    rebalance_swaps: bool = True
    refresh_after_swap: bool = False
    nfpm_address: str = DEFAULT_NFPM_ADDRESS
    router_address: str = DEFAULT_ROUTER_ADDRESS
    discord_webhook_url: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        problems = self.validate()
        if problems:
            raise ConfigError("Invalid configuration: " + "; ".join(problems))

    def validate(self):
        """Return a list of human-readable problems (empty when valid)"""
        problems = []
        if not 0 < self.width_fraction < 1:
            problems.append(f"PRICE_RANGE_PERCENTAGE must be in (0, 1), got {self.width_fraction}")
        if not 0 < self.max_deploy_fraction <= 1:
            problems.append(f"MAX_TOKEN_DEPLOY_PERCENTAGE must be in (0, 1], got {self.max_deploy_fraction}")
        if self.min_gas_reserve < 0:
            problems.append(f"MIN_GAS_BALANCE must be >= 0, got {self.min_gas_reserve}")
        if self.gas_warning_multiplier < 1:
            problems.append(f"GAS_WARNING_MULTIPLIER must be >= 1, got {self.gas_warning_multiplier}")
        if self.poll_interval <= 0:
            problems.append(f"CHECK_INTERVAL_SECONDS must be positive, got {self.poll_interval}")
        if self.call_timeout <= 0:
            problems.append(f"CALL_TIMEOUT_SECONDS must be positive, got {self.call_timeout}")
        if not 0 <= self.slippage_bps < 10000:
            problems.append(f"SLIPPAGE_BPS must be in [0, 10000), got {self.slippage_bps}")
        if self.price_max_age <= 0:
            problems.append(f"PRICE_MAX_AGE must be positive, got {self.price_max_age}")
        for name in ("pool_address", "base_token", "nfpm_address", "router_address"):
            value = getattr(self, name)
            if not (value.startswith("0x") and len(value) == 42):
                problems.append(f"{name} is not a valid address: {value}")
        return problems

    @property
    def min_gas_reserve_wei(self) -> int:
        return int(self.min_gas_reserve * 10 ** 18)

    @property
    def gas_warning_wei(self) -> int:
        return int(self.min_gas_reserve * self.gas_warning_multiplier * 10 ** 18)

    def redacted(self):
        """Dict view safe for printing (no private key, no webhook secret)"""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "private_key":
                value = "***"
            elif f.name == "discord_webhook_url" and value:
                value = value.split("/api/webhooks/")[0] + "/api/webhooks/***"
            elif isinstance(value, Decimal):
                value = str(value)
            result[f.name] = value
        return result

    @classmethod
    def from_env(cls, env=None, load_files=True):
        """
        Build the config from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)
            load_files: If True, load .env and wallet.env into os.environ first

        Raises:
            ConfigError: listing every missing or malformed value
        """
        if load_files:
            load_dotenv()
            load_dotenv("wallet.env")
        env = os.environ if env is None else env

        reader = _EnvReader(env)
        values = dict(
            rpc_url=reader.string("RPC_URL"),
            private_key=reader.string("PRIVATE_KEY"),
            pool_address=reader.string("POOL_ADDRESS"),
            base_token=reader.string("BASE_TOKEN"),
            price_feed_id=reader.string("PYTH_PRICE_FEED_ID"),
            width_fraction=reader.decimal("PRICE_RANGE_PERCENTAGE"),
            max_deploy_fraction=reader.decimal("MAX_TOKEN_DEPLOY_PERCENTAGE"),
            min_gas_reserve=reader.decimal("MIN_GAS_BALANCE"),
            poll_interval=reader.number("CHECK_INTERVAL_SECONDS"),
            slippage_bps=reader.integer("SLIPPAGE_BPS"),
            hermes_url=reader.string("PYTH_HERMES_URL", DEFAULT_HERMES_URL),
            price_max_age=reader.integer("PRICE_MAX_AGE", 60),
            gas_warning_multiplier=reader.decimal("GAS_WARNING_MULTIPLIER", Decimal(2)),
            call_timeout=reader.number("CALL_TIMEOUT_SECONDS", 60.0),
            rebalance_swaps=reader.boolean("REBALANCE_SWAPS", True),
            refresh_after_swap=reader.boolean("REFRESH_AFTER_SWAP", False),
            nfpm_address=reader.string("NFPM_ADDRESS", DEFAULT_NFPM_ADDRESS),
            router_address=reader.string("SWAP_ROUTER_ADDRESS", DEFAULT_ROUTER_ADDRESS),
            discord_webhook_url=reader.string("DISCORD_WEBHOOK_URL", None),
            log_level=reader.string("LOG_LEVEL", "INFO").upper(),
        )
        if reader.problems:
            raise ConfigError("Invalid configuration: " + "; ".join(reader.problems))
        return cls(**values)


class _EnvReader:
    """Collects every problem instead of failing on the first one"""

    _REQUIRED = object()

    def __init__(self, env):
        self.env = env
        self.problems = []

    def _raw(self, name, default):
        value = self.env.get(name)
        if value is None or value.strip() == "":
            if default is self._REQUIRED:
                self.problems.append(f"Missing environment variable: {name}")
            return None
        return value.strip()

    def string(self, name, default=_REQUIRED):
        value = self._raw(name, default)
        if value is None:
            return None if default is self._REQUIRED else default
        return value

    def decimal(self, name, default=_REQUIRED):
        value = self._raw(name, default)
        if value is None:
            return Decimal(0) if default is self._REQUIRED else default
        try:
            return Decimal(value)
        except InvalidOperation:
            self.problems.append(f"{name} is not a number: {value}")
            return Decimal(0)

    def number(self, name, default=_REQUIRED):
        value = self._raw(name, default)
        if value is None:
            return 0.0 if default is self._REQUIRED else default
        try:
            return float(value)
        except ValueError:
            self.problems.append(f"{name} is not a number: {value}")
            return 0.0

    def integer(self, name, default=_REQUIRED):
        value = self._raw(name, default)
        if value is None:
            return 0 if default is self._REQUIRED else default
        try:
            return int(value)
        except ValueError:
            self.problems.append(f"{name} is not an integer: {value}")
            return 0

    def boolean(self, name, default=_REQUIRED):
        value = self._raw(name, default)
        if value is None:
            return False if default is self._REQUIRED else default
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        self.problems.append(f"{name} is not a boolean: {value}")
        return False
