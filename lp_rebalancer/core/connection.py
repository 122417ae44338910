"""Web3 connection management"""

from contextlib import contextmanager

import requests
from eth_account import Account
from web3 import Web3
from web3.exceptions import Web3Exception

from .config import get_abi
from .exceptions import ConnectivityError, ConfigError, RebalancerError


@contextmanager
def rpc_errors(description):
    """Re-raise transport and node failures as ConnectivityError"""
    try:
        yield
    except RebalancerError:
        raise
    except (requests.exceptions.RequestException, Web3Exception, OSError) as e:
        raise ConnectivityError(f"{description}: {e}") from e


class Web3Manager:
    """Manages Web3 connection and the signing account"""

    def __init__(self, config, require_signer=True, w3=None):
        """
        Initialize Web3 connection.

        Args:
            config: BotConfig instance
            require_signer: If True, loads the private key for signing transactions
            w3: Pre-built Web3 instance (skips provider setup)
        """
        self.config = config
        self.w3 = w3 or self._setup_web3()

        self.account = None
        if require_signer:
            self._setup_account()

    def _setup_web3(self):
        """Setup Web3 connection with a bounded request timeout"""
        provider = Web3.HTTPProvider(
            self.config.rpc_url,
            request_kwargs={"timeout": self.config.call_timeout},
        )
        w3 = Web3(provider)

        if not w3.is_connected():
            raise ConnectivityError(f"Failed to connect to {self.config.rpc_url}")
        return w3

    def _setup_account(self):
        """Setup signing account from private key"""
        if not self.config.private_key:
            raise ConfigError("PRIVATE_KEY not found in environment")
        try:
            self.account = Account.from_key(self.config.private_key)
        except ValueError as e:
            raise ConfigError(f"PRIVATE_KEY is not a valid key: {e}")

    @property
    def address(self):
        """Signer address"""
        return self.account.address if self.account else None

    @property
    def chain_id(self):
        """Get current chain ID"""
        return self.w3.eth.chain_id

    def get_native_balance(self, address=None):
        """Get native (gas) balance in wei"""
        addr = address or self.address
        if not addr:
            raise ValueError("No address provided")
        return self.w3.eth.get_balance(addr)

    def get_nonce(self, address=None):
        """Get pending transaction count (nonce)"""
        addr = address or self.address
        if not addr:
            raise ValueError("No address provided")
        return self.w3.eth.get_transaction_count(addr, "pending")

    def get_contract(self, address, abi_name):
        """Create contract instance"""
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address),
            abi=get_abi(abi_name),
        )

    def has_code(self, address):
        """True when a contract is deployed at address"""
        return len(self.w3.eth.get_code(self.checksum(address))) > 0

    def checksum(self, address):
        """Convert address to checksum format"""
        return Web3.to_checksum_address(address)
