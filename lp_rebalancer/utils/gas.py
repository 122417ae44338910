"""EIP-1559 gas parameters for bot transactions"""

import logging

from ..core.exceptions import ActionFailed

logger = logging.getLogger(__name__)


class GasPriceTooHighError(ActionFailed):
    """Raised when current base fee exceeds the configured maximum"""
    pass


class GasManager:
    """
    EIP-1559 compliant gas management.

    Supports:
    - max_fee_gwei: Cap on total fee per gas unit (None = base fee + tip + 20%)
    - priority_fee_gwei: Tip to validators for faster inclusion
    - per-operation fallback gas limits when estimation fails
    """

    DEFAULT_GAS_LIMITS = {
        "approve": 65000,
        "mint": 500000,
        "decreaseLiquidity": 200000,
        "collect": 150000,
        "burn": 100000,
        "swap": 200000,
        "default": 500000,
    }

    def __init__(self, manager, max_fee_gwei=None, priority_fee_gwei=1.5):
        """
        Args:
            manager: Web3Manager instance
            max_fee_gwei: Max fee per gas in Gwei (None = no cap)
            priority_fee_gwei: Priority fee in Gwei
        """
        self.manager = manager
        self.max_fee_gwei = max_fee_gwei
        self.priority_fee_gwei = priority_fee_gwei

    def get_gas_limit(self, operation_type=None):
        """Fallback gas limit for operation type"""
        return self.DEFAULT_GAS_LIMITS.get(operation_type or "default", self.DEFAULT_GAS_LIMITS["default"])

    def get_base_fee(self):
        """Current base fee from the latest block, in wei"""
        latest_block = self.manager.w3.eth.get_block("latest")
        return latest_block.get("baseFeePerGas", 0)

    def get_fee_params(self):
        """
        Get EIP-1559 fee parameters.

        Returns:
            Dict with maxFeePerGas, maxPriorityFeePerGas (in wei)

        Raises:
            GasPriceTooHighError: If base fee exceeds max_fee_gwei
        """
        base_fee = self.get_base_fee()
        priority_fee_wei = int(self.priority_fee_gwei * 1e9)

        if self.max_fee_gwei is not None:
            max_fee_wei = int(self.max_fee_gwei * 1e9)
            # maxFeePerGas must be >= baseFee for the transaction to be included
            if max_fee_wei < base_fee:
                raise GasPriceTooHighError(
                    f"Current base fee ({base_fee / 1e9:.2f} Gwei) exceeds "
                    f"maxFeePerGas ({self.max_fee_gwei} Gwei)"
                )
        else:
            max_fee_wei = int((base_fee + priority_fee_wei) * 1.2)

        return {
            "maxFeePerGas": max_fee_wei,
            "maxPriorityFeePerGas": priority_fee_wei,
        }

    def estimate_gas(self, contract_func, from_address, operation_type=None):
        """
        Estimate gas for a contract function call, falling back to the
        per-operation default when the node refuses to estimate.
        """
        try:
            return contract_func.estimate_gas({"from": from_address})
        except Exception as e:
            fallback = self.get_gas_limit(operation_type)
            logger.warning("Gas estimation for %s failed (%s), using %d", operation_type, e, fallback)
            return fallback
