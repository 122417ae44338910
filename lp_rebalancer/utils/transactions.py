"""Transaction utilities with EIP-1559 support"""

import logging

from web3.exceptions import TimeExhausted, Web3Exception

from ..core.exceptions import ActionFailed
from ..core.types import TxResult
from .gas import GasManager

logger = logging.getLogger(__name__)


class TransactionBuilder:
    """Build and send EIP-1559 transactions with unified gas management"""

    def __init__(self, manager, gas_manager=None, receipt_timeout=120):
        """
        Args:
            manager: Web3Manager instance (must have signer)
            gas_manager: GasManager instance (created if None)
            receipt_timeout: Seconds to wait for a receipt before giving up
        """
        self.manager = manager
        self.gas_manager = gas_manager or GasManager(manager)
        self.receipt_timeout = receipt_timeout

    def build(self, contract_func, operation_type=None, gas_buffer=1.2, value=0):
        """
        Build an EIP-1559 transaction for a contract function.

        Args:
            contract_func: Contract function to call
            operation_type: Type of operation for fallback gas limit
            gas_buffer: Multiplier for gas limit (default 1.2 = +20%)
            value: Native value to send in wei

        Returns:
            Transaction dictionary ready for signing
        """
        fee_params = self.gas_manager.get_fee_params()
        estimated_gas = self.gas_manager.estimate_gas(
            contract_func, self.manager.address, operation_type
        )

        tx = {
            "from": self.manager.address,
            "nonce": self.manager.get_nonce(),
            "gas": int(estimated_gas * gas_buffer),
            "maxFeePerGas": fee_params["maxFeePerGas"],
            "maxPriorityFeePerGas": fee_params["maxPriorityFeePerGas"],
            "chainId": self.manager.chain_id,
            "type": 2,  # EIP-1559 transaction type
        }

        if value > 0:
            tx["value"] = value

        return contract_func.build_transaction(tx)

    def build_and_send(self, contract_func, operation_type=None, gas_buffer=1.2, value=0):
        """
        Build, sign, send and wait for a transaction.

        Returns:
            The transaction receipt

        Raises:
            ActionFailed: If the transaction reverted
        """
        label = operation_type or "contract"
        try:
            tx = self.build(contract_func, operation_type, gas_buffer, value)
            signed = self.manager.account.sign_transaction(tx)
            tx_hash = self.manager.w3.eth.send_raw_transaction(signed.raw_transaction)
        except (Web3Exception, ValueError) as e:
            raise ActionFailed(f"{label} transaction rejected: {e}") from e
        logger.info("Sent %s transaction %s, waiting for receipt", label, tx_hash.hex())

        try:
            receipt = self.manager.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except TimeExhausted as e:
            raise ActionFailed(f"{label} not mined within {self.receipt_timeout}s", tx_hash=tx_hash.hex()) from e
        if receipt.status != 1:
            raise ActionFailed(f"{label} reverted: {tx_hash.hex()}", tx_hash=tx_hash.hex())

        logger.info("Confirmed %s in block %s (gas used %s)", tx_hash.hex(), receipt.blockNumber, receipt.gasUsed)
        return receipt


def to_tx_result(receipt, **details):
    """Wrap a web3 receipt in a TxResult"""
    return TxResult(
        tx_hash=receipt.transactionHash.hex(),
        block=receipt.blockNumber,
        gas_used=receipt.gasUsed,
        details=details,
    )
