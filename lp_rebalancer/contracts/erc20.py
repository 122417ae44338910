"""ERC20 token contract wrapper"""

from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ..utils.transactions import TransactionBuilder


class ERC20:
    """Wrapper for ERC20 token interactions"""

    def __init__(self, manager, address, tx_builder=None):
        """
        Args:
            manager: Web3Manager instance
            address: Token contract address
            tx_builder: TransactionBuilder (created if None)
        """
        self.manager = manager
        self.address = manager.checksum(address)
        self.contract = manager.get_contract(self.address, "erc20")
        self.tx_builder = tx_builder or TransactionBuilder(manager)
        self._decimals = None
        self._symbol = None

    @property
    def decimals(self):
        if self._decimals is None:
            self._decimals = self.contract.functions.decimals().call()
        return self._decimals

    @property
    def symbol(self):
        """Token symbol, handling tokens that return bytes32"""
        if self._symbol is None:
            try:
                raw = self.contract.functions.symbol().call()
            except (ContractLogicError, BadFunctionCallOutput):
                raw = "UNKNOWN"
            if isinstance(raw, bytes):
                raw = raw.rstrip(b'\x00').decode('utf-8')
            self._symbol = str(raw)
        return self._symbol

    def balance_of(self, address=None):
        """Get token balance in atomic units"""
        addr = address or self.manager.address
        return self.contract.functions.balanceOf(addr).call()

    def allowance(self, spender, owner=None):
        """Get allowance for spender"""
        owner_addr = owner or self.manager.address
        return self.contract.functions.allowance(owner_addr, spender).call()

    def approve(self, spender, amount):
        """
        Approve spender to spend tokens. Returns tx receipt or None if already approved.
        """
        if amount <= 0 or self.allowance(spender) >= amount:
            return None

        contract_func = self.contract.functions.approve(spender, amount)
        return self.tx_builder.build_and_send(contract_func, operation_type="approve")
