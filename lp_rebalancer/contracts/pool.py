"""Uniswap V3 Pool contract wrapper"""


class Pool:
    """Wrapper for Uniswap V3 Pool interactions"""

    def __init__(self, manager, address):
        """
        Args:
            manager: Web3Manager instance
            address: Pool contract address
        """
        self.manager = manager
        self.address = manager.checksum(address)
        self.contract = manager.get_contract(self.address, "pool")

    def slot0(self):
        """
        Get slot0 data (current state).
        Returns: (sqrtPriceX96, tick, observationIndex, ...)
        """
        return self.contract.functions.slot0().call()

    @property
    def fee(self):
        """Pool fee tier"""
        return self.contract.functions.fee().call()

    @property
    def tick_spacing(self):
        return self.contract.functions.tickSpacing().call()

    @property
    def token0(self):
        """Token0 address"""
        return self.contract.functions.token0().call()

    @property
    def token1(self):
        """Token1 address"""
        return self.contract.functions.token1().call()
