"""Contract wrappers for ERC20, NFPM, Pool, and SwapRouter interactions"""

from .erc20 import ERC20
from .nfpm import NFPM
from .pool import Pool
from .router import SwapRouter

__all__ = ["ERC20", "NFPM", "Pool", "SwapRouter"]
