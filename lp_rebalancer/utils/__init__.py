"""Utility functions for math and transactions"""

from .math import tick_to_price, price_to_tick, atomic_to_ui, ui_to_atomic
from .transactions import TransactionBuilder, to_tx_result

__all__ = [
    "tick_to_price",
    "price_to_tick",
    "atomic_to_ui",
    "ui_to_atomic",
    "TransactionBuilder",
    "to_tx_result",
]
