from .oracle import PythPriceOracle
from .notifier import DiscordNotifier

__all__ = ["PythPriceOracle", "DiscordNotifier"]
