"""Market price from the Pyth Hermes HTTP API"""

import logging
import time
from decimal import Decimal, InvalidOperation

import requests

from ..core.exceptions import ConnectivityError, OracleUnavailable

logger = logging.getLogger(__name__)


class PythPriceOracle:
    """
    Fetch the latest quote-per-base price for one Pyth feed.

    Args:
        config: BotConfig (feed id, Hermes URL, max age, timeout)
        session: requests.Session to use (created if None)
        clock: Callable returning the current unix time
    """

    def __init__(self, config, session=None, clock=time.time):
        self.feed_id = config.price_feed_id
        self.url = config.hermes_url.rstrip("/") + "/v2/updates/price/latest"
        self.max_age = config.price_max_age
        self.timeout = config.call_timeout
        self.session = session or requests.Session()
        self.clock = clock

    def _normalized_id(self, feed_id):
        feed_id = feed_id.lower()
        return feed_id[2:] if feed_id.startswith("0x") else feed_id

    def fetch_price(self):
        """
        Current price as a Decimal.

        Raises:
            OracleUnavailable: Feed missing, malformed, non-positive or older than max age
            ConnectivityError: Hermes could not be reached
        """
        try:
            response = self.session.get(
                self.url,
                params={"ids[]": self.feed_id, "parsed": "true"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.HTTPError as e:
            raise OracleUnavailable(f"Hermes returned an error for feed {self.feed_id}: {e}") from e
        except ValueError as e:
            raise OracleUnavailable(f"Hermes response is not JSON: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ConnectivityError(f"Could not reach Hermes at {self.url}: {e}") from e

        wanted = self._normalized_id(self.feed_id)
        entry = next(
            (item for item in payload.get("parsed") or [] if self._normalized_id(item.get("id", "")) == wanted),
            None,
        )
        if entry is None:
            raise OracleUnavailable(f"Price feed {self.feed_id} not in Hermes response")

        try:
            quote = entry["price"]
            price = Decimal(str(quote["price"])).scaleb(int(quote["expo"]))
            publish_time = int(quote["publish_time"])
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise OracleUnavailable(f"Malformed price for feed {self.feed_id}: {e}") from e

        age = self.clock() - publish_time
        if age > self.max_age:
            raise OracleUnavailable(f"Price for feed {self.feed_id} is {age:.0f}s old (max {self.max_age}s)")
        if price <= 0:
            raise OracleUnavailable(f"Feed {self.feed_id} reported non-positive price {price}")

        logger.info("Oracle price %s (%.0fs old)", price, age)
        return price
