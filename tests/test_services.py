"""Oracle and notifier against fake HTTP sessions"""

import logging
from decimal import Decimal

import pytest
import requests

from lp_rebalancer.core.exceptions import ConnectivityError, OracleUnavailable
from lp_rebalancer.services.notifier import CRITICAL, DiscordNotifier
from lp_rebalancer.services.oracle import PythPriceOracle

from conftest import make_config

FEED = "ff" * 32
NOW = 1700000000


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.exceptions.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def _handle(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._handle("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._handle("POST", url, **kwargs)


def hermes_payload(price="6140993501", expo=-8, publish_time=NOW - 5, feed_id=FEED):
    return {"parsed": [{
        "id": feed_id,
        "price": {"price": price, "conf": "1000", "expo": expo, "publish_time": publish_time},
    }]}


def oracle(session):
    return PythPriceOracle(make_config(), session=session, clock=lambda: NOW)


def test_oracle_scales_by_exponent():
    session = FakeSession(FakeResponse(hermes_payload()))
    assert oracle(session).fetch_price() == Decimal("61.40993501")

    method, url, kwargs = session.requests[0]
    assert url == "https://hermes.pyth.network/v2/updates/price/latest"
    assert kwargs["params"]["ids[]"] == "0x" + FEED


def test_oracle_rejects_stale_price():
    session = FakeSession(FakeResponse(hermes_payload(publish_time=NOW - 600)))
    with pytest.raises(OracleUnavailable, match="old"):
        oracle(session).fetch_price()


def test_oracle_rejects_missing_feed():
    session = FakeSession(FakeResponse(hermes_payload(feed_id="ee" * 32)))
    with pytest.raises(OracleUnavailable):
        oracle(session).fetch_price()


def test_oracle_rejects_non_positive_price():
    session = FakeSession(FakeResponse(hermes_payload(price="0")))
    with pytest.raises(OracleUnavailable):
        oracle(session).fetch_price()


def test_oracle_http_error_is_unavailable():
    session = FakeSession(FakeResponse({}, status=404))
    with pytest.raises(OracleUnavailable):
        oracle(session).fetch_price()


def test_oracle_network_error_is_connectivity():
    session = FakeSession(error=requests.exceptions.ConnectionError("refused"))
    with pytest.raises(ConnectivityError):
        oracle(session).fetch_price()


def test_notifier_posts_to_webhook():
    session = FakeSession(FakeResponse({}, status=204))
    notifier = DiscordNotifier("https://discord.test/hook", session=session)

    assert notifier.notify("Opened position", CRITICAL)
    method, url, kwargs = session.requests[0]
    assert url == "https://discord.test/hook"
    assert "Opened position" in kwargs["json"]["content"]
    assert "CRITICAL" in kwargs["json"]["content"]


def test_notifier_swallows_delivery_failures(caplog):
    session = FakeSession(error=requests.exceptions.Timeout("slow"))
    notifier = DiscordNotifier("https://discord.test/hook", session=session)

    with caplog.at_level(logging.ERROR):
        assert notifier.notify("anything") is False
    assert "Failed to send Discord notification" in caplog.text


def test_notifier_without_url_only_logs(caplog):
    session = FakeSession()
    with caplog.at_level(logging.INFO):
        assert DiscordNotifier(None, session=session).notify("hello") is False
    assert session.requests == []
    assert "hello" in caplog.text
