"""Tests for the WooCommerce order fetch client."""

from pathlib import Path
import sys

import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from order_relay.orders.commerce import CommerceClient, CommerceFetchError  # noqa: E402


class DummyResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class DummySession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def _client(session):
    return CommerceClient(
        base_url="https://shop.example/wp-json/wc/v3/",
        consumer_key="ck_test",
        consumer_secret="cs_test",
        timeout=3.0,
        session=session,
    )


def test_fetch_order_uses_basic_auth_and_timeout():
    session = DummySession(response=DummyResponse(body={"id": 7}))

    record = _client(session).fetch_order(7)

    assert record == {"id": 7}
    url, kwargs = session.calls[0]
    assert url == "https://shop.example/wp-json/wc/v3/orders/7"
    assert kwargs == {"auth": ("ck_test", "cs_test"), "timeout": 3.0}


def test_order_id_is_path_escaped():
    client = _client(DummySession())

    assert client.order_url("7/../admin") == "https://shop.example/wp-json/wc/v3/orders/7%2F..%2Fadmin"


@pytest.mark.parametrize(
    "error",
    [requests.Timeout("slow"), requests.ConnectionError("down")],
)
def test_transport_errors_raise_fetch_error(error):
    with pytest.raises(CommerceFetchError):
        _client(DummySession(error=error)).fetch_order(7)


def test_non_success_status_raises_fetch_error():
    session = DummySession(response=DummyResponse(status_code=404, text="not found"))

    with pytest.raises(CommerceFetchError) as err:
        _client(session).fetch_order(7)

    assert "404" in str(err.value)


@pytest.mark.parametrize("body", [ValueError("bad json"), ["list"]])
def test_unusable_body_raises_fetch_error(body):
    session = DummySession(response=DummyResponse(body=body))

    with pytest.raises(CommerceFetchError):
        _client(session).fetch_order(7)
