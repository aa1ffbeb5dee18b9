import pytest
import requests

from cryptoagent.models.errors import PriceNotFound, TransportFailure
from cryptoagent.services.coingecko import CoinGeckoService, format_usd, price_series


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def service():
    return CoinGeckoService(base_url="https://api.example.test/api/v3/", timeout=5)


def test_get_spot_price(monkeypatch, service):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen.update(url=url, params=params, timeout=timeout)
        return FakeResponse(payload={"bitcoin": {"usd": 64000.5}})

    monkeypatch.setattr(requests, "get", fake_get)
    assert service.get_spot_price("bitcoin") == 64000.5
    assert seen["url"] == "https://api.example.test/api/v3/simple/price"
    assert seen["params"] == {"ids": "bitcoin", "vs_currencies": "usd"}
    assert seen["timeout"] == 5


def test_get_spot_price_unknown_asset(monkeypatch, service):
    monkeypatch.setattr(requests, "get", lambda *a, **kw: FakeResponse(payload={}))
    with pytest.raises(PriceNotFound):
        service.get_spot_price("unknowntoken")


def test_get_spot_price_without_usd(monkeypatch, service):
    monkeypatch.setattr(requests, "get", lambda *a, **kw: FakeResponse(payload={"bitcoin": {}}))
    with pytest.raises(PriceNotFound):
        service.get_spot_price("bitcoin")


def test_network_error_is_transport_failure(monkeypatch, service):
    def fake_get(*a, **kw):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(requests, "get", fake_get)
    with pytest.raises(TransportFailure) as exc_info:
        service.get_spot_price("bitcoin")
    assert exc_info.value.code == "NETWORK_ERROR"


def test_http_error_is_transport_failure(monkeypatch, service):
    monkeypatch.setattr(requests, "get", lambda *a, **kw: FakeResponse(status_code=429, text="slow down"))
    with pytest.raises(TransportFailure):
        service.get_spot_price("bitcoin")


def test_bad_json_is_transport_failure(monkeypatch, service):
    monkeypatch.setattr(requests, "get", lambda *a, **kw: FakeResponse(text="<html>"))
    with pytest.raises(TransportFailure):
        service.get_spot_price("bitcoin")


def test_market_snapshot_degrades_per_part(monkeypatch, service):
    def fake_get(url, params=None, timeout=None):
        if url.endswith("/coins/markets") and params["order"] == "market_cap_desc":
            return FakeResponse(payload=[{"id": "bitcoin", "name": "Bitcoin"}])
        if url.endswith("/coins/markets"):
            raise requests.Timeout("timed out")
        return FakeResponse(payload={"prices": [[1704067200000, 42000.0]]})

    monkeypatch.setattr(requests, "get", fake_get)
    snapshot = service.get_market_snapshot()
    assert snapshot.markets == [{"id": "bitcoin", "name": "Bitcoin"}]
    assert snapshot.top_gainers == []
    assert snapshot.price_history == [[1704067200000, 42000.0]]


def test_price_series():
    assert price_series([[1704067200000, 42000.0], [1704153600000, 43000.0]]) == [
        {"date": "2024-01-01", "price": 42000.0},
        {"date": "2024-01-02", "price": 43000.0},
    ]


@pytest.mark.parametrize(
    "price,expected",
    [(64000.5, "64,000.50"), (1, "1.00"), (0.0712, "0.0712"), (0.00001234, "0.00001234")],
)
def test_format_usd(price, expected):
    assert format_usd(price) == expected
