import pytest
import requests

from lumina.errors import CourierError
from lumina.services.courier import SteadfastClient, status_label


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self.calls = []
        self.response = response
        self.error = error

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response


def client(session):
    return SteadfastClient("https://courier.test/api/v1/", "key", "secret", timeout=5, session=session)


def test_create_order_posts_without_empty_fields():
    http = FakeSession(FakeResponse(payload={"status": 200, "consignment": {"consignment_id": 1}}))
    resp = client(http).create_order({"invoice": "INV-1", "note": None, "cod_amount": 460.0})
    assert resp["consignment"]["consignment_id"] == 1
    method, url, kwargs = http.calls[0]
    assert (method, url) == ("POST", "https://courier.test/api/v1/create_order")
    assert kwargs["json"] == {"invoice": "INV-1", "cod_amount": 460.0}
    assert http.headers["Api-Key"] == "key"
    assert http.headers["Secret-Key"] == "secret"


def test_status_paths():
    http = FakeSession(FakeResponse(payload={"status": 200, "delivery_status": "pending"}))
    c = client(http)
    c.status_by_consignment_id("99")
    c.status_by_invoice("INV-1")
    c.status_by_tracking_code("ABC")
    assert [url.rsplit("/v1", 1)[1] for _, url, _ in http.calls] == [
        "/status_by_cid/99",
        "/status_by_invoice/INV-1",
        "/status_by_trackingcode/ABC",
    ]


def test_http_error_becomes_courier_error():
    http = FakeSession(FakeResponse(status_code=401, text="Unauthorized"))
    with pytest.raises(CourierError) as e:
        client(http).get_balance()
    assert e.value.status_code == 502
    assert "Unauthorized" in e.value.message


def test_network_error_becomes_courier_error():
    http = FakeSession(error=requests.ConnectionError("refused"))
    with pytest.raises(CourierError):
        client(http).get_balance()


def test_invalid_json():
    with pytest.raises(CourierError) as e:
        client(FakeSession(FakeResponse(payload=None))).get_balance()
    assert e.value.message == "Steadfast API returned invalid JSON"


def test_status_label():
    assert status_label(None) == "Not Sent to Courier"
    assert status_label("hold") == "On Hold"
    assert status_label("weird") == "weird"
