import json

import httpx
import pytest

from app.errors import GatewayError
from app.payments.gateway import GatewayTimeout, RazorpayGateway


def _gateway(handler):
    return RazorpayGateway(
        key_id="rzp_test",
        key_secret="secret",
        base_url="https://gateway.test/v1/",
        http_client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


async def test_create_remote_order_posts_minor_units():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization", "")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "order_abc", "amount": 2499, "currency": "USD", "receipt": "r1"})

    remote = await _gateway(handler).create_remote_order(2499, "USD", "r1", {"plan_id": "p1"})

    assert remote.order_id == "order_abc"
    assert seen["url"] == "https://gateway.test/v1/orders"
    assert seen["auth"].startswith("Basic ")
    assert seen["body"] == {"amount": 2499, "currency": "USD", "receipt": "r1", "notes": {"plan_id": "p1"}}


async def test_fetch_payment_normalises_status():
    def handler(request):
        assert request.url.path == "/v1/payments/pay_1"
        return httpx.Response(200, json={"id": "pay_1", "status": "CAPTURED", "order_id": "order_abc"})

    payment = await _gateway(handler).fetch_payment("pay_1")
    assert payment.status == "captured"
    assert payment.order_id == "order_abc"


async def test_missing_order_id_is_a_gateway_error():
    with pytest.raises(GatewayError):
        await _gateway(lambda request: httpx.Response(200, json={})).create_remote_order(100, "USD", "r", {})


async def test_http_errors_map_to_gateway_errors():
    with pytest.raises(GatewayError) as excinfo:
        await _gateway(lambda request: httpx.Response(502, json={"error": "bad"})).fetch_payment("pay_1")
    assert not isinstance(excinfo.value, GatewayTimeout)

    def slow(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(GatewayTimeout):
        await _gateway(slow).fetch_payment("pay_1")
