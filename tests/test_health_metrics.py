from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_metrics_exposes_commerce_counters(client, buyer, plan):
    before = _sample("orders_created_total", currency="USD")
    response = client.post(
        "/payment/createOrder",
        json={"buyerId": buyer.id, "planId": plan.id, "pricingId": "tier-basic", "deliveryTarget": "@brand"},
    )
    assert response.status_code == 201
    assert _sample("orders_created_total", currency="USD") == before + 1

    body = client.get("/metrics").text
    assert "orders_created_total" in body
    assert "payment_verifications_total" in body
    assert 'http_requests_total{path="/payment/createOrder"}' in body


def test_signature_rejections_are_counted(client, buyer, plan):
    order = client.post(
        "/payment/createOrder",
        json={"buyerId": buyer.id, "planId": plan.id, "pricingId": "tier-basic", "deliveryTarget": "@brand"},
    ).json()["order"]
    before = _sample("payment_verifications_total", outcome="signature_invalid")

    client.post(
        "/payment/verifyPayment",
        json={"gatewayOrderId": order["order_id"], "gatewayPaymentId": "pay_1", "signature": "bad"},
    )
    assert _sample("payment_verifications_total", outcome="signature_invalid") == before + 1


def test_unexpected_errors_use_generic_envelope(app, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("database password leaked here")

    monkeypatch.setattr(app.state.catalog_repo, "list_services", explode)
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/services/getAll")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "internal_error", "message": "Internal server error"}
