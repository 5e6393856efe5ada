import pytest

from app.errors import Conflict, NotFoundError
from app.payments.models import CreateOrderRequest, OrderStatus
from app.payments.repository import OrderRepository


def _request(buyer, plan, pricing_id="tier-basic", **extra):
    return CreateOrderRequest(
        buyerId=buyer.id,
        planId=plan.id,
        pricingId=pricing_id,
        deliveryTarget="@brand",
        **extra,
    )


async def test_create_order_uses_tier_price_in_minor_units(app, gateway, buyer, plan):
    order = await app.state.order_ledger.create_order(_request(buyer, plan))

    assert order.amount == 2499
    assert order.currency == "USD"
    assert order.status is OrderStatus.created
    assert len(order.receipt) == 20
    assert gateway.orders[0]["amount"] == 2499
    assert gateway.orders[0]["notes"]["plan_id"] == plan.id

    stored = OrderRepository(app.state.database).get(order.order_id)
    assert stored is not None
    assert stored.status is OrderStatus.created
    assert stored.paid_at is None


async def test_create_order_honours_explicit_currency_and_receipt(app, buyer, plan):
    order = await app.state.order_ledger.create_order(
        _request(buyer, plan, pricing_id="tier-premium", currency="inr", receipt="rcpt-1")
    )
    assert order.amount == 9950
    assert order.currency == "INR"
    assert order.receipt == "rcpt-1"


@pytest.mark.parametrize("missing", ["buyer", "plan", "tier"])
async def test_create_order_requires_existing_references(app, gateway, buyer, plan, missing):
    payload = _request(buyer, plan)
    if missing == "buyer":
        payload.buyer_id = "nobody"
    elif missing == "plan":
        payload.plan_id = "no-plan"
    else:
        payload.pricing_id = "no-tier"

    with pytest.raises(NotFoundError):
        await app.state.order_ledger.create_order(payload)
    assert gateway.orders == []


async def test_status_moves_forward_only(app, buyer, plan):
    ledger = app.state.order_ledger
    order = await ledger.create_order(_request(buyer, plan))

    paid = ledger.mark_paid(order.order_id, payment_id="pay_1", signature="sig")
    assert paid.status is OrderStatus.paid
    assert paid.paid_at is not None

    again = ledger.mark_paid(order.order_id, payment_id="pay_1", signature="sig")
    assert again.paid_at == paid.paid_at

    with pytest.raises(Conflict):
        ledger.mark_failed(order.order_id)


async def test_failed_order_cannot_become_paid(app, buyer, plan):
    ledger = app.state.order_ledger
    order = await ledger.create_order(_request(buyer, plan))
    ledger.mark_failed(order.order_id, gateway_status="failed")

    with pytest.raises(Conflict):
        ledger.mark_paid(order.order_id, payment_id="pay_1", signature="sig")
    assert ledger.get(order.order_id).status is OrderStatus.failed


def test_get_unknown_order(app):
    with pytest.raises(NotFoundError):
        app.state.order_ledger.get("order_missing")


def test_create_order_endpoint(client, buyer, plan):
    response = client.post(
        "/payment/createOrder",
        json={"buyerId": buyer.id, "planId": plan.id, "pricingId": "tier-premium", "deliveryTarget": "@brand"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["order"]["amount"] == 9950
    assert body["order"]["status"] == "created"


def test_create_order_endpoint_validates_body(client):
    response = client.post("/payment/createOrder", json={"buyerId": "u1"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "validation_error"
    assert "planId" in body["message"] or "plan_id" in body["message"]


def test_create_order_endpoint_unknown_plan(client, buyer):
    response = client.post(
        "/payment/createOrder",
        json={"buyerId": buyer.id, "planId": "missing", "pricingId": "x", "deliveryTarget": "@brand"},
    )
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"
