"""FastAPI routes for checkout orders and payment verification."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from .activator import SubscriptionActivator
from .ledger import OrderLedger
from .models import CreateOrderRequest, VerifyPaymentRequest

router = APIRouter(prefix="/payment", tags=["payment"])


def _get_ledger(request: Request) -> OrderLedger:
    ledger = getattr(request.app.state, "order_ledger", None)
    if ledger is None:
        raise RuntimeError("Order ledger is not configured")
    return ledger


def _get_activator(request: Request) -> SubscriptionActivator:
    activator = getattr(request.app.state, "activator", None)
    if activator is None:
        raise RuntimeError("Subscription activator is not configured")
    return activator


@router.post("/createOrder", status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: CreateOrderRequest,
    ledger: OrderLedger = Depends(_get_ledger),
) -> dict:
    order = await ledger.create_order(payload)
    return {"success": True, "order": order.as_payload()}


@router.post("/verifyPayment")
async def verify_payment(
    payload: VerifyPaymentRequest,
    activator: SubscriptionActivator = Depends(_get_activator),
) -> dict:
    result = await activator.verify_and_activate(
        payload.gateway_order_id,
        payload.gateway_payment_id,
        payload.signature,
    )
    message = (
        "Payment verified, subscription created & active"
        if result.created
        else "Payment already verified, subscription active"
    )
    return {"success": True, "message": message, "subscription_id": result.subscription.id}
