"""Payment verification and subscription activation.

``verify_and_activate`` takes a gateway callback through four steps:

1. recompute the HMAC signature over ``"{order_id}|{payment_id}"``;
2. ask the gateway for the authoritative payment status;
3. inside one ``BEGIN IMMEDIATE`` transaction, check whether a subscription
   already references the order;
4. in that same transaction, mark the order paid and insert the subscription
   when none exists.

Rejections in steps 1 and 2 are committed on their own so the ledger records
the attempt. Step 3 and 4 either both persist or neither does.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from app.catalog.repository import CatalogRepository
from app.errors import (
    CommerceError,
    Conflict,
    InternalError,
    PaymentNotCaptured,
    PaymentRejected,
    SignatureInvalid,
)
from app.metrics import record_payment_verification, record_subscription_activated
from app.storage.database import Database
from app.subscription.models import AdminStatus, SubscriptionRecord, SubscriptionStatus
from app.subscription.periods import expiry_for
from app.subscription.repository import SubscriptionRepository

from .gateway import GatewayTimeout, PaymentGateway, verify_signature
from .ledger import OrderLedger
from .models import GatewayPaymentStatus, OrderRecord, OrderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivationResult:
    order: OrderRecord
    subscription: SubscriptionRecord
    created: bool


class SubscriptionActivator:
    def __init__(
        self,
        database: Database,
        ledger: OrderLedger,
        gateway: PaymentGateway,
        catalog: CatalogRepository,
        subscriptions: SubscriptionRepository,
        *,
        signing_secret: str,
        gateway_timeout: float = 10.0,
    ) -> None:
        self._db = database
        self._ledger = ledger
        self._gateway = gateway
        self._catalog = catalog
        self._subscriptions = subscriptions
        self._signing_secret = signing_secret
        self._gateway_timeout = gateway_timeout

    async def verify_and_activate(self, order_id: str, payment_id: str, signature: str) -> ActivationResult:
        order = self._ledger.get(order_id)

        if not verify_signature(self._signing_secret, order_id, payment_id, signature):
            if order.status is OrderStatus.created:
                self._fail_open_order(order_id, payment_id=payment_id)
            record_payment_verification("signature_invalid")
            logger.warning("Payment signature mismatch", extra={"order_id": order_id, "payment_id": payment_id})
            raise SignatureInvalid()

        gateway_status = await self._confirm_capture(order, payment_id)

        try:
            result = self._commit(order_id, payment_id, signature, gateway_status)
        except CommerceError:
            raise
        except Exception as exc:
            record_payment_verification("commit_failed")
            logger.exception("Activation transaction aborted", extra={"order_id": order_id})
            raise InternalError() from exc

        if result.created:
            record_subscription_activated()
            record_payment_verification("activated")
            logger.info(
                "Subscription activated",
                extra={
                    "order_id": order_id,
                    "subscription_id": result.subscription.id,
                    "buyer_id": result.subscription.buyer_id,
                },
            )
        else:
            record_payment_verification("already_active")
            logger.info("Order already activated", extra={"order_id": order_id})
        return result

    async def _confirm_capture(self, order: OrderRecord, payment_id: str) -> str:
        try:
            payment = await asyncio.wait_for(self._gateway.fetch_payment(payment_id), timeout=self._gateway_timeout)
        except (asyncio.TimeoutError, GatewayTimeout) as exc:
            record_payment_verification("gateway_timeout")
            logger.warning("Gateway confirmation timed out", extra={"order_id": order.order_id})
            raise PaymentNotCaptured("Payment status unavailable, please retry", retryable=True) from exc

        status = payment.status
        if status == GatewayPaymentStatus.captured.value:
            return status

        # Re-read: a concurrent verification may have settled the order during the await.
        current = self._ledger.get(order.order_id)
        pending = status in (GatewayPaymentStatus.created.value, GatewayPaymentStatus.authorized.value)
        if current.status is OrderStatus.created:
            if pending:
                self._ledger.record_gateway_status(order.order_id, status)
            else:
                self._fail_open_order(order.order_id, gateway_status=status, payment_id=payment_id)
        record_payment_verification("not_captured")
        logger.warning(
            "Payment not captured",
            extra={"order_id": order.order_id, "payment_id": payment_id, "gateway_status": status},
        )
        raise PaymentNotCaptured(f"Payment {status or 'unknown'}", gateway_status=status)

    def _fail_open_order(self, order_id: str, **changes: str) -> None:
        try:
            self._ledger.mark_failed(order_id, **changes)
        except Conflict:
            # Paid by a concurrent verification; the rejection below still stands.
            logger.info("Order settled concurrently, left paid", extra={"order_id": order_id})

    def _commit(self, order_id: str, payment_id: str, signature: str, gateway_status: str) -> ActivationResult:
        try:
            with self._db.transaction() as conn:
                order = self._ledger.mark_paid(
                    order_id,
                    payment_id=payment_id,
                    signature=signature,
                    gateway_status=gateway_status,
                    conn=conn,
                )
                existing = self._subscriptions.find_by_order(order_id, conn=conn)
                if existing is not None:
                    return ActivationResult(order=order, subscription=existing, created=False)
                subscription = self._build_subscription(order, payment_id, conn)
                self._subscriptions.insert(subscription, conn=conn)
                return ActivationResult(order=order, subscription=subscription, created=True)
        except Conflict as exc:
            record_payment_verification("order_failed")
            logger.warning(
                "Captured payment for a failed order",
                extra={"order_id": order_id, "payment_id": payment_id, "gateway_status": gateway_status},
            )
            raise PaymentRejected("Order already failed, please start a new checkout") from exc
        except sqlite3.IntegrityError:
            existing = self._subscriptions.find_by_order(order_id)
            if existing is None:
                raise
            return ActivationResult(order=self._ledger.get(order_id), subscription=existing, created=False)

    def _build_subscription(self, order: OrderRecord, payment_id: str, conn: sqlite3.Connection) -> SubscriptionRecord:
        plan = self._catalog.get_plan(order.plan_id, conn=conn)
        if plan is None:
            raise LookupError(f"Plan {order.plan_id} not found while activating order {order.order_id}")
        now = datetime.now(tz=timezone.utc)
        return SubscriptionRecord(
            id=str(uuid4()),
            buyer_id=order.buyer_id,
            plan_id=order.plan_id,
            pricing_id=order.pricing_id,
            plan_name=plan.name,
            delivery_target=order.delivery_target,
            order_id=order.order_id,
            payment_id=payment_id,
            amount=order.amount,
            currency=order.currency,
            status=SubscriptionStatus.active,
            admin_status=AdminStatus.in_process,
            started_at=now,
            expires_at=expiry_for(now, plan.duration_months),
            cancelled_at=None,
            created_at=now,
            updated_at=now,
        )
