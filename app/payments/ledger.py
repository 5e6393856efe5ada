"""Order ledger: creation of payment intents and their status transitions.

Status only moves forward. ``created`` may become ``paid`` or ``failed``; a
terminal status can be re-applied as a no-op but never swapped for the other
terminal status.
"""

from __future__ import annotations

import logging
import secrets
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from app.catalog.repository import CatalogRepository
from app.errors import Conflict, NotFoundError
from app.metrics import record_order_created
from app.pricing import parse_display_price
from app.users.repository import UserRepository

from .gateway import PaymentGateway
from .models import CreateOrderRequest, OrderRecord, OrderStatus
from .repository import OrderRepository

logger = logging.getLogger(__name__)


class OrderLedger:
    def __init__(
        self,
        orders: OrderRepository,
        catalog: CatalogRepository,
        users: UserRepository,
        gateway: PaymentGateway,
        *,
        default_currency: str = "USD",
    ) -> None:
        self._orders = orders
        self._catalog = catalog
        self._users = users
        self._gateway = gateway
        self._default_currency = default_currency

    def get(self, order_id: str, *, conn: Optional[sqlite3.Connection] = None) -> OrderRecord:
        order = self._orders.get(order_id, conn=conn)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    async def create_order(self, payload: CreateOrderRequest) -> OrderRecord:
        """Register a checkout attempt with the gateway and persist it as ``created``."""

        if self._users.get(payload.buyer_id) is None:
            raise NotFoundError("User not found")
        tier = self._catalog.find_pricing_tier(payload.plan_id, payload.pricing_id)
        if tier is None:
            if self._catalog.get_plan(payload.plan_id) is None:
                raise NotFoundError("Plan not found")
            raise NotFoundError("Tier not found")

        amount = parse_display_price(tier.price)
        currency = payload.currency or self._default_currency
        receipt = payload.receipt or secrets.token_hex(10)

        remote = await self._gateway.create_remote_order(
            amount,
            currency,
            receipt,
            {
                "buyer_id": payload.buyer_id,
                "plan_id": payload.plan_id,
                "pricing_id": payload.pricing_id,
                "delivery_target": payload.delivery_target,
            },
        )

        order = OrderRecord(
            order_id=remote.order_id,
            amount=amount,
            currency=currency,
            receipt=remote.receipt,
            buyer_id=payload.buyer_id,
            plan_id=payload.plan_id,
            pricing_id=payload.pricing_id,
            delivery_target=payload.delivery_target,
            status=OrderStatus.created,
            created_at=datetime.now(tz=timezone.utc),
        )
        try:
            self._orders.insert(order)
        except sqlite3.IntegrityError as exc:
            raise Conflict("Order already exists") from exc

        record_order_created(currency)
        logger.info(
            "Order created",
            extra={"order_id": order.order_id, "buyer_id": order.buyer_id, "amount": amount, "currency": currency},
        )
        return order

    def mark_paid(
        self,
        order_id: str,
        *,
        payment_id: str,
        signature: str,
        gateway_status: Optional[str] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> OrderRecord:
        with self._orders.database.transaction(conn) as tx:
            order = self.get(order_id, conn=tx)
            if order.status is OrderStatus.paid:
                return order
            if order.status is OrderStatus.failed:
                raise Conflict("Order already failed and cannot be marked paid")
            order.status = OrderStatus.paid
            order.payment_id = payment_id
            order.signature = signature
            order.gateway_status = gateway_status or order.gateway_status
            order.paid_at = datetime.now(tz=timezone.utc)
            self._orders.save_status(order, tx)
        return order

    def mark_failed(
        self,
        order_id: str,
        *,
        gateway_status: Optional[str] = None,
        payment_id: Optional[str] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> OrderRecord:
        with self._orders.database.transaction(conn) as tx:
            order = self.get(order_id, conn=tx)
            if order.status is OrderStatus.failed:
                return order
            if order.status is OrderStatus.paid:
                raise Conflict("Order already paid and cannot be marked failed")
            order.status = OrderStatus.failed
            order.gateway_status = gateway_status or order.gateway_status
            order.payment_id = payment_id or order.payment_id
            self._orders.save_status(order, tx)
        return order

    def record_gateway_status(
        self,
        order_id: str,
        gateway_status: str,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> OrderRecord:
        """Remember a non-terminal gateway status without moving the order."""

        with self._orders.database.transaction(conn) as tx:
            order = self.get(order_id, conn=tx)
            if order.status is not OrderStatus.created:
                return order
            order.gateway_status = gateway_status
            self._orders.save_status(order, tx)
        return order
