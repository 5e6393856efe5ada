"""Persistence layer for checkout orders."""

from __future__ import annotations

import sqlite3
from typing import Optional

from app.storage.database import Database, from_iso, to_iso

from .models import OrderRecord, OrderStatus


def _order_from_row(row: sqlite3.Row) -> OrderRecord:
    return OrderRecord(
        order_id=row["order_id"],
        amount=row["amount"],
        currency=row["currency"],
        receipt=row["receipt"] or "",
        buyer_id=row["buyer_id"],
        plan_id=row["plan_id"],
        pricing_id=row["pricing_id"],
        delivery_target=row["delivery_target"],
        status=OrderStatus(row["status"]),
        gateway_status=row["gateway_status"],
        payment_id=row["payment_id"],
        signature=row["signature"],
        created_at=from_iso(row["created_at"]),
        paid_at=from_iso(row["paid_at"]),
    )


class OrderRepository:
    """SQLite-backed storage for orders. Rows are never deleted."""

    def __init__(self, database: Database) -> None:
        self._db = database

    @property
    def database(self) -> Database:
        return self._db

    def insert(self, order: OrderRecord) -> OrderRecord:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO orders (
                    order_id, amount, currency, receipt, buyer_id, plan_id, pricing_id,
                    delivery_target, status, gateway_status, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    order.order_id,
                    order.amount,
                    order.currency,
                    order.receipt,
                    order.buyer_id,
                    order.plan_id,
                    order.pricing_id,
                    order.delivery_target,
                    order.status.value,
                    order.gateway_status,
                    to_iso(order.created_at),
                ),
            )
        return order

    def get(self, order_id: str, *, conn: Optional[sqlite3.Connection] = None) -> Optional[OrderRecord]:
        if conn is not None:
            row = conn.execute("SELECT * FROM orders WHERE order_id = ?", (order_id,)).fetchone()
        else:
            row = self._db.fetch_one("SELECT * FROM orders WHERE order_id = ?", (order_id,))
        return _order_from_row(row) if row else None

    def save_status(self, order: OrderRecord, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            UPDATE orders
            SET status = ?, gateway_status = ?, payment_id = ?, signature = ?, paid_at = ?
            WHERE order_id = ?
            """,
            (
                order.status.value,
                order.gateway_status,
                order.payment_id,
                order.signature,
                to_iso(order.paid_at),
                order.order_id,
            ),
        )
