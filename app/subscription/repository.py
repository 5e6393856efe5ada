"""Persistence layer for subscriptions."""

from __future__ import annotations

import sqlite3
from typing import Dict, List, Optional, Tuple

from app.storage.database import Database, from_iso, to_iso

from .models import AdminStatus, SubscriptionRecord, SubscriptionStatus

SORTABLE_FIELDS = ("created_at", "updated_at", "started_at", "expires_at", "amount", "plan_name", "status")

_SEARCH_COLUMNS = ("plan_name", "delivery_target", "buyer_id", "order_id")


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _subscription_from_row(row: sqlite3.Row) -> SubscriptionRecord:
    return SubscriptionRecord(
        id=row["id"],
        buyer_id=row["buyer_id"],
        plan_id=row["plan_id"],
        pricing_id=row["pricing_id"],
        plan_name=row["plan_name"],
        delivery_target=row["delivery_target"],
        order_id=row["order_id"],
        payment_id=row["payment_id"],
        amount=row["amount"],
        currency=row["currency"],
        status=SubscriptionStatus(row["status"]),
        admin_status=AdminStatus(row["admin_status"]),
        started_at=from_iso(row["started_at"]),
        expires_at=from_iso(row["expires_at"]),
        cancelled_at=from_iso(row["cancelled_at"]),
        created_at=from_iso(row["created_at"]),
        updated_at=from_iso(row["updated_at"]),
    )


class SubscriptionRepository:
    """SQLite-backed repository for subscriptions. Rows are never deleted."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def insert(self, record: SubscriptionRecord, *, conn: Optional[sqlite3.Connection] = None) -> SubscriptionRecord:
        with self._db.transaction(conn) as tx:
            tx.execute(
                """
                INSERT INTO subscriptions (
                    id, buyer_id, plan_id, pricing_id, plan_name, delivery_target, order_id, payment_id,
                    amount, currency, status, admin_status, started_at, expires_at, cancelled_at,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.buyer_id,
                    record.plan_id,
                    record.pricing_id,
                    record.plan_name,
                    record.delivery_target,
                    record.order_id,
                    record.payment_id,
                    record.amount,
                    record.currency,
                    record.status.value,
                    int(record.admin_status),
                    to_iso(record.started_at),
                    to_iso(record.expires_at),
                    to_iso(record.cancelled_at),
                    to_iso(record.created_at),
                    to_iso(record.updated_at),
                ),
            )
        return record

    def update(self, record: SubscriptionRecord) -> SubscriptionRecord:
        with self._db.transaction() as tx:
            tx.execute(
                """
                UPDATE subscriptions
                SET plan_id = ?, pricing_id = ?, plan_name = ?, amount = ?, currency = ?, status = ?,
                    admin_status = ?, started_at = ?, expires_at = ?, cancelled_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    record.plan_id,
                    record.pricing_id,
                    record.plan_name,
                    record.amount,
                    record.currency,
                    record.status.value,
                    int(record.admin_status),
                    to_iso(record.started_at),
                    to_iso(record.expires_at),
                    to_iso(record.cancelled_at),
                    to_iso(record.updated_at),
                    record.id,
                ),
            )
        return record

    def get(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        row = self._db.fetch_one("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,))
        return _subscription_from_row(row) if row else None

    def find_by_order(self, order_id: str, *, conn: Optional[sqlite3.Connection] = None) -> Optional[SubscriptionRecord]:
        if conn is not None:
            row = conn.execute("SELECT * FROM subscriptions WHERE order_id = ?", (order_id,)).fetchone()
        else:
            row = self._db.fetch_one("SELECT * FROM subscriptions WHERE order_id = ?", (order_id,))
        return _subscription_from_row(row) if row else None

    def latest_for_buyer(self, buyer_id: str) -> Optional[SubscriptionRecord]:
        row = self._db.fetch_one(
            "SELECT * FROM subscriptions WHERE buyer_id = ? ORDER BY created_at DESC, id DESC LIMIT 1",
            (buyer_id,),
        )
        return _subscription_from_row(row) if row else None

    def list_for_buyer(
        self,
        buyer_id: str,
        *,
        admin_status: Optional[AdminStatus] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[SubscriptionRecord], int]:
        clause = "WHERE buyer_id = ?"
        params: tuple = (buyer_id,)
        if admin_status is not None:
            clause += " AND admin_status = ?"
            params += (int(admin_status),)
        total = int(self._db.scalar(f"SELECT COUNT(*) FROM subscriptions {clause}", params) or 0)
        sql = f"SELECT * FROM subscriptions {clause} ORDER BY created_at DESC, id DESC"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params += (limit, offset)
        rows = self._db.fetch_all(sql, params)
        return [_subscription_from_row(row) for row in rows], total

    def search(
        self,
        *,
        admin_status: Optional[AdminStatus],
        search: str,
        sort_by: str,
        descending: bool,
        offset: int,
        limit: int,
    ) -> Tuple[List[SubscriptionRecord], int]:
        if sort_by not in SORTABLE_FIELDS:
            raise ValueError(f"Unsupported sort field: {sort_by}")
        conditions: List[str] = []
        params: tuple = ()
        if admin_status is not None:
            conditions.append("admin_status = ?")
            params += (int(admin_status),)
        if search:
            conditions.append("(" + " OR ".join(f"{column} LIKE ? ESCAPE '\\'" for column in _SEARCH_COLUMNS) + ")")
            params += (_like_pattern(search),) * len(_SEARCH_COLUMNS)
        clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        direction = "DESC" if descending else "ASC"

        total = int(self._db.scalar(f"SELECT COUNT(*) FROM subscriptions {clause}", params) or 0)
        rows = self._db.fetch_all(
            f"SELECT * FROM subscriptions {clause} ORDER BY {sort_by} {direction}, id {direction} LIMIT ? OFFSET ?",
            params + (limit, offset),
        )
        return [_subscription_from_row(row) for row in rows], total

    def count_for_buyer(self, buyer_id: str) -> Dict[str, int]:
        rows = self._db.fetch_all(
            "SELECT admin_status, COUNT(*) AS total FROM subscriptions WHERE buyer_id = ? GROUP BY admin_status",
            (buyer_id,),
        )
        counts = {int(row["admin_status"]): int(row["total"]) for row in rows}
        in_process = counts.get(int(AdminStatus.in_process), 0)
        completed = counts.get(int(AdminStatus.completed), 0)
        return {"total": in_process + completed, "in_process": in_process, "completed": completed}
