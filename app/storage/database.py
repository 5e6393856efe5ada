"""SQLite connection wrapper with explicit, joinable transactions."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Iterator, Optional

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS services (
        id TEXT PRIMARY KEY,
        heading TEXT NOT NULL,
        description TEXT NOT NULL,
        logo TEXT,
        content TEXT NOT NULL DEFAULT '[]',
        sub_services TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS plans (
        id TEXT PRIMARY KEY,
        service_id TEXT NOT NULL,
        sub_service_id TEXT NOT NULL,
        name TEXT NOT NULL,
        pricing TEXT NOT NULL DEFAULT '[]',
        status TEXT NOT NULL DEFAULT 'Active',
        duration_months INTEGER,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (service_id, sub_service_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        order_id TEXT PRIMARY KEY,
        amount INTEGER NOT NULL CHECK (amount > 0),
        currency TEXT NOT NULL,
        receipt TEXT,
        buyer_id TEXT NOT NULL,
        plan_id TEXT NOT NULL,
        pricing_id TEXT NOT NULL,
        delivery_target TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'created',
        gateway_status TEXT,
        payment_id TEXT,
        signature TEXT,
        created_at TEXT NOT NULL,
        paid_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_orders_buyer ON orders (buyer_id)",
    "CREATE INDEX IF NOT EXISTS idx_orders_status ON orders (status)",
    """
    CREATE TABLE IF NOT EXISTS subscriptions (
        id TEXT PRIMARY KEY,
        buyer_id TEXT NOT NULL,
        plan_id TEXT NOT NULL,
        pricing_id TEXT NOT NULL,
        plan_name TEXT NOT NULL DEFAULT '',
        delivery_target TEXT NOT NULL DEFAULT '',
        order_id TEXT UNIQUE,
        payment_id TEXT,
        amount INTEGER NOT NULL,
        currency TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'active',
        admin_status INTEGER NOT NULL DEFAULT 0,
        started_at TEXT NOT NULL,
        expires_at TEXT,
        cancelled_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_buyer ON subscriptions (buyer_id)",
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        phone TEXT UNIQUE,
        country TEXT,
        calling_code TEXT,
        gender INTEGER,
        password_hash TEXT,
        auth_provider TEXT NOT NULL DEFAULT 'local',
        google_uid TEXT,
        picture TEXT,
        email_verified INTEGER NOT NULL DEFAULT 0,
        reset_code TEXT,
        reset_expires_at TEXT,
        reset_verified INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS verified_emails (
        email TEXT PRIMARY KEY,
        otp_code TEXT,
        otp_expires_at TEXT,
        verified INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS admins (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        credential TEXT NOT NULL,
        reset_code TEXT,
        reset_expires_at TEXT,
        created_at TEXT NOT NULL
    )
    """,
)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def dump_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def load_json(value: Optional[str], default: Any = None) -> Any:
    if not value:
        return default
    return json.loads(value)


class Database:
    """Single SQLite connection guarded by a re-entrant lock.

    ``transaction()`` opens a ``BEGIN IMMEDIATE`` unit that commits on success
    and rolls back on any exception. Passing an already open connection joins
    the caller's unit instead of opening a nested one.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        if self._path != ":memory:":
            target = Path(self._path)
            if target.parent and not target.parent.exists():
                target.parent.mkdir(parents=True, exist_ok=True)
        self._connection = sqlite3.connect(self._path, check_same_thread=False, isolation_level=None)
        self._connection.row_factory = sqlite3.Row
        self._lock = RLock()
        self._ensure_schema()

    @property
    def path(self) -> str:
        return self._path

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    @contextmanager
    def transaction(self, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
            return
        with self._lock:
            self._connection.execute("BEGIN IMMEDIATE")
            try:
                yield self._connection
            except BaseException:
                self._connection.rollback()
                raise
            else:
                self._connection.commit()

    def fetch_one(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self._connection.execute(sql, params).fetchone()

    def fetch_all(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._connection.execute(sql, params).fetchall()

    def scalar(self, sql: str, params: tuple = ()) -> Any:
        row = self.fetch_one(sql, params)
        return row[0] if row else None

    def close(self) -> None:
        with self._lock:
            self._connection.close()
