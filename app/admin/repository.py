"""Persistence layer for administrator accounts."""

from __future__ import annotations

import sqlite3
from typing import Optional

from app.storage.database import Database, from_iso, to_iso

from .models import AdminRecord


def _admin_from_row(row: sqlite3.Row) -> AdminRecord:
    return AdminRecord(
        id=row["id"],
        email=row["email"],
        credential=row["credential"],
        reset_code=row["reset_code"],
        reset_expires_at=from_iso(row["reset_expires_at"]),
        created_at=from_iso(row["created_at"]),
    )


class AdminRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    def insert(self, admin: AdminRecord) -> AdminRecord:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO admins (id, email, credential, reset_code, reset_expires_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    admin.id,
                    admin.email,
                    admin.credential,
                    admin.reset_code,
                    to_iso(admin.reset_expires_at),
                    to_iso(admin.created_at),
                ),
            )
        return admin

    def update(self, admin: AdminRecord) -> AdminRecord:
        with self._db.transaction() as conn:
            conn.execute(
                "UPDATE admins SET email = ?, credential = ?, reset_code = ?, reset_expires_at = ? WHERE id = ?",
                (admin.email, admin.credential, admin.reset_code, to_iso(admin.reset_expires_at), admin.id),
            )
        return admin

    def get(self, admin_id: str) -> Optional[AdminRecord]:
        row = self._db.fetch_one("SELECT * FROM admins WHERE id = ?", (admin_id,))
        return _admin_from_row(row) if row else None

    def get_by_email(self, email: str) -> Optional[AdminRecord]:
        row = self._db.fetch_one("SELECT * FROM admins WHERE email = ?", (email.strip().lower(),))
        return _admin_from_row(row) if row else None
