"""SQLite-backed storage for user accounts and email verification codes."""

from __future__ import annotations

import sqlite3
from typing import List, Optional, Tuple

from app.storage.database import Database, from_iso, to_iso

from .models import AuthProvider, Gender, UserRecord, VerifiedEmailRecord

SORTABLE_FIELDS = ("created_at", "updated_at", "name", "email")


def _user_from_row(row: sqlite3.Row) -> UserRecord:
    return UserRecord(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        country=row["country"],
        calling_code=row["calling_code"],
        gender=Gender(row["gender"]) if row["gender"] is not None else None,
        password_hash=row["password_hash"],
        auth_provider=AuthProvider(row["auth_provider"]),
        google_uid=row["google_uid"],
        picture=row["picture"],
        email_verified=bool(row["email_verified"]),
        reset_code=row["reset_code"],
        reset_expires_at=from_iso(row["reset_expires_at"]),
        reset_verified=bool(row["reset_verified"]),
        created_at=from_iso(row["created_at"]),
        updated_at=from_iso(row["updated_at"]),
    )


def _user_params(user: UserRecord) -> tuple:
    return (
        user.name,
        user.email,
        user.phone,
        user.country,
        user.calling_code,
        int(user.gender) if user.gender is not None else None,
        user.password_hash,
        user.auth_provider.value,
        user.google_uid,
        user.picture,
        int(user.email_verified),
        user.reset_code,
        to_iso(user.reset_expires_at),
        int(user.reset_verified),
        to_iso(user.updated_at),
    )


class UserRepository:
    """Persist users; email and phone uniqueness is enforced by the schema."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def insert(self, user: UserRecord) -> UserRecord:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO users (
                    name, email, phone, country, calling_code, gender, password_hash, auth_provider,
                    google_uid, picture, email_verified, reset_code, reset_expires_at, reset_verified,
                    updated_at, id, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                _user_params(user) + (user.id, to_iso(user.created_at)),
            )
        return user

    def update(self, user: UserRecord) -> UserRecord:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE users
                SET name = ?, email = ?, phone = ?, country = ?, calling_code = ?, gender = ?,
                    password_hash = ?, auth_provider = ?, google_uid = ?, picture = ?, email_verified = ?,
                    reset_code = ?, reset_expires_at = ?, reset_verified = ?, updated_at = ?
                WHERE id = ?
                """,
                _user_params(user) + (user.id,),
            )
        return user

    def get(self, user_id: str) -> Optional[UserRecord]:
        row = self._db.fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        return _user_from_row(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        row = self._db.fetch_one("SELECT * FROM users WHERE email = ?", (email.strip().lower(),))
        return _user_from_row(row) if row else None

    def get_by_phone(self, phone: str) -> Optional[UserRecord]:
        row = self._db.fetch_one("SELECT * FROM users WHERE phone = ?", (phone.strip(),))
        return _user_from_row(row) if row else None

    def search(
        self,
        *,
        search: str,
        sort_by: str,
        descending: bool,
        offset: int,
        limit: int,
    ) -> Tuple[List[UserRecord], int]:
        if sort_by not in SORTABLE_FIELDS:
            raise ValueError(f"Unsupported sort field: {sort_by}")
        clause = ""
        params: tuple = ()
        if search:
            clause = "WHERE name LIKE ? OR email LIKE ?"
            params = (f"%{search}%", f"%{search}%")
        direction = "DESC" if descending else "ASC"
        total = int(self._db.scalar(f"SELECT COUNT(*) FROM users {clause}", params) or 0)
        rows = self._db.fetch_all(
            f"SELECT * FROM users {clause} ORDER BY {sort_by} {direction}, id {direction} LIMIT ? OFFSET ?",
            params + (limit, offset),
        )
        return [_user_from_row(row) for row in rows], total

    # -- email verification -----------------------------------------------

    def save_email_otp(self, record: VerifiedEmailRecord) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO verified_emails (email, otp_code, otp_expires_at, verified, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(email) DO UPDATE SET
                    otp_code = excluded.otp_code,
                    otp_expires_at = excluded.otp_expires_at,
                    verified = excluded.verified,
                    updated_at = excluded.updated_at
                """,
                (
                    record.email,
                    record.otp_code,
                    to_iso(record.otp_expires_at),
                    int(record.verified),
                    to_iso(record.updated_at),
                ),
            )

    def get_email_otp(self, email: str) -> Optional[VerifiedEmailRecord]:
        row = self._db.fetch_one("SELECT * FROM verified_emails WHERE email = ?", (email,))
        if not row:
            return None
        return VerifiedEmailRecord(
            email=row["email"],
            otp_code=row["otp_code"],
            otp_expires_at=from_iso(row["otp_expires_at"]),
            verified=bool(row["verified"]),
            updated_at=from_iso(row["updated_at"]),
        )
