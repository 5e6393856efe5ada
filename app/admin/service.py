"""Administrator sign-in and credential management."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from uuid import uuid4

from app.auth.credentials import credential_for, hash_password
from app.auth.jwt import TokenService
from app.auth.otp import code_matches, issue_code
from app.errors import Conflict, NotFoundError, Unauthorized, ValidationError
from app.notifications.mailer import Mailer, send_otp

from .models import AdminLogin, AdminPasswordReset, AdminPasswordUpdate, AdminRecord
from .repository import AdminRepository

logger = logging.getLogger(__name__)


class AdminAccounts:
    def __init__(
        self,
        admins: AdminRepository,
        tokens: TokenService,
        mailer: Mailer,
        *,
        otp_ttl_minutes: int = 10,
    ) -> None:
        self._admins = admins
        self._tokens = tokens
        self._mailer = mailer
        self._otp_ttl = otp_ttl_minutes

    def create(self, email: str, password: str) -> AdminRecord:
        admin = AdminRecord(
            id=str(uuid4()),
            email=email.strip().lower(),
            credential=hash_password(password),
            reset_code=None,
            reset_expires_at=None,
            created_at=datetime.now(tz=timezone.utc),
        )
        try:
            return self._admins.insert(admin)
        except sqlite3.IntegrityError as exc:
            raise Conflict("Admin email already registered") from exc

    def _get(self, admin_id: str) -> AdminRecord:
        admin = self._admins.get(admin_id)
        if admin is None:
            raise NotFoundError("Admin not found")
        return admin

    def login(self, payload: AdminLogin) -> tuple[AdminRecord, str]:
        admin = self._admins.get_by_email(payload.email)
        if admin is None:
            raise Unauthorized("Invalid credentials")
        credential = credential_for(admin.credential)
        if not credential.verify(payload.password):
            logger.warning("Admin login rejected", extra={"admin_id": admin.id})
            raise Unauthorized("Invalid credentials")
        if credential.needs_rehash():
            admin.credential = hash_password(payload.password)
            self._admins.update(admin)
            logger.info("Admin credential upgraded to hash", extra={"admin_id": admin.id})
        return admin, self._tokens.issue_admin(admin.id, admin.email)

    def forgot_password(self, email: str) -> None:
        admin = self._admins.get_by_email(email)
        if admin is None:
            raise NotFoundError("Email not found")
        admin.reset_code, admin.reset_expires_at = issue_code(self._otp_ttl)
        self._admins.update(admin)
        send_otp(self._mailer, admin.email, "Your password reset OTP", admin.reset_code, self._otp_ttl)

    def reset_password(self, payload: AdminPasswordReset) -> None:
        admin = self._admins.get_by_email(payload.email)
        if admin is None or not admin.reset_code:
            raise ValidationError("No reset requested for this email")
        if not code_matches(admin.reset_code, admin.reset_expires_at, payload.otp):
            raise ValidationError("Invalid or expired OTP")
        admin.credential = hash_password(payload.new_password)
        admin.reset_code = None
        admin.reset_expires_at = None
        self._admins.update(admin)

    def update_password(self, admin_id: str, payload: AdminPasswordUpdate) -> None:
        admin = self._get(admin_id)
        if not credential_for(admin.credential).verify(payload.old_password):
            raise Unauthorized("Invalid credentials")
        admin.credential = hash_password(payload.new_password)
        self._admins.update(admin)

    def update_email(self, admin_id: str, new_email: str) -> tuple[AdminRecord, str]:
        admin = self._get(admin_id)
        other = self._admins.get_by_email(new_email)
        if other is not None and other.id != admin.id:
            raise Conflict("Email already in use")
        admin.email = new_email
        self._admins.update(admin)
        return admin, self._tokens.issue_admin(admin.id, admin.email)
