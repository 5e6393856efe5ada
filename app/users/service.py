"""Account workflows: email verification, registration, sign-in and profile management."""

from __future__ import annotations

import logging
import math
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from app.auth.credentials import HashedCredential, hash_password
from app.auth.google_identity import IdentityVerifier
from app.auth.jwt import TokenPair, TokenService
from app.auth.otp import code_matches, issue_code
from app.errors import Conflict, Forbidden, NotFoundError, Unauthorized, ValidationError
from app.notifications.mailer import Mailer, send_otp
from app.subscription.repository import SubscriptionRepository

from .models import (
    AuthProvider,
    EmailOtpVerify,
    LoginRequest,
    PasswordResetComplete,
    ProfileUpdate,
    RegisterRequest,
    UserListQuery,
    UserRecord,
    VerifiedEmailRecord,
)
from .repository import SORTABLE_FIELDS, UserRepository

logger = logging.getLogger(__name__)


class UserAccounts:
    def __init__(
        self,
        users: UserRepository,
        subscriptions: SubscriptionRepository,
        tokens: TokenService,
        mailer: Mailer,
        identity_verifier: IdentityVerifier,
        *,
        otp_ttl_minutes: int = 10,
    ) -> None:
        self._users = users
        self._subscriptions = subscriptions
        self._tokens = tokens
        self._mailer = mailer
        self._identity = identity_verifier
        self._otp_ttl = otp_ttl_minutes

    def get(self, user_id: str) -> UserRecord:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    # -- email verification -----------------------------------------------

    def request_email_otp(self, email: str) -> None:
        code, expires_at = issue_code(self._otp_ttl)
        self._users.save_email_otp(
            VerifiedEmailRecord(
                email=email,
                otp_code=code,
                otp_expires_at=expires_at,
                verified=False,
                updated_at=datetime.now(tz=timezone.utc),
            )
        )
        send_otp(self._mailer, email, "Your Verification Code", code, self._otp_ttl)

    def verify_email_otp(self, payload: EmailOtpVerify) -> None:
        record = self._users.get_email_otp(payload.email)
        if record is None or not code_matches(record.otp_code, record.otp_expires_at, payload.otp):
            raise ValidationError("Invalid or expired OTP")
        record.verified = True
        record.otp_code = None
        record.otp_expires_at = None
        record.updated_at = datetime.now(tz=timezone.utc)
        self._users.save_email_otp(record)

    # -- registration and sign-in -----------------------------------------

    def register(self, payload: RegisterRequest) -> UserRecord:
        verified = self._users.get_email_otp(payload.email)
        if verified is None or not verified.verified:
            raise Forbidden("Email is not verified yet")
        if self._users.get_by_email(payload.email) is not None:
            raise Conflict("Email already registered")
        if self._users.get_by_phone(payload.phone) is not None:
            raise Conflict("Phone already in use")

        now = datetime.now(tz=timezone.utc)
        user = UserRecord(
            id=str(uuid4()),
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            country=payload.country,
            calling_code=payload.calling_code,
            gender=payload.gender,
            password_hash=hash_password(payload.password),
            auth_provider=AuthProvider.local,
            google_uid=None,
            picture=None,
            email_verified=True,
            reset_code=None,
            reset_expires_at=None,
            reset_verified=False,
            created_at=now,
            updated_at=now,
        )
        try:
            self._users.insert(user)
        except sqlite3.IntegrityError as exc:
            raise Conflict("Email or phone already registered") from exc
        logger.info("User registered", extra={"user_id": user.id})
        return user

    def login(self, payload: LoginRequest) -> tuple[UserRecord, TokenPair]:
        user = self._users.get_by_email(payload.email)
        if user is None or not user.password_hash or not HashedCredential(user.password_hash).verify(payload.password):
            raise Unauthorized("Invalid credentials")
        return user, self._tokens.issue(user.id)

    async def google_sign_in(self, id_token: str) -> tuple[UserRecord, TokenPair]:
        identity = await self._identity.verify(id_token)
        now = datetime.now(tz=timezone.utc)
        user = self._users.get_by_email(identity.email)

        if user is None:
            user = UserRecord(
                id=str(uuid4()),
                name=identity.name or identity.email.split("@")[0],
                email=identity.email,
                phone=None,
                country=None,
                calling_code=None,
                gender=None,
                password_hash=None,
                auth_provider=AuthProvider.google,
                google_uid=identity.uid,
                picture=identity.picture,
                email_verified=identity.email_verified,
                reset_code=None,
                reset_expires_at=None,
                reset_verified=False,
                created_at=now,
                updated_at=now,
            )
            self._users.insert(user)
            logger.info("Federated user created", extra={"user_id": user.id})
        else:
            # fill gaps only; local profile data wins
            changed = False
            if not user.google_uid:
                user.google_uid = identity.uid
                changed = True
            if identity.email_verified and not user.email_verified:
                user.email_verified = True
                changed = True
            if identity.picture and not user.picture:
                user.picture = identity.picture
                changed = True
            if identity.name and not user.name:
                user.name = identity.name
                changed = True
            if changed:
                user.updated_at = now
                self._users.update(user)

        return user, self._tokens.issue(user.id)

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        if not refresh_token:
            raise Unauthorized("Refresh token required")
        return self._tokens.refresh(refresh_token)

    # -- password reset ---------------------------------------------------

    def request_password_reset(self, email: str) -> None:
        user = self._users.get_by_email(email)
        if user is None:
            raise NotFoundError("No user with that email")
        user.reset_code, user.reset_expires_at = issue_code(self._otp_ttl)
        user.reset_verified = False
        user.updated_at = datetime.now(tz=timezone.utc)
        self._users.update(user)
        send_otp(self._mailer, email, "Your Password Reset Code", user.reset_code, self._otp_ttl)

    def verify_password_reset(self, payload: EmailOtpVerify) -> None:
        user = self._users.get_by_email(payload.email)
        if user is None or not code_matches(user.reset_code, user.reset_expires_at, payload.otp):
            raise ValidationError("Invalid or expired OTP")
        user.reset_verified = True
        user.reset_code = None
        user.reset_expires_at = None
        user.updated_at = datetime.now(tz=timezone.utc)
        self._users.update(user)

    def complete_password_reset(self, payload: PasswordResetComplete) -> None:
        user = self._users.get_by_email(payload.email)
        if user is None or not user.reset_verified:
            raise Forbidden("OTP not verified or invalid email")
        user.password_hash = hash_password(payload.new_password)
        user.reset_verified = False
        user.updated_at = datetime.now(tz=timezone.utc)
        self._users.update(user)
        logger.info("Password reset completed", extra={"user_id": user.id})

    # -- profile ----------------------------------------------------------

    def update_profile(self, payload: ProfileUpdate, requester_id: str) -> UserRecord:
        if payload.user_id != requester_id:
            raise Forbidden("Forbidden")
        user = self.get(payload.user_id)

        if payload.name:
            user.name = payload.name.strip()
        if payload.phone:
            phone = payload.phone.strip()
            other = self._users.get_by_phone(phone)
            if other is not None and other.id != user.id:
                raise Conflict("Phone already in use")
            user.phone = phone
        if payload.new_password:
            if not payload.old_password:
                raise ValidationError("Old password is required")
            if not user.password_hash or not HashedCredential(user.password_hash).verify(payload.old_password):
                raise ValidationError("Old password is incorrect")
            user.password_hash = hash_password(payload.new_password)

        user.updated_at = datetime.now(tz=timezone.utc)
        try:
            self._users.update(user)
        except sqlite3.IntegrityError as exc:
            raise Conflict("Phone already in use") from exc
        return user

    def get_with_counts(self, user_id: str) -> Dict[str, Any]:
        user = self.get(user_id)
        return {"data": user.as_profile(), "subscriptions": self._subscriptions.count_for_buyer(user_id)}

    def list_users(self, query: UserListQuery) -> Dict[str, Any]:
        if query.sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"sortBy must be one of: {', '.join(SORTABLE_FIELDS)}")
        users, total = self._users.search(
            search=query.search.strip(),
            sort_by=query.sort_by,
            descending=query.sort_order == "desc",
            offset=(query.page - 1) * query.limit,
            limit=query.limit,
        )
        return {
            "data": [user.as_profile() for user in users],
            "meta": {
                "total": total,
                "page": query.page,
                "perPage": query.limit,
                "lastPage": math.ceil(total / query.limit),
            },
        }
