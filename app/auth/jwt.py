"""Utility helpers for issuing and validating HMAC JWTs."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Sequence

from fastapi import Request, Response

from app.config import Settings
from app.errors import Unauthorized

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"
ADMIN_TOKEN_TYPE = "admin"


class JWTError(Unauthorized):
    """Raised for malformed, forged or expired tokens."""

    category = "invalid_token"


@dataclass
class TokenPair:
    """Pair of access and refresh tokens."""

    access_token: str
    refresh_token: str
    expires_at: datetime

    def as_payload(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at.isoformat(),
        }


def _base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _base64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


class TokenService:
    """Issue and verify HS256 tokens signed with the configured secret."""

    def __init__(
        self,
        secret: str,
        *,
        expire_minutes: int = 30,
        refresh_days: int = 30,
        cookie_secure: bool = False,
    ) -> None:
        if not secret:
            raise RuntimeError("JWT_SECRET is not configured")
        self._secret = secret.encode("utf-8")
        self._expire_minutes = max(expire_minutes, 1)
        self._refresh_days = max(refresh_days, 1)
        self._cookie_secure = cookie_secure

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            settings.jwt_secret,
            expire_minutes=settings.jwt_expire_minutes,
            refresh_days=settings.refresh_expire_days,
            cookie_secure=settings.cookie_secure,
        )

    def _encode(self, payload: Dict[str, Any]) -> str:
        header = {"alg": "HS256", "typ": "JWT"}
        header_segment = _base64url(json.dumps(header, separators=(",", ":")).encode("utf-8"))
        payload_segment = _base64url(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        signing_input = f"{header_segment}.{payload_segment}".encode("ascii")
        signature = hmac.new(self._secret, signing_input, hashlib.sha256).digest()
        return f"{header_segment}.{payload_segment}.{_base64url(signature)}"

    def _decode(self, token: str) -> Dict[str, Any]:
        try:
            header_segment, payload_segment, signature_segment = token.split(".")
        except ValueError as exc:
            raise JWTError("invalid_token_format") from exc

        try:
            signing_input = f"{header_segment}.{payload_segment}".encode("ascii")
            provided_signature = _base64url_decode(signature_segment)
        except (UnicodeEncodeError, ValueError) as exc:
            raise JWTError("invalid_token_format") from exc

        expected_signature = hmac.new(self._secret, signing_input, hashlib.sha256).digest()
        if not hmac.compare_digest(expected_signature, provided_signature):
            raise JWTError("invalid_token_signature")

        try:
            payload: Dict[str, Any] = json.loads(_base64url_decode(payload_segment))
        except (json.JSONDecodeError, ValueError) as exc:
            raise JWTError("invalid_token_payload") from exc

        return payload

    def issue(self, user_id: str, roles: Sequence[str] = ("user",)) -> TokenPair:
        """Issue new access/refresh JWT tokens for the provided user id."""

        now = datetime.now(timezone.utc)
        access_expiry = now + timedelta(minutes=self._expire_minutes)
        refresh_expiry = now + timedelta(days=self._refresh_days)

        access_payload = {
            "sub": user_id,
            "roles": list(roles),
            "type": "access",
            "iat": int(now.timestamp()),
            "exp": int(access_expiry.timestamp()),
        }
        refresh_payload = {
            "sub": user_id,
            "roles": list(roles),
            "type": "refresh",
            "iat": int(now.timestamp()),
            "exp": int(refresh_expiry.timestamp()),
        }
        return TokenPair(
            access_token=self._encode(access_payload),
            refresh_token=self._encode(refresh_payload),
            expires_at=access_expiry,
        )

    def issue_admin(self, admin_id: str, email: str) -> str:
        """Issue a single admin token; admin sessions are not refreshable."""

        now = datetime.now(timezone.utc)
        payload = {
            "sub": admin_id,
            "email": email,
            "roles": ["admin"],
            "type": ADMIN_TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(days=1)).timestamp()),
        }
        return self._encode(payload)

    def verify(self, token: str, expected_type: str = "access") -> Dict[str, Any]:
        payload = self._decode(token)
        token_type = payload.get("type")
        if expected_type and token_type != expected_type:
            raise JWTError("invalid_token_type")
        exp = payload.get("exp")
        if exp is None:
            raise JWTError("missing_expiration")
        if int(time.time()) >= int(exp):
            raise JWTError("token_expired")
        return payload

    def refresh(self, refresh_token: str) -> TokenPair:
        payload = self.verify(refresh_token, expected_type="refresh")
        user_id = payload.get("sub")
        if not user_id:
            raise JWTError("invalid_subject")
        roles = payload.get("roles") or []
        if not isinstance(roles, (list, tuple)):
            raise JWTError("invalid_roles")
        return self.issue(user_id, roles)

    def apply_cookies(self, response: Response, tokens: TokenPair) -> None:
        response.set_cookie(
            ACCESS_COOKIE,
            tokens.access_token,
            httponly=True,
            secure=self._cookie_secure,
            samesite="lax",
            max_age=self._expire_minutes * 60,
            path="/",
        )
        response.set_cookie(
            REFRESH_COOKIE,
            tokens.refresh_token,
            httponly=True,
            secure=self._cookie_secure,
            samesite="lax",
            max_age=self._refresh_days * 24 * 3600,
            path="/",
        )


def token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization")
    if header and header.startswith("Bearer "):
        return header.split(" ", 1)[1]
    cookie = request.cookies.get(ACCESS_COOKIE)
    if cookie:
        return cookie
    return None


def clear_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE, path="/")
    response.delete_cookie(REFRESH_COOKIE, path="/")
