"""Verification of Google ID tokens against the public tokeninfo endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import httpx

from app.errors import GatewayError, Unauthorized

logger = logging.getLogger(__name__)

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
_TRUSTED_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


@dataclass(frozen=True)
class FederatedIdentity:
    """Claims extracted from a verified identity token."""

    uid: str
    email: str
    name: str = ""
    picture: Optional[str] = None
    email_verified: bool = False


class IdentityVerifier(Protocol):
    async def verify(self, id_token: str) -> FederatedIdentity:
        ...


class GoogleIdentityVerifier:
    """Validate ID tokens through Google's tokeninfo endpoint."""

    def __init__(
        self,
        client_id: str,
        *,
        http_client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._client_id = client_id
        self._http_client_factory = http_client_factory or (lambda: httpx.AsyncClient(timeout=10.0))

    async def verify(self, id_token: str) -> FederatedIdentity:
        if not self._client_id:
            raise GatewayError("Google sign-in is not configured")
        try:
            async with self._http_client_factory() as client:
                response = await client.get(GOOGLE_TOKENINFO_URL, params={"id_token": id_token})
        except httpx.HTTPError as exc:
            logger.warning("Google tokeninfo request failed", extra={"error": str(exc)})
            raise GatewayError("Identity provider unavailable, please retry") from exc

        if response.status_code >= 400:
            raise Unauthorized("Invalid Google token")
        claims = response.json()

        if claims.get("aud") != self._client_id:
            raise Unauthorized("Google token audience mismatch")
        if claims.get("iss") not in _TRUSTED_ISSUERS:
            raise Unauthorized("Google token issuer mismatch")
        email = (claims.get("email") or "").strip().lower()
        uid = claims.get("sub")
        if not email or not uid:
            raise Unauthorized("Google token has no email")

        return FederatedIdentity(
            uid=str(uid),
            email=email,
            name=claims.get("name") or "",
            picture=claims.get("picture"),
            email_verified=str(claims.get("email_verified", "")).lower() == "true",
        )
