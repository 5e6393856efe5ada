"""FastAPI dependencies resolving the authenticated caller."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from fastapi import Request

from app.auth.jwt import ADMIN_TOKEN_TYPE, JWTError, TokenService, token_from_request
from app.errors import Unauthorized


@dataclass(frozen=True)
class Principal:
    """Identity of the caller making a request."""

    id: str
    roles: List[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles


def get_token_service(request: Request) -> TokenService:
    tokens = getattr(request.app.state, "token_service", None)
    if tokens is None:
        raise RuntimeError("Token service is not configured")
    return tokens


def _admin_principal(request: Request, payload: dict) -> Principal:
    admin_id = payload.get("sub")
    admin_repo = getattr(request.app.state, "admin_repo", None)
    if not admin_id or admin_repo is None or admin_repo.get(str(admin_id)) is None:
        raise Unauthorized("Admin not found")
    return Principal(id=str(admin_id), roles=["admin"])


def current_user(request: Request) -> Principal:
    """Resolve a buyer access token or an admin token into a principal."""

    token = token_from_request(request)
    if not token:
        raise Unauthorized("Authentication required")
    payload = get_token_service(request).verify(token, expected_type="")
    token_type = payload.get("type")
    if token_type == ADMIN_TOKEN_TYPE:
        return _admin_principal(request, payload)
    if token_type != "access":
        raise JWTError("invalid_token_type")
    subject = payload.get("sub")
    if not subject:
        raise JWTError("invalid_subject")
    return Principal(id=str(subject), roles=[role for role in payload.get("roles") or [] if role != "admin"])


def require_admin(request: Request) -> Principal:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise Unauthorized("Admin token required")
    payload = get_token_service(request).verify(header.split(" ", 1)[1], expected_type=ADMIN_TOKEN_TYPE)
    return _admin_principal(request, payload)
