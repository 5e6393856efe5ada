"""Authentication helpers: tokens, credentials and identity providers."""

from .dependencies import Principal, current_user, require_admin
from .jwt import JWTError, TokenPair, TokenService

__all__ = [
    "JWTError",
    "Principal",
    "TokenPair",
    "TokenService",
    "current_user",
    "require_admin",
]
