"""Password hashing and stored-credential verification.

Stored credentials come in two shapes: bcrypt hashes produced by passlib and
legacy plaintext values that predate hashing. ``credential_for`` picks the
verifier for a stored value so callers never sniff prefixes themselves.
"""

from __future__ import annotations

import hmac
from typing import Protocol

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


class CredentialVerifier(Protocol):
    stored: str

    def verify(self, candidate: str) -> bool:
        ...

    def needs_rehash(self) -> bool:
        ...


class HashedCredential:
    """A bcrypt hash checked through passlib."""

    def __init__(self, stored: str) -> None:
        self.stored = stored

    def verify(self, candidate: str) -> bool:
        try:
            return pwd_context.verify(candidate, self.stored)
        except ValueError:
            return False

    def needs_rehash(self) -> bool:
        return pwd_context.needs_update(self.stored)


class LegacyPlaintextCredential:
    """A credential stored before hashing was introduced.

    A successful check should be followed by replacing the stored value with
    ``hash_password(candidate)``.
    """

    def __init__(self, stored: str) -> None:
        self.stored = stored

    def verify(self, candidate: str) -> bool:
        return hmac.compare_digest(candidate.encode("utf-8"), self.stored.encode("utf-8"))

    def needs_rehash(self) -> bool:
        return True


def credential_for(stored: str) -> CredentialVerifier:
    if stored.startswith(_BCRYPT_PREFIXES):
        return HashedCredential(stored)
    return LegacyPlaintextCredential(stored)
