"""Administrator accounts and privileged operations."""

from .repository import AdminRepository
from .service import AdminAccounts

__all__ = ["AdminAccounts", "AdminRepository"]
