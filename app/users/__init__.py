"""Buyer accounts."""

from .models import UserRecord
from .repository import UserRepository

__all__ = ["UserRecord", "UserRepository"]
