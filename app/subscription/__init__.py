"""Subscription records and their post-activation lifecycle."""

from .models import AdminStatus, SubscriptionRecord, SubscriptionStatus
from .repository import SubscriptionRepository

__all__ = ["AdminStatus", "SubscriptionRecord", "SubscriptionRepository", "SubscriptionStatus"]
