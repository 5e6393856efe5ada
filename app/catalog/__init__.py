"""Service, sub-service and plan catalog."""

from .models import PlanRecord, PlanStatus, PricingTier, ServiceRecord, SubServiceRecord
from .repository import CatalogRepository

__all__ = [
    "CatalogRepository",
    "PlanRecord",
    "PlanStatus",
    "PricingTier",
    "ServiceRecord",
    "SubServiceRecord",
]
