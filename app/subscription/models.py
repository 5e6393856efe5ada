"""Data models for subscription management."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SubscriptionStatus(str, Enum):
    """Lifecycle status of an entitlement."""

    active = "active"
    cancelled = "cancelled"
    expired = "expired"


class AdminStatus(IntEnum):
    """Back-office fulfilment workflow, independent of the lifecycle status."""

    in_process = 0
    completed = 1


@dataclass(slots=True)
class SubscriptionRecord:
    """Database representation of a subscription."""

    id: str
    buyer_id: str
    plan_id: str
    pricing_id: str
    plan_name: str
    delivery_target: str
    order_id: Optional[str]
    payment_id: Optional[str]
    amount: int
    currency: str
    status: SubscriptionStatus
    admin_status: AdminStatus
    started_at: datetime
    expires_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    def as_payload(self) -> Dict[str, Any]:
        return {
            "subscription_id": self.id,
            "buyer_id": self.buyer_id,
            "plan_id": self.plan_id,
            "pricing_id": self.pricing_id,
            "plan_name": self.plan_name,
            "delivery_target": self.delivery_target,
            "order_id": self.order_id,
            "payment_id": self.payment_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status.value,
            "admin_status": int(self.admin_status),
            "started_at": self.started_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class SubscriptionAction(BaseModel):
    subscription_id: str = Field(..., alias="subscriptionId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class SubscriptionUpsert(BaseModel):
    """Manual create-or-reprice request. Not linked to any order."""

    model_config = ConfigDict(populate_by_name=True)

    buyer_id: str = Field(..., alias="userId", min_length=1)
    plan_id: Optional[str] = Field(None, alias="planId")
    pricing_id: Optional[str] = Field(None, alias="pricingId")
    currency: Optional[str] = None
    price: Optional[Union[str, float, int]] = None
    delivery_target: Optional[str] = Field(None, alias="deliveryTarget")

    @field_validator("currency")
    @classmethod
    def uppercase_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value


class AdminStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subscription_id: str = Field(..., alias="subscriptionId", min_length=1)
    admin_status: AdminStatus = Field(..., alias="Status")


class UserSubscriptionQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    buyer_id: str = Field(..., alias="userId", min_length=1)
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class AdminTaskQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    admin_status: Optional[AdminStatus] = Field(None, alias="Status")
    search: str = ""
    sort_by: str = Field("created_at", alias="sortBy")
    sort_order: str = Field("desc", alias="sortOrder", pattern="^(asc|desc)$")
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
