"""Data models for checkout orders and gateway payments."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrderStatus(str, Enum):
    created = "created"
    paid = "paid"
    failed = "failed"


class GatewayPaymentStatus(str, Enum):
    """Payment states reported by the gateway."""

    created = "created"
    authorized = "authorized"
    captured = "captured"
    refunded = "refunded"
    failed = "failed"


@dataclass(slots=True)
class OrderRecord:
    """A payment intent tracking one checkout attempt."""

    order_id: str
    amount: int
    currency: str
    receipt: str
    buyer_id: str
    plan_id: str
    pricing_id: str
    delivery_target: str
    status: OrderStatus = OrderStatus.created
    gateway_status: Optional[str] = None
    payment_id: Optional[str] = None
    signature: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    def as_payload(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "amount": self.amount,
            "currency": self.currency,
            "receipt": self.receipt,
            "buyer_id": self.buyer_id,
            "plan_id": self.plan_id,
            "pricing_id": self.pricing_id,
            "delivery_target": self.delivery_target,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
        }


@dataclass(frozen=True)
class RemoteOrder:
    order_id: str
    amount: int
    currency: str
    receipt: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayPayment:
    payment_id: str
    status: str
    order_id: Optional[str] = None
    amount: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    buyer_id: str = Field(..., alias="buyerId", min_length=1)
    plan_id: str = Field(..., alias="planId", min_length=1)
    pricing_id: str = Field(..., alias="pricingId", min_length=1)
    delivery_target: str = Field(..., alias="deliveryTarget", min_length=1)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    receipt: Optional[str] = Field(None, max_length=40)

    @field_validator("buyer_id", "plan_id", "pricing_id", "delivery_target")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("field is required")
        return value

    @field_validator("currency")
    @classmethod
    def normalise_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value


class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gateway_order_id: str = Field(..., alias="gatewayOrderId", min_length=1)
    gateway_payment_id: str = Field(..., alias="gatewayPaymentId", min_length=1)
    signature: str = Field(..., min_length=1)
