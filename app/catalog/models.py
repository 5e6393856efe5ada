"""Data models for the service and plan catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PlanStatus(str, Enum):
    active = "Active"
    inactive = "Inactive"
    pending = "Pending"


@dataclass(slots=True)
class ContentEntry:
    id: str
    key: str

    def as_payload(self) -> dict:
        return {"content_id": self.id, "key": self.key}


@dataclass(slots=True)
class SubServiceRecord:
    id: str
    heading: str
    description: str
    logo: Optional[str] = None
    content: List[ContentEntry] = field(default_factory=list)

    def as_payload(self) -> dict:
        return {
            "sub_service_id": self.id,
            "heading": self.heading,
            "description": self.description,
            "logo": self.logo,
            "content": [entry.as_payload() for entry in self.content],
        }


@dataclass(slots=True)
class ServiceRecord:
    """A catalog service with its embedded sub-services."""

    id: str
    heading: str
    description: str
    logo: Optional[str]
    content: List[ContentEntry]
    sub_services: List[SubServiceRecord]
    created_at: datetime
    updated_at: datetime

    def find_sub_service(self, sub_service_id: str) -> Optional[SubServiceRecord]:
        return next((sub for sub in self.sub_services if sub.id == sub_service_id), None)

    def as_payload(self) -> dict:
        return {
            "service_id": self.id,
            "heading": self.heading,
            "description": self.description,
            "logo": self.logo,
            "content": [entry.as_payload() for entry in self.content],
            "sub_services": [sub.as_payload() for sub in self.sub_services],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(slots=True)
class PricingTier:
    """A named price point embedded in a plan."""

    id: str
    name: str
    price: str
    description: str = ""
    features: List[str] = field(default_factory=list)
    is_popular: bool = False

    def as_payload(self) -> dict:
        return {
            "pricing_id": self.id,
            "name": self.name,
            "price": self.price,
            "description": self.description or "",
            "features": list(self.features or []),
            "is_popular": bool(self.is_popular),
        }


@dataclass(slots=True)
class PlanRecord:
    id: str
    service_id: str
    sub_service_id: str
    name: str
    pricing: List[PricingTier]
    status: PlanStatus
    duration_months: Optional[int]
    created_at: datetime
    updated_at: datetime

    def find_tier(self, pricing_id: str) -> Optional[PricingTier]:
        return next((tier for tier in self.pricing if tier.id == pricing_id), None)

    def as_payload(self) -> dict:
        return {
            "plan_id": self.id,
            "service_id": self.service_id,
            "sub_service_id": self.sub_service_id,
            "name": self.name,
            "pricing": [tier.as_payload() for tier in self.pricing],
            "status": self.status.value,
            "duration_months": self.duration_months,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class ContentInput(BaseModel):
    key: str = Field(..., min_length=1)

    @field_validator("key")
    @classmethod
    def strip_key(cls, value: str) -> str:
        return value.strip()


class ServiceCreate(BaseModel):
    heading: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    logo: Optional[str] = Field(None, description="Path or URL of an already stored logo")
    content: List[ContentInput] = Field(default_factory=list)


class ServiceUpdate(BaseModel):
    service_id: str
    heading: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    content: Optional[List[ContentInput]] = None


class SubServiceCreate(BaseModel):
    heading: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    logo: Optional[str] = None
    content: List[ContentInput] = Field(default_factory=list)


class SubServiceUpdate(BaseModel):
    service_id: str
    sub_service_id: str
    heading: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    content: Optional[List[ContentInput]] = None


class ServiceLookup(BaseModel):
    service_id: str


class SubServiceLookup(BaseModel):
    service_id: str
    sub_service_id: str


class PricingTierInput(BaseModel):
    pricing_id: Optional[str] = None
    name: str = Field(..., min_length=1)
    price: str = Field(..., min_length=1, description="Display price, e.g. $24.99")
    description: str = ""
    features: List[str] = Field(default_factory=list)
    is_popular: bool = False


class PricingTierPatch(BaseModel):
    pricing_id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[str] = None
    description: Optional[str] = None
    features: Optional[List[str]] = None
    is_popular: Optional[bool] = None


class PlanCreate(BaseModel):
    service_id: str = Field(..., min_length=1)
    sub_service_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    pricing: List[PricingTierInput] = Field(..., min_length=1)
    status: PlanStatus = PlanStatus.active
    duration_months: Optional[int] = Field(None, gt=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name is required")
        return value


class PlanUpdate(BaseModel):
    plan_id: str
    name: Optional[str] = None
    status: Optional[PlanStatus] = None
    duration_months: Optional[int] = Field(None, gt=0)
    pricing: Optional[List[PricingTierPatch]] = None


class PlanListQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    search: str = ""


class PlanLookup(BaseModel):
    plan_id: str


class PlanNameLookup(BaseModel):
    name: str = Field(..., min_length=1)


class PricingLookup(BaseModel):
    pricing_id: str


class PlanCatalogLookup(BaseModel):
    service_id: Optional[str] = None
    sub_service_id: Optional[str] = None
