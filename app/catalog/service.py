"""Business logic for the service and plan catalog."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from app.errors import Conflict, NotFoundError, ValidationError
from app.pricing import parse_display_price

from .models import (
    ContentEntry,
    ContentInput,
    PlanCatalogLookup,
    PlanCreate,
    PlanListQuery,
    PlanRecord,
    PlanUpdate,
    PricingTier,
    ServiceCreate,
    ServiceRecord,
    ServiceUpdate,
    SubServiceCreate,
    SubServiceRecord,
    SubServiceUpdate,
)
from .repository import CatalogRepository


def _content(entries: List[ContentInput]) -> List[ContentEntry]:
    return [ContentEntry(id=str(uuid4()), key=entry.key) for entry in entries]


def create_service(payload: ServiceCreate, repo: CatalogRepository) -> ServiceRecord:
    now = datetime.now(tz=timezone.utc)
    service = ServiceRecord(
        id=str(uuid4()),
        heading=payload.heading.strip(),
        description=payload.description.strip(),
        logo=payload.logo,
        content=_content(payload.content),
        sub_services=[],
        created_at=now,
        updated_at=now,
    )
    return repo.save_service(service)


def get_service(service_id: str, repo: CatalogRepository) -> ServiceRecord:
    service = repo.get_service(service_id)
    if service is None:
        raise NotFoundError("Service not found")
    return service


def add_sub_service(service_id: str, payload: SubServiceCreate, repo: CatalogRepository) -> SubServiceRecord:
    service = get_service(service_id, repo)
    sub_service = SubServiceRecord(
        id=str(uuid4()),
        heading=payload.heading.strip(),
        description=payload.description.strip(),
        logo=payload.logo,
        content=_content(payload.content),
    )
    if repo.sub_service_id_taken(sub_service.id):
        raise Conflict("Duplicate sub-service id")
    service.sub_services.append(sub_service)
    service.updated_at = datetime.now(tz=timezone.utc)
    repo.save_service(service)
    return sub_service


def get_sub_service(service_id: str, sub_service_id: str, repo: CatalogRepository) -> SubServiceRecord:
    service = get_service(service_id, repo)
    sub_service = service.find_sub_service(sub_service_id)
    if sub_service is None:
        raise NotFoundError("SubService not found")
    return sub_service


def update_service(payload: ServiceUpdate, repo: CatalogRepository) -> ServiceRecord:
    service = get_service(payload.service_id, repo)
    if payload.heading is not None:
        service.heading = payload.heading.strip()
    if payload.description is not None:
        service.description = payload.description.strip()
    if payload.logo is not None:
        service.logo = payload.logo
    if payload.content is not None:
        service.content = _content(payload.content)
    service.updated_at = datetime.now(tz=timezone.utc)
    return repo.save_service(service)


def update_sub_service(payload: SubServiceUpdate, repo: CatalogRepository) -> SubServiceRecord:
    service = get_service(payload.service_id, repo)
    sub_service = service.find_sub_service(payload.sub_service_id)
    if sub_service is None:
        raise NotFoundError("SubService not found")
    if payload.heading is not None:
        sub_service.heading = payload.heading.strip()
    if payload.description is not None:
        sub_service.description = payload.description.strip()
    if payload.logo is not None:
        sub_service.logo = payload.logo
    if payload.content is not None:
        sub_service.content = _content(payload.content)
    service.updated_at = datetime.now(tz=timezone.utc)
    repo.save_service(service)
    return sub_service


def create_plan(payload: PlanCreate, repo: CatalogRepository) -> PlanRecord:
    if not repo.service_and_sub_service_exist(payload.service_id, payload.sub_service_id):
        raise NotFoundError("Service or SubService not found")
    existing = repo.find_plan_by_service_and_sub_service(payload.service_id, payload.sub_service_id)
    if existing is not None:
        raise Conflict(f"Plan already exists for this sub-service (plan {existing.id}), use the update endpoint instead")
    for tier in payload.pricing:
        parse_display_price(tier.price)

    now = datetime.now(tz=timezone.utc)
    plan = PlanRecord(
        id=str(uuid4()),
        service_id=payload.service_id,
        sub_service_id=payload.sub_service_id,
        name=payload.name,
        pricing=[
            PricingTier(
                id=tier.pricing_id or str(uuid4()),
                name=tier.name,
                price=tier.price,
                description=tier.description,
                features=list(tier.features),
                is_popular=tier.is_popular,
            )
            for tier in payload.pricing
        ],
        status=payload.status,
        duration_months=payload.duration_months,
        created_at=now,
        updated_at=now,
    )
    return repo.insert_plan(plan)


def get_plan(plan_id: str, repo: CatalogRepository) -> PlanRecord:
    plan = repo.get_plan(plan_id)
    if plan is None:
        raise NotFoundError("Plan not found")
    return plan


def get_plan_by_name(name: str, repo: CatalogRepository) -> PlanRecord:
    plan = repo.find_plan_by_name(name)
    if plan is None:
        raise NotFoundError("Plan not found")
    return plan


def list_plans(query: PlanListQuery, repo: CatalogRepository) -> dict:
    offset = (query.page - 1) * query.limit
    plans, total = repo.search_plans(search=query.search.strip(), offset=offset, limit=query.limit)
    return {
        "total": total,
        "page": query.page,
        "pages": math.ceil(total / query.limit),
        "limit": query.limit,
        "plans": [plan.as_payload() for plan in plans],
    }


def find_plans_for_catalog(query: PlanCatalogLookup, repo: CatalogRepository) -> List[PlanRecord]:
    """Resolve plans by service and/or sub-service.

    Both ids give the exact plan, a sub-service id alone gives its plan, and a
    service id alone lists every plan under that service.
    """

    if not query.service_id and not query.sub_service_id:
        raise ValidationError("service_id or sub_service_id is required")

    if query.service_id and query.sub_service_id:
        plan = repo.find_plan_by_service_and_sub_service(query.service_id, query.sub_service_id)
        if plan is None:
            raise NotFoundError("Plan not found")
        return [plan]

    if query.sub_service_id:
        plan = repo.find_plan_by_sub_service(query.sub_service_id)
        if plan is None:
            raise NotFoundError("Plan not found")
        return [plan]

    plans = repo.list_plans_for_service(query.service_id or "")
    if not plans:
        raise NotFoundError("No plans found for this service")
    return plans


def update_plan(payload: PlanUpdate, repo: CatalogRepository) -> PlanRecord:
    plan = get_plan(payload.plan_id, repo)
    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise ValidationError("name is required")
        plan.name = name
    if payload.status is not None:
        plan.status = payload.status
    if payload.duration_months is not None:
        plan.duration_months = payload.duration_months

    for patch in payload.pricing or []:
        tier: Optional[PricingTier] = plan.find_tier(patch.pricing_id) if patch.pricing_id else None
        if tier is None:
            if not patch.name or not patch.price:
                raise ValidationError("New pricing tiers require name and price")
            parse_display_price(patch.price)
            plan.pricing.append(
                PricingTier(
                    id=patch.pricing_id or str(uuid4()),
                    name=patch.name,
                    price=patch.price,
                    description=patch.description or "",
                    features=list(patch.features or []),
                    is_popular=bool(patch.is_popular),
                )
            )
            continue
        if patch.name is not None:
            tier.name = patch.name
        if patch.price is not None:
            parse_display_price(patch.price)
            tier.price = patch.price
        if patch.description is not None:
            tier.description = patch.description
        if patch.features is not None:
            tier.features = list(patch.features)
        if patch.is_popular is not None:
            tier.is_popular = patch.is_popular

    return repo.update_plan(plan)


def delete_plan(plan_id: str, repo: CatalogRepository) -> None:
    if not repo.delete_plan(plan_id):
        raise NotFoundError("Plan not found")


def delete_pricing_tier(pricing_id: str, repo: CatalogRepository) -> PlanRecord:
    plan = repo.find_plan_with_tier(pricing_id)
    if plan is None:
        raise NotFoundError("Pricing tier not found")
    plan.pricing = [tier for tier in plan.pricing if tier.id != pricing_id]
    return repo.update_plan(plan)
