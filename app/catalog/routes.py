"""FastAPI routes for the service and plan catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from app.auth.dependencies import Principal, require_admin

from . import service as catalog
from .models import (
    PlanCatalogLookup,
    PlanCreate,
    PlanListQuery,
    PlanLookup,
    PlanNameLookup,
    PlanUpdate,
    PricingLookup,
    ServiceCreate,
    ServiceLookup,
    ServiceUpdate,
    SubServiceCreate,
    SubServiceLookup,
    SubServiceUpdate,
)
from .repository import CatalogRepository

services_router = APIRouter(prefix="/services", tags=["catalog"])
plan_router = APIRouter(prefix="/plan", tags=["catalog"])


def _get_repo(request: Request) -> CatalogRepository:
    repo = getattr(request.app.state, "catalog_repo", None)
    if repo is None:
        raise RuntimeError("Catalog repository is not configured")
    return repo


@services_router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    repo: CatalogRepository = Depends(_get_repo),
    _admin: Principal = Depends(require_admin),
) -> dict:
    created = catalog.create_service(payload, repo)
    return {"success": True, "service": created.as_payload()}


@services_router.post("/{service_id}/subservice/create", status_code=status.HTTP_201_CREATED)
async def create_sub_service(
    service_id: str,
    payload: SubServiceCreate,
    repo: CatalogRepository = Depends(_get_repo),
    _admin: Principal = Depends(require_admin),
) -> dict:
    created = catalog.add_sub_service(service_id, payload, repo)
    return {"success": True, "sub_service": created.as_payload()}


@services_router.get("/getAll")
async def list_services(repo: CatalogRepository = Depends(_get_repo)) -> dict:
    services = repo.list_services()
    return {"success": True, "count": len(services), "services": [item.as_payload() for item in services]}


@services_router.post("/getById")
async def get_service(payload: ServiceLookup, repo: CatalogRepository = Depends(_get_repo)) -> dict:
    return {"success": True, "service": catalog.get_service(payload.service_id, repo).as_payload()}


@services_router.post("/subservice/getById")
async def get_sub_service(payload: SubServiceLookup, repo: CatalogRepository = Depends(_get_repo)) -> dict:
    sub_service = catalog.get_sub_service(payload.service_id, payload.sub_service_id, repo)
    return {"success": True, "sub_service": sub_service.as_payload()}


@services_router.post("/update")
async def update_service(
    payload: ServiceUpdate,
    repo: CatalogRepository = Depends(_get_repo),
    _admin: Principal = Depends(require_admin),
) -> dict:
    return {"success": True, "service": catalog.update_service(payload, repo).as_payload()}


@services_router.post("/subservice/update")
async def update_sub_service(
    payload: SubServiceUpdate,
    repo: CatalogRepository = Depends(_get_repo),
    _admin: Principal = Depends(require_admin),
) -> dict:
    return {"success": True, "sub_service": catalog.update_sub_service(payload, repo).as_payload()}


@plan_router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_plan(
    payload: PlanCreate,
    repo: CatalogRepository = Depends(_get_repo),
    _admin: Principal = Depends(require_admin),
) -> dict:
    return {"success": True, "plan": catalog.create_plan(payload, repo).as_payload()}


@plan_router.post("/all")
async def list_plans(payload: PlanListQuery, repo: CatalogRepository = Depends(_get_repo)) -> dict:
    return {"success": True, **catalog.list_plans(payload, repo)}


@plan_router.post("/getByPlanId")
async def get_plan(payload: PlanLookup, repo: CatalogRepository = Depends(_get_repo)) -> dict:
    return {"success": True, "plan": catalog.get_plan(payload.plan_id, repo).as_payload()}


@plan_router.post("/getByName")
async def get_plan_by_name(payload: PlanNameLookup, repo: CatalogRepository = Depends(_get_repo)) -> dict:
    return {"success": True, "plan": catalog.get_plan_by_name(payload.name, repo).as_payload()}


@plan_router.post("/getByServiceAndSubService")
async def get_plans_for_catalog(payload: PlanCatalogLookup, repo: CatalogRepository = Depends(_get_repo)) -> dict:
    plans = catalog.find_plans_for_catalog(payload, repo)
    return {"success": True, "count": len(plans), "plans": [plan.as_payload() for plan in plans]}


@plan_router.post("/update")
async def update_plan(
    payload: PlanUpdate,
    repo: CatalogRepository = Depends(_get_repo),
    _admin: Principal = Depends(require_admin),
) -> dict:
    return {"success": True, "plan": catalog.update_plan(payload, repo).as_payload()}


@plan_router.post("/deletePlan")
async def delete_plan(
    payload: PlanLookup,
    repo: CatalogRepository = Depends(_get_repo),
    _admin: Principal = Depends(require_admin),
) -> dict:
    catalog.delete_plan(payload.plan_id, repo)
    return {"success": True, "message": "Plan deleted"}


@plan_router.post("/deletePricing")
async def delete_pricing(
    payload: PricingLookup,
    repo: CatalogRepository = Depends(_get_repo),
    _admin: Principal = Depends(require_admin),
) -> dict:
    plan = catalog.delete_pricing_tier(payload.pricing_id, repo)
    return {"success": True, "plan": plan.as_payload()}
