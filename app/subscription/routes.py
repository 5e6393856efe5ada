"""FastAPI routes for subscription management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field

from app.auth.dependencies import Principal, current_user
from app.errors import Forbidden

from .models import AdminStatus, SubscriptionAction, SubscriptionUpsert, UserSubscriptionQuery
from .service import SubscriptionLifecycle

router = APIRouter(prefix="/subscription", tags=["subscription"])


class BuyerLookup(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    buyer_id: str = Field(..., alias="userId", min_length=1)


def _get_lifecycle(request: Request) -> SubscriptionLifecycle:
    lifecycle = getattr(request.app.state, "subscription_lifecycle", None)
    if lifecycle is None:
        raise RuntimeError("Subscription lifecycle is not configured")
    return lifecycle


def _ensure_self(principal: Principal, buyer_id: str) -> None:
    if principal.id != buyer_id and not principal.is_admin:
        raise Forbidden("Forbidden")


@router.post("/user")
async def user_subscriptions(
    payload: BuyerLookup,
    principal: Principal = Depends(current_user),
    lifecycle: SubscriptionLifecycle = Depends(_get_lifecycle),
) -> dict:
    _ensure_self(principal, payload.buyer_id)
    return lifecycle.list_for_user(payload.buyer_id)


@router.post("/cancel")
async def cancel_subscription(
    payload: SubscriptionAction,
    principal: Principal = Depends(current_user),
    lifecycle: SubscriptionLifecycle = Depends(_get_lifecycle),
) -> dict:
    record = lifecycle.cancel(payload.subscription_id, principal)
    return {"success": True, "subscription": record.as_payload()}


@router.post("/renew")
async def renew_subscription(
    payload: SubscriptionAction,
    principal: Principal = Depends(current_user),
    lifecycle: SubscriptionLifecycle = Depends(_get_lifecycle),
) -> dict:
    record = lifecycle.renew(payload.subscription_id, principal)
    return {"success": True, "subscription": record.as_payload()}


@router.post("/update")
async def update_subscription(
    payload: SubscriptionUpsert,
    response: Response,
    principal: Principal = Depends(current_user),
    lifecycle: SubscriptionLifecycle = Depends(_get_lifecycle),
) -> dict:
    record, created = lifecycle.update_or_create(payload, principal)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return {"success": True, "subscription": record.as_payload()}


@router.post("/completedService")
async def completed_subscriptions(
    payload: UserSubscriptionQuery,
    principal: Principal = Depends(current_user),
    lifecycle: SubscriptionLifecycle = Depends(_get_lifecycle),
) -> dict:
    _ensure_self(principal, payload.buyer_id)
    return lifecycle.list_by_admin_status(payload, AdminStatus.completed)


@router.post("/activeService")
async def in_process_subscriptions(
    payload: UserSubscriptionQuery,
    principal: Principal = Depends(current_user),
    lifecycle: SubscriptionLifecycle = Depends(_get_lifecycle),
) -> dict:
    _ensure_self(principal, payload.buyer_id)
    return lifecycle.list_by_admin_status(payload, AdminStatus.in_process)
