"""Administrator endpoints: sign-in, credentials and the subscription task board."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from app.auth.dependencies import Principal, require_admin
from app.subscription.models import AdminStatusUpdate, AdminTaskQuery, SubscriptionUpsert
from app.subscription.service import SubscriptionLifecycle
from app.users.models import EmailPayload

from .models import AdminEmailUpdate, AdminLogin, AdminPasswordReset, AdminPasswordUpdate
from .service import AdminAccounts

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_accounts(request: Request) -> AdminAccounts:
    accounts = getattr(request.app.state, "admin_accounts", None)
    if accounts is None:
        raise RuntimeError("Admin accounts service is not configured")
    return accounts


def _get_lifecycle(request: Request) -> SubscriptionLifecycle:
    lifecycle = getattr(request.app.state, "subscription_lifecycle", None)
    if lifecycle is None:
        raise RuntimeError("Subscription lifecycle is not configured")
    return lifecycle


@router.post("/login")
def login(payload: AdminLogin, accounts: AdminAccounts = Depends(_get_accounts)) -> dict:
    admin, token = accounts.login(payload)
    return {"success": True, "token": token, "admin_id": admin.id}


@router.post("/forgot-password")
def forgot_password(payload: EmailPayload, accounts: AdminAccounts = Depends(_get_accounts)) -> dict:
    accounts.forgot_password(payload.email)
    return {"success": True, "message": "Reset OTP sent to email"}


@router.post("/reset-password")
def reset_password(payload: AdminPasswordReset, accounts: AdminAccounts = Depends(_get_accounts)) -> dict:
    accounts.reset_password(payload)
    return {"success": True, "message": "Password reset successful"}


@router.post("/update-email")
def update_email(
    payload: AdminEmailUpdate,
    admin: Principal = Depends(require_admin),
    accounts: AdminAccounts = Depends(_get_accounts),
) -> dict:
    record, token = accounts.update_email(admin.id, payload.new_email)
    return {"success": True, "message": "Email updated successfully", "email": record.email, "token": token}


@router.post("/update-password")
def update_password(
    payload: AdminPasswordUpdate,
    admin: Principal = Depends(require_admin),
    accounts: AdminAccounts = Depends(_get_accounts),
) -> dict:
    accounts.update_password(admin.id, payload)
    return {"success": True, "message": "Password updated successfully"}


@router.post("/upStatus")
def update_admin_status(
    payload: AdminStatusUpdate,
    _admin: Principal = Depends(require_admin),
    lifecycle: SubscriptionLifecycle = Depends(_get_lifecycle),
) -> dict:
    record = lifecycle.set_admin_status(payload.subscription_id, payload.admin_status)
    return {"success": True, "message": "Status updated", "subscription": record.as_payload()}


@router.post("/tasks")
def list_tasks(
    payload: AdminTaskQuery,
    _admin: Principal = Depends(require_admin),
    lifecycle: SubscriptionLifecycle = Depends(_get_lifecycle),
) -> dict:
    return lifecycle.admin_tasks(payload)


@router.post("/subscriptions/update")
def upsert_subscription(
    payload: SubscriptionUpsert,
    response: Response,
    admin: Principal = Depends(require_admin),
    lifecycle: SubscriptionLifecycle = Depends(_get_lifecycle),
) -> dict:
    record, created = lifecycle.update_or_create(payload, admin)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return {"success": True, "subscription": record.as_payload()}
