"""User-facing API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from app.auth.dependencies import Principal, current_user, get_token_service, require_admin
from app.auth.jwt import REFRESH_COOKIE, TokenPair, TokenService, clear_cookies
from app.errors import Forbidden

from .models import (
    EmailOtpVerify,
    EmailPayload,
    GoogleSignInRequest,
    LoginRequest,
    PasswordResetComplete,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
    UserListQuery,
    UserLookup,
    UserRecord,
)
from .service import UserAccounts

router = APIRouter(prefix="/user", tags=["user"])


def _get_accounts(request: Request) -> UserAccounts:
    accounts = getattr(request.app.state, "user_accounts", None)
    if accounts is None:
        raise RuntimeError("User accounts service is not configured")
    return accounts


def _session_payload(user: UserRecord, tokens: TokenPair) -> dict:
    return {
        "success": True,
        "message": "Login successful",
        "user_id": user.id,
        "user": user.as_profile(),
        **tokens.as_payload(),
    }


@router.post("/request-otp")
def request_email_otp(payload: EmailPayload, accounts: UserAccounts = Depends(_get_accounts)) -> dict:
    accounts.request_email_otp(payload.email)
    return {"success": True, "message": "OTP sent to email"}


@router.post("/verify-otp")
def verify_email_otp(payload: EmailOtpVerify, accounts: UserAccounts = Depends(_get_accounts)) -> dict:
    accounts.verify_email_otp(payload)
    return {"success": True, "message": "OTP verified successfully"}


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, accounts: UserAccounts = Depends(_get_accounts)) -> dict:
    user = accounts.register(payload)
    return {"success": True, "message": "User registered successfully", "user_id": user.id}


@router.post("/login")
def login(
    payload: LoginRequest,
    response: Response,
    accounts: UserAccounts = Depends(_get_accounts),
    tokens: TokenService = Depends(get_token_service),
) -> dict:
    user, pair = accounts.login(payload)
    tokens.apply_cookies(response, pair)
    return _session_payload(user, pair)


@router.post("/google")
async def google_sign_in(
    payload: GoogleSignInRequest,
    response: Response,
    accounts: UserAccounts = Depends(_get_accounts),
    tokens: TokenService = Depends(get_token_service),
) -> dict:
    user, pair = await accounts.google_sign_in(payload.id_token)
    tokens.apply_cookies(response, pair)
    return _session_payload(user, pair)


@router.post("/refresh-token")
def refresh_token(
    payload: RefreshRequest,
    request: Request,
    response: Response,
    accounts: UserAccounts = Depends(_get_accounts),
    tokens: TokenService = Depends(get_token_service),
) -> dict:
    pair = accounts.refresh(payload.refresh_token or request.cookies.get(REFRESH_COOKIE))
    tokens.apply_cookies(response, pair)
    return {"success": True, **pair.as_payload()}


@router.post("/logout")
def logout(response: Response) -> dict:
    clear_cookies(response)
    return {"success": True, "message": "Logged out"}


@router.get("/me")
def me(principal: Principal = Depends(current_user), accounts: UserAccounts = Depends(_get_accounts)) -> dict:
    return accounts.get(principal.id).as_profile()


@router.post("/requestOtp")
def request_password_reset(payload: EmailPayload, accounts: UserAccounts = Depends(_get_accounts)) -> dict:
    accounts.request_password_reset(payload.email)
    return {"success": True, "message": "Reset OTP sent to email"}


@router.post("/verifReset")
def verify_password_reset(payload: EmailOtpVerify, accounts: UserAccounts = Depends(_get_accounts)) -> dict:
    accounts.verify_password_reset(payload)
    return {"success": True, "message": "OTP verified, you may now reset your password"}


@router.post("/updatePass")
def complete_password_reset(payload: PasswordResetComplete, accounts: UserAccounts = Depends(_get_accounts)) -> dict:
    accounts.complete_password_reset(payload)
    return {"success": True, "message": "Password reset successfully"}


@router.post("/updateProfile")
def update_profile(
    payload: ProfileUpdate,
    principal: Principal = Depends(current_user),
    accounts: UserAccounts = Depends(_get_accounts),
) -> dict:
    user = accounts.update_profile(payload, principal.id)
    return {"success": True, "message": "Profile updated", "user": user.as_profile()}


@router.post("/getById")
def get_by_id(
    payload: UserLookup,
    principal: Principal = Depends(current_user),
    accounts: UserAccounts = Depends(_get_accounts),
) -> dict:
    if principal.id != payload.user_id:
        raise Forbidden("Forbidden")
    return accounts.get_with_counts(payload.user_id)


admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.post("/users")
def list_users(
    payload: UserListQuery,
    _admin: Principal = Depends(require_admin),
    accounts: UserAccounts = Depends(_get_accounts),
) -> dict:
    return accounts.list_users(payload)


@admin_router.post("/users/getById")
def admin_get_user(
    payload: UserLookup,
    _admin: Principal = Depends(require_admin),
    accounts: UserAccounts = Depends(_get_accounts),
) -> dict:
    return accounts.get_with_counts(payload.user_id)
