"""Application factory wiring repositories, services and routers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from app.admin.repository import AdminRepository
from app.admin.routes import router as admin_router
from app.admin.service import AdminAccounts
from app.auth.google_identity import GoogleIdentityVerifier, IdentityVerifier
from app.auth.jwt import TokenService
from app.catalog.repository import CatalogRepository
from app.catalog.routes import plan_router, services_router
from app.config import Settings
from app.errors import CommerceError, InternalError
from app.metrics import record_http_request
from app.notifications.mailer import Mailer, SmtpMailer
from app.payments.activator import SubscriptionActivator
from app.payments.gateway import PaymentGateway, RazorpayGateway
from app.payments.ledger import OrderLedger
from app.payments.repository import OrderRepository
from app.payments.routes import router as payment_router
from app.storage.database import Database
from app.subscription.repository import SubscriptionRepository
from app.subscription.routes import router as subscription_router
from app.subscription.service import SubscriptionLifecycle
from app.users.repository import UserRepository
from app.users.routes import admin_router as user_admin_router
from app.users.routes import router as user_router
from app.users.service import UserAccounts

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    fields = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        fields.append(".".join(location) or "body")
    return f"Missing or invalid fields: {', '.join(fields)}" if fields else "Invalid request"


def create_app(
    settings: Optional[Settings] = None,
    *,
    gateway: Optional[PaymentGateway] = None,
    mailer: Optional[Mailer] = None,
    identity_verifier: Optional[IdentityVerifier] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    database = Database(settings.database_path)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        database.close()

    app = FastAPI(title="Subscription Commerce API", lifespan=lifespan)

    tokens = TokenService.from_settings(settings)
    gateway = gateway or RazorpayGateway.from_settings(settings)
    mailer = mailer or SmtpMailer.from_settings(settings)
    identity_verifier = identity_verifier or GoogleIdentityVerifier(settings.google_client_id)

    catalog_repo = CatalogRepository(database)
    order_repo = OrderRepository(database)
    subscription_repo = SubscriptionRepository(database)
    user_repo = UserRepository(database)
    admin_repo = AdminRepository(database)

    ledger = OrderLedger(
        order_repo,
        catalog_repo,
        user_repo,
        gateway,
        default_currency=settings.default_currency,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.token_service = tokens
    app.state.catalog_repo = catalog_repo
    app.state.subscription_repo = subscription_repo
    app.state.user_repo = user_repo
    app.state.admin_repo = admin_repo
    app.state.order_ledger = ledger
    app.state.activator = SubscriptionActivator(
        database,
        ledger,
        gateway,
        catalog_repo,
        subscription_repo,
        signing_secret=settings.gateway_key_secret,
        gateway_timeout=settings.gateway_timeout_seconds,
    )
    app.state.subscription_lifecycle = SubscriptionLifecycle(subscription_repo, catalog_repo)
    app.state.user_accounts = UserAccounts(
        user_repo,
        subscription_repo,
        tokens,
        mailer,
        identity_verifier,
        otp_ttl_minutes=settings.otp_ttl_minutes,
    )
    app.state.admin_accounts = AdminAccounts(admin_repo, tokens, mailer, otp_ttl_minutes=settings.otp_ttl_minutes)

    @app.exception_handler(CommerceError)
    async def handle_commerce_error(request: Request, exc: CommerceError) -> JSONResponse:
        if isinstance(exc, InternalError):
            logger.error("Request failed", extra={"path": request.url.path, "category": exc.category})
        return JSONResponse(status_code=exc.status_code, content=exc.as_payload())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "validation_error", "message": _validation_message(exc)},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=InternalError().as_payload())

    @app.middleware("http")
    async def count_requests(request: Request, call_next):
        response = await call_next(request)
        route = request.scope.get("route")
        record_http_request(getattr(route, "path", "unmatched"))
        return response

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(payment_router)
    app.include_router(subscription_router)
    app.include_router(services_router)
    app.include_router(plan_router)
    app.include_router(user_router)
    app.include_router(user_admin_router)
    app.include_router(admin_router)

    return app
