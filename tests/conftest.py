import asyncio
import inspect
import itertools
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.auth.google_identity import FederatedIdentity
from app.catalog import service as catalog
from app.catalog.models import PlanCreate, PricingTierInput, ServiceCreate, SubServiceCreate
from app.config import Settings
from app.errors import Unauthorized
from app.main import create_app
from app.payments.gateway import compute_signature
from app.payments.models import GatewayPayment, RemoteOrder
from app.users.models import AuthProvider, Gender, UserRecord

SIGNING_SECRET = "test-gateway-secret"


class FakeGateway:
    """In-memory gateway; payment statuses default to ``captured``."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.orders = []
        self.statuses = {}
        self.fetches = []
        self.fetch_delay = 0.0
        self.fetch_error = None

    async def create_remote_order(self, amount, currency, receipt, notes):
        order_id = f"order_{next(self._ids):04d}"
        self.orders.append({"id": order_id, "amount": amount, "currency": currency, "receipt": receipt, "notes": dict(notes)})
        return RemoteOrder(order_id=order_id, amount=amount, currency=currency, receipt=receipt)

    async def fetch_payment(self, payment_id):
        self.fetches.append(payment_id)
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if self.fetch_error is not None:
            raise self.fetch_error
        return GatewayPayment(payment_id=payment_id, status=self.statuses.get(payment_id, "captured"))


class RecordingMailer:
    def __init__(self) -> None:
        self.sent = []

    def send(self, recipient, subject, body):
        self.sent.append({"to": recipient, "subject": subject, "body": body})

    def last_code(self):
        return self.sent[-1]["body"].split("Your code is ", 1)[1].split(".", 1)[0]


class FakeIdentityVerifier:
    def __init__(self) -> None:
        self.identities = {}

    async def verify(self, id_token):
        identity = self.identities.get(id_token)
        if identity is None:
            raise Unauthorized("Invalid Google token")
        return identity


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        database_path=str(tmp_path / "commerce.sqlite3"),
        jwt_secret="test-jwt-secret",
        gateway_key_id="rzp_test",
        gateway_key_secret=SIGNING_SECRET,
        gateway_timeout_seconds=0.5,
        default_currency="USD",
    )


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def identity_verifier():
    verifier = FakeIdentityVerifier()
    verifier.identities["google-token"] = FederatedIdentity(
        uid="google-uid-1",
        email="federated@example.com",
        name="Federated User",
        picture="https://example.com/avatar.png",
        email_verified=True,
    )
    return verifier


@pytest.fixture()
def app(settings, gateway, mailer, identity_verifier):
    application = create_app(settings, gateway=gateway, mailer=mailer, identity_verifier=identity_verifier)
    yield application
    application.state.database.close()


@pytest.fixture()
def client(app):
    """Provide a FastAPI TestClient for API tests."""
    return TestClient(app)


@pytest.fixture()
def catalog_repo(app):
    return app.state.catalog_repo


@pytest.fixture()
def plan(catalog_repo):
    service = catalog.create_service(ServiceCreate(heading="Design", description="Design work"), catalog_repo)
    sub_service = catalog.add_sub_service(
        service.id, SubServiceCreate(heading="Logo", description="Logo design"), catalog_repo
    )
    return catalog.create_plan(
        PlanCreate(
            service_id=service.id,
            sub_service_id=sub_service.id,
            name="Logo Pro",
            pricing=[
                PricingTierInput(pricing_id="tier-basic", name="Basic", price="$24.99"),
                PricingTierInput(pricing_id="tier-premium", name="Premium", price="$99.50", is_popular=True),
            ],
            duration_months=1,
        ),
        catalog_repo,
    )


def _insert_user(repo, email="buyer@example.com", phone="5550001", password_hash=None):
    now = datetime.now(tz=timezone.utc)
    user = UserRecord(
        id=str(uuid4()),
        name="Buyer",
        email=email,
        phone=phone,
        country="US",
        calling_code="+1",
        gender=Gender.other,
        password_hash=password_hash,
        auth_provider=AuthProvider.local,
        google_uid=None,
        picture=None,
        email_verified=True,
        reset_code=None,
        reset_expires_at=None,
        reset_verified=False,
        created_at=now,
        updated_at=now,
    )
    return repo.insert(user)


@pytest.fixture()
def buyer(app):
    return _insert_user(app.state.user_repo)


@pytest.fixture()
def buyer_headers(app, buyer):
    token = app.state.token_service.issue(buyer.id).access_token
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin(app):
    return app.state.admin_accounts.create("admin@example.com", "admin-password")


@pytest.fixture()
def admin_headers(app, admin):
    token = app.state.token_service.issue_admin(admin.id, admin.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_user(app):
    def factory(**kwargs):
        return _insert_user(app.state.user_repo, **kwargs)

    return factory


@pytest.fixture()
def sign():
    def factory(order_id, payment_id, secret=SIGNING_SECRET):
        return compute_signature(secret, order_id, payment_id)

    return factory


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Run async test functions without requiring pytest-asyncio plugin."""

    test_func = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_func):
        loop = asyncio.new_event_loop()
        try:
            argnames = pyfuncitem._fixtureinfo.argnames
            loop.run_until_complete(test_func(**{name: pyfuncitem.funcargs[name] for name in argnames}))
        finally:
            loop.close()
        return True
    return None
