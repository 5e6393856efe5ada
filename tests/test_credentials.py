import time
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.auth.credentials import HashedCredential, LegacyPlaintextCredential, credential_for, hash_password
from app.auth.google_identity import GOOGLE_TOKENINFO_URL, GoogleIdentityVerifier
from app.auth.jwt import JWTError, TokenService
from app.auth.otp import code_matches, issue_code
from app.errors import GatewayError, Unauthorized


def test_credential_for_picks_verifier_by_stored_shape():
    hashed = credential_for(hash_password("pw-123456"))
    assert isinstance(hashed, HashedCredential)
    assert hashed.verify("pw-123456")
    assert not hashed.verify("wrong")
    assert not hashed.needs_rehash()

    legacy = credential_for("pw-123456")
    assert isinstance(legacy, LegacyPlaintextCredential)
    assert legacy.verify("pw-123456")
    assert not legacy.verify("pw-1234567")
    assert legacy.needs_rehash()


def test_token_service_requires_secret():
    with pytest.raises(RuntimeError):
        TokenService("")


def test_tokens_are_typed_and_signed():
    tokens = TokenService("secret-a")
    pair = tokens.issue("user-1")

    assert tokens.verify(pair.access_token)["sub"] == "user-1"
    with pytest.raises(JWTError):
        tokens.verify(pair.refresh_token)
    with pytest.raises(JWTError):
        TokenService("secret-b").verify(pair.access_token)
    with pytest.raises(JWTError):
        tokens.verify("not-a-token")

    admin_token = tokens.issue_admin("admin-1", "admin@example.com")
    with pytest.raises(JWTError):
        tokens.verify(admin_token)
    assert tokens.verify(admin_token, expected_type="admin")["roles"] == ["admin"]


def test_expired_token_is_rejected(monkeypatch):
    tokens = TokenService("secret-a", expire_minutes=1)
    pair = tokens.issue("user-1")
    monkeypatch.setattr(time, "time", lambda: pair.expires_at.timestamp() + 1)
    with pytest.raises(JWTError) as excinfo:
        tokens.verify(pair.access_token)
    assert excinfo.value.message == "token_expired"


def test_otp_codes_expire():
    code, expires_at = issue_code(10)
    assert len(code) == 6 and code.isdigit()
    assert code_matches(code, expires_at, f" {code} ")
    assert not code_matches(code, datetime.now(tz=timezone.utc) - timedelta(seconds=1), code)
    assert not code_matches(None, expires_at, code)


def _google_client(handler):
    return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_google_verifier_checks_audience():
    claims = {
        "aud": "client-123",
        "iss": "https://accounts.google.com",
        "sub": "g-1",
        "email": "Person@Example.com",
        "email_verified": "true",
        "name": "Person",
    }

    def handler(request):
        assert str(request.url).startswith(GOOGLE_TOKENINFO_URL)
        return httpx.Response(200, json=claims)

    identity = await GoogleIdentityVerifier("client-123", http_client_factory=_google_client(handler)).verify("tok")
    assert identity.email == "person@example.com"
    assert identity.email_verified is True

    with pytest.raises(Unauthorized):
        await GoogleIdentityVerifier("other-client", http_client_factory=_google_client(handler)).verify("tok")


async def test_google_verifier_maps_failures():
    rejected = GoogleIdentityVerifier(
        "client-123", http_client_factory=_google_client(lambda request: httpx.Response(400, json={}))
    )
    with pytest.raises(Unauthorized):
        await rejected.verify("tok")

    def unreachable(request):
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(GatewayError):
        await GoogleIdentityVerifier("client-123", http_client_factory=_google_client(unreachable)).verify("tok")

    with pytest.raises(GatewayError):
        await GoogleIdentityVerifier("").verify("tok")
