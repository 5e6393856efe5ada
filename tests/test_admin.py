from datetime import datetime, timezone
from uuid import uuid4

from app.admin.models import AdminRecord


def test_admin_login_returns_admin_token(client, app, admin):
    response = client.post("/admin/login", json={"email": "admin@example.com", "password": "admin-password"})
    assert response.status_code == 200
    body = response.json()
    assert body["admin_id"] == admin.id
    payload = app.state.token_service.verify(body["token"], expected_type="admin")
    assert payload["sub"] == admin.id

    wrong = client.post("/admin/login", json={"email": "admin@example.com", "password": "guess"})
    assert wrong.status_code == 401


def test_legacy_plaintext_credential_is_rehashed_on_login(client, app):
    legacy = AdminRecord(
        id=str(uuid4()),
        email="legacy@example.com",
        credential="plain-old-secret",
        reset_code=None,
        reset_expires_at=None,
        created_at=datetime.now(tz=timezone.utc),
    )
    app.state.admin_repo.insert(legacy)

    response = client.post("/admin/login", json={"email": "legacy@example.com", "password": "plain-old-secret"})
    assert response.status_code == 200

    stored = app.state.admin_repo.get(legacy.id)
    assert stored.credential.startswith("$2")
    assert stored.credential != "plain-old-secret"

    again = client.post("/admin/login", json={"email": "legacy@example.com", "password": "plain-old-secret"})
    assert again.status_code == 200


def test_admin_password_reset(client, mailer, admin):
    assert client.post("/admin/forgot-password", json={"email": "admin@example.com"}).status_code == 200
    code = mailer.last_code()

    bad = client.post(
        "/admin/reset-password",
        json={"email": "admin@example.com", "otp": "12345x", "newPassword": "brand-new-pass"},
    )
    assert bad.status_code == 400

    reset = client.post(
        "/admin/reset-password",
        json={"email": "admin@example.com", "otp": code, "newPassword": "brand-new-pass"},
    )
    assert reset.status_code == 200

    login = client.post("/admin/login", json={"email": "admin@example.com", "password": "brand-new-pass"})
    assert login.status_code == 200

    reused = client.post(
        "/admin/reset-password",
        json={"email": "admin@example.com", "otp": code, "newPassword": "another-pass"},
    )
    assert reused.status_code == 400


def test_update_password_and_email(client, app, admin, admin_headers):
    wrong = client.post(
        "/admin/update-password",
        json={"oldPassword": "nope", "newPassword": "next-password"},
        headers=admin_headers,
    )
    assert wrong.status_code == 401

    updated = client.post(
        "/admin/update-password",
        json={"oldPassword": "admin-password", "newPassword": "next-password"},
        headers=admin_headers,
    )
    assert updated.status_code == 200

    moved = client.post("/admin/update-email", json={"newEmail": "Boss@Example.com"}, headers=admin_headers)
    assert moved.status_code == 200
    body = moved.json()
    assert body["email"] == "boss@example.com"
    assert app.state.token_service.verify(body["token"], expected_type="admin")["email"] == "boss@example.com"


def test_admin_routes_reject_tokens_of_deleted_admins(client, app):
    token = app.state.token_service.issue_admin("ghost-admin", "ghost@example.com")
    response = client.post("/admin/tasks", json={}, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
