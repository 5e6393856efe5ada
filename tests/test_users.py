import pytest

from app.auth.credentials import hash_password

REGISTRATION = {
    "email": "New.User@Example.com",
    "name": "New User",
    "password": "s3cret-pass",
    "phone": "5559000",
    "country": "IN",
    "callingCode": "+91",
    "gender": 1,
}


def _verify_email(client, mailer, email):
    assert client.post("/user/request-otp", json={"email": email}).status_code == 200
    response = client.post("/user/verify-otp", json={"email": email, "otp": mailer.last_code()})
    assert response.status_code == 200


def test_registration_requires_verified_email(client):
    response = client.post("/user/register", json=REGISTRATION)
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


def test_register_and_login(client, mailer):
    _verify_email(client, mailer, REGISTRATION["email"])
    assert mailer.sent[0]["to"] == "new.user@example.com"

    registered = client.post("/user/register", json=REGISTRATION)
    assert registered.status_code == 201
    user_id = registered.json()["user_id"]

    duplicate = client.post("/user/register", json=REGISTRATION)
    assert duplicate.status_code == 409

    login = client.post("/user/login", json={"email": "new.user@example.com", "password": "s3cret-pass"})
    assert login.status_code == 200
    body = login.json()
    assert body["user_id"] == user_id
    assert body["access_token"] and body["refresh_token"]
    assert login.cookies.get("access_token")

    me = client.get("/user/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "new.user@example.com"

    wrong = client.post("/user/login", json={"email": "new.user@example.com", "password": "nope"})
    assert wrong.status_code == 401


def test_wrong_email_otp_is_rejected(client, mailer):
    client.post("/user/request-otp", json={"email": "a@example.com"})
    code = mailer.last_code()
    bad = "000000" if code != "000000" else "111111"
    response = client.post("/user/verify-otp", json={"email": "a@example.com", "otp": bad})
    assert response.status_code == 400


def test_refresh_token_issues_new_pair(client, app, buyer):
    pair = app.state.token_service.issue(buyer.id)
    response = client.post("/user/refresh-token", json={"refreshToken": pair.refresh_token})
    assert response.status_code == 200
    assert response.json()["access_token"]

    misuse = client.post("/user/refresh-token", json={"refreshToken": pair.access_token})
    assert misuse.status_code == 401
    assert misuse.json()["error"] == "invalid_token"


def test_google_sign_in_creates_federated_user(client, app):
    response = client.post("/user/google", json={"idToken": "google-token"})
    assert response.status_code == 200
    user = app.state.user_repo.get_by_email("federated@example.com")
    assert user is not None
    assert user.google_uid == "google-uid-1"
    assert user.password_hash is None

    again = client.post("/user/google", json={"idToken": "google-token"})
    assert again.json()["user_id"] == user.id

    rejected = client.post("/user/google", json={"idToken": "forged"})
    assert rejected.status_code == 401


def test_google_sign_in_links_existing_account(client, app, make_user):
    existing = make_user(email="federated@example.com", phone="5550003")
    response = client.post("/user/google", json={"idToken": "google-token"})
    assert response.json()["user_id"] == existing.id
    linked = app.state.user_repo.get(existing.id)
    assert linked.google_uid == "google-uid-1"
    assert linked.name == "Buyer"


def test_password_reset_flow(client, app, mailer, make_user):
    user = make_user(email="reset@example.com", phone="5550004", password_hash=hash_password("old-password"))

    early = client.post("/user/updatePass", json={"email": "reset@example.com", "newPassword": "new-password"})
    assert early.status_code == 403

    assert client.post("/user/requestOtp", json={"email": "reset@example.com"}).status_code == 200
    verified = client.post("/user/verifReset", json={"email": "reset@example.com", "otp": mailer.last_code()})
    assert verified.status_code == 200

    done = client.post("/user/updatePass", json={"email": "reset@example.com", "newPassword": "new-password"})
    assert done.status_code == 200

    login = client.post("/user/login", json={"email": "reset@example.com", "password": "new-password"})
    assert login.json()["user_id"] == user.id

    unknown = client.post("/user/requestOtp", json={"email": "ghost@example.com"})
    assert unknown.status_code == 404


def test_profile_update_is_owner_only(client, app, buyer, buyer_headers, make_user):
    response = client.post(
        "/user/updateProfile", json={"userId": buyer.id, "name": "Renamed"}, headers=buyer_headers
    )
    assert response.status_code == 200
    assert response.json()["user"]["name"] == "Renamed"

    other = make_user(email="other@example.com", phone="5550002")
    denied = client.post("/user/updateProfile", json={"userId": other.id, "name": "X"}, headers=buyer_headers)
    assert denied.status_code == 403

    taken = client.post("/user/updateProfile", json={"userId": buyer.id, "phone": "5550002"}, headers=buyer_headers)
    assert taken.status_code == 409


def test_password_change_needs_old_password(client, app, make_user):
    user = make_user(email="pw@example.com", phone="5550005", password_hash=hash_password("first-pass"))
    headers = {"Authorization": f"Bearer {app.state.token_service.issue(user.id).access_token}"}

    missing = client.post("/user/updateProfile", json={"userId": user.id, "newPassword": "second-pass"}, headers=headers)
    assert missing.status_code == 400

    changed = client.post(
        "/user/updateProfile",
        json={"userId": user.id, "oldPassword": "first-pass", "newPassword": "second-pass"},
        headers=headers,
    )
    assert changed.status_code == 200


def test_get_by_id_includes_subscription_counts(client, buyer, buyer_headers):
    response = client.post("/user/getById", json={"userId": buyer.id}, headers=buyer_headers)
    assert response.status_code == 200
    assert response.json()["subscriptions"] == {"total": 0, "in_process": 0, "completed": 0}


@pytest.mark.parametrize("sort_by, status_code", [("email", 200), ("password_hash", 400)])
def test_admin_user_listing(client, buyer, admin_headers, sort_by, status_code):
    response = client.post("/admin/users", json={"search": "buyer", "sortBy": sort_by}, headers=admin_headers)
    assert response.status_code == status_code
    if status_code == 200:
        assert [item["id"] for item in response.json()["data"]] == [buyer.id]


def test_user_token_cannot_list_users(client, buyer_headers):
    assert client.post("/admin/users", json={}, headers=buyer_headers).status_code == 401
