from datetime import timedelta

from template_market.models.otp import OneTimeCode
from template_market.models.user import User
from template_market.services.auth_service import password_hasher, token_issuer, verify_password
from template_market.utils.clock import utcnow

from conftest import PASSWORD

EMAIL = "alice@example.com"


def _register_body(email: str = EMAIL, password: str = PASSWORD) -> dict:
    return {"name": "Alice", "email": email, "password": password, "confirm_password": password}


def test_register_start_sends_code_without_creating_user(client, mailer, db_session):
    response = client.post("/register", json=_register_body())

    assert response.status_code == 200
    assert response.json()["message"] == "OTP sent"
    assert mailer.sent_to(EMAIL) == 1
    assert db_session.query(User).filter(User.email == EMAIL).count() == 0


def test_register_confirm_creates_user_with_hashed_password(client, mailer, db_session):
    client.post("/register", json=_register_body())
    response = client.post("/register", json={**_register_body(), "otp": mailer.last_code(EMAIL)})

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["email"] == EMAIL
    assert data["role"] == "USER"
    assert data["free_downloads"] == 3
    assert "password" not in data
    assert "token" not in data

    user = db_session.query(User).filter(User.email == EMAIL).one()
    assert user.password != PASSWORD
    assert verify_password(PASSWORD, user.password)


def test_register_with_wrong_code_creates_nothing(client, mailer, db_session):
    client.post("/register", json=_register_body())
    code = mailer.last_code(EMAIL)
    wrong = "000000" if code != "000000" else "111111"

    response = client.post("/register", json={**_register_body(), "otp": wrong})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired OTP"
    assert response.json()["data"]["reason"] == "mismatch"
    assert db_session.query(User).count() == 0


def test_register_with_existing_email_is_rejected(client, register_user, mailer):
    register_user()

    response = client.post("/register", json=_register_body())

    assert response.status_code == 400
    assert mailer.sent_to(EMAIL) == 1


def test_register_start_survives_raising_dispatcher(client, mailer, monkeypatch, db_session):
    def _raise(*args, **kwargs):
        raise RuntimeError("smtp relay unavailable")

    monkeypatch.setattr(mailer, "send_code", _raise)

    response = client.post("/register", json=_register_body())

    assert response.status_code == 200
    assert response.json()["data"]["email_sent"] is False
    assert db_session.query(OneTimeCode).filter(OneTimeCode.email == EMAIL).count() == 1


def test_register_enforces_password_policy(client, mailer):
    weak = _register_body(password="password")
    mismatched = {**_register_body(), "confirm_password": "Other#1234"}

    assert client.post("/register", json=weak).status_code == 400
    assert client.post("/register", json=mismatched).status_code == 400
    assert mailer.codes == []


def test_login_failures_are_indistinguishable(client, register_user):
    register_user()

    unknown = client.post("/login", json={"email": "nobody@example.com", "password": PASSWORD})
    wrong_password = client.post("/login", json={"email": EMAIL, "password": "Wrong#1234"})

    assert unknown.status_code == wrong_password.status_code == 400
    assert unknown.json() == wrong_password.json()
    assert unknown.json()["message"] == "Invalid credentials"


def test_login_with_unknown_email_still_runs_bcrypt(client, monkeypatch):
    calls = []
    monkeypatch.setattr(password_hasher, "dummy_verify", lambda: calls.append(True))

    response = client.post("/login", json={"email": "nobody@example.com", "password": PASSWORD})

    assert response.status_code == 400
    assert calls == [True]


def test_login_returns_token_and_public_user(client, register_user, mailer, db_session):
    register_user()

    client.post("/login", json={"email": EMAIL, "password": PASSWORD})
    response = client.post(
        "/login",
        json={"email": EMAIL, "password": PASSWORD, "otp": mailer.last_code(EMAIL)},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert set(data["user"]) == {"id", "email", "role", "name", "profile_img", "free_downloads", "number"}
    assert token_issuer.verify_token(data["token"]) == data["user"]["id"]
    assert db_session.query(User).filter(User.email == EMAIL).one().token == data["token"]


def test_protected_route_requires_token(client):
    assert client.get("/get-user").status_code == 401


def test_protected_route_rejects_bad_signature(client):
    response = client.get("/get-user", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 403


def test_protected_route_rejects_expired_token(client, register_user):
    user_id = register_user()
    token = token_issuer.issue_token(user_id, expires_delta=timedelta(seconds=-5))

    response = client.get("/get-user", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


def test_logout_invalidates_token(client, auth_headers):
    headers = auth_headers()

    assert client.get("/get-user", headers=headers).status_code == 200
    assert client.post("/logout", headers=headers).status_code == 200
    assert client.get("/get-user", headers=headers).status_code == 401


def test_new_login_supersedes_previous_token(client, auth_headers, login_user):
    old_headers = auth_headers()
    new_token = login_user()

    assert client.get("/get-user", headers=old_headers).status_code == 401
    assert client.get("/get-user", headers={"Authorization": f"Bearer {new_token}"}).status_code == 200


def test_forgot_password_for_unknown_email(client, mailer, db_session):
    response = client.post("/forget-password", json={"email": "ghost@example.com"})

    assert response.status_code == 404
    assert mailer.codes == []
    assert db_session.query(OneTimeCode).count() == 0


def test_reset_password_rejects_mismatch_before_touching_code(client, register_user, mailer, db_session):
    register_user()
    client.post("/forget-password", json={"email": EMAIL})
    code = mailer.last_code(EMAIL)

    response = client.post(
        "/reset-password",
        json={"email": EMAIL, "otp": code, "new_password": "Newpass#12", "confirm_password": "Newpass#13"},
    )

    assert response.status_code == 400
    assert db_session.query(OneTimeCode).filter(OneTimeCode.email == EMAIL).one().code == code


def test_reset_password_changes_password_and_ends_session(client, auth_headers, mailer, login_user):
    headers = auth_headers()
    client.post("/forget-password", json={"email": EMAIL})

    response = client.post(
        "/reset-password",
        json={
            "email": EMAIL,
            "otp": mailer.last_code(EMAIL),
            "new_password": "Newpass#12",
            "confirm_password": "Newpass#12",
        },
    )

    assert response.status_code == 200
    assert client.get("/get-user", headers=headers).status_code == 401
    assert client.post("/login", json={"email": EMAIL, "password": PASSWORD}).status_code == 400
    assert login_user(password="Newpass#12")


def test_verify_and_resend_otp(client, mailer):
    client.post("/resend-otp", json={"email": EMAIL})
    first = mailer.last_code(EMAIL)
    resend = client.post("/resend-otp", json={"email": EMAIL})
    second = mailer.last_code(EMAIL)

    assert resend.json()["message"] == "OTP resent"
    assert client.post("/verify-otp", json={"email": EMAIL, "otp": second}).status_code == 200

    again = client.post("/verify-otp", json={"email": EMAIL, "otp": second})
    assert again.status_code == 400
    assert again.json()["data"]["reason"] == "not_found"
    if first != second:
        stale = client.post("/verify-otp", json={"email": EMAIL, "otp": first})
        assert stale.status_code == 400


def test_email_change_flow(client, auth_headers, register_user, mailer, db_session):
    headers = auth_headers()
    register_user(email="taken@example.com", name="Taken")
    new_email = "alice.new@example.com"

    step1 = client.put("/update-details", json={"current_email": EMAIL, "name": "Alicia"}, headers=headers)
    assert step1.status_code == 200

    step2 = client.put(
        "/update-details",
        json={"current_email": EMAIL, "otp": mailer.last_code(EMAIL)},
        headers=headers,
    )
    assert step2.json()["message"] == "OTP verified, proceed"

    conflict = client.put("/update-details", json={"new_email": "taken@example.com"}, headers=headers)
    assert conflict.status_code == 400

    step3 = client.put("/update-details", json={"new_email": new_email}, headers=headers)
    assert step3.status_code == 200

    step4 = client.put(
        "/update-details",
        json={"new_email": new_email, "otp": mailer.last_code(new_email), "number": "555-0100"},
        headers=headers,
    )
    assert step4.status_code == 200
    assert step4.json()["data"]["email"] == new_email

    user = db_session.query(User).filter(User.email == new_email).one()
    assert user.name == "Alicia"
    assert user.number == "555-0100"


def test_email_change_rejects_wrong_current_email(client, auth_headers, mailer):
    headers = auth_headers()

    response = client.put("/update-details", json={"current_email": "other@example.com"}, headers=headers)

    assert response.status_code == 400
    assert mailer.sent_to("other@example.com") == 0


def test_update_details_without_email_updates_profile(client, auth_headers):
    headers = auth_headers()

    response = client.put("/update-details", json={"name": "Al", "number": "12345"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Al"
    assert response.json()["data"]["number"] == "12345"


def test_email_change_requires_verified_current_email(client, auth_headers, mailer, db_session):
    headers = auth_headers()
    new_email = "attacker@example.com"

    send_new = client.put("/update-details", json={"new_email": new_email}, headers=headers)
    assert send_new.status_code == 400
    assert mailer.sent_to(new_email) == 0

    client.post("/resend-otp", json={"email": new_email})
    confirm_new = client.put(
        "/update-details",
        json={"new_email": new_email, "otp": mailer.last_code(new_email)},
        headers=headers,
    )
    assert confirm_new.status_code == 400
    assert db_session.query(User).filter(User.email == EMAIL).count() == 1


def test_email_change_verification_expires_and_is_single_use(client, auth_headers, mailer, db_session):
    headers = auth_headers()
    client.put("/update-details", json={"current_email": EMAIL}, headers=headers)
    client.put("/update-details", json={"current_email": EMAIL, "otp": mailer.last_code(EMAIL)}, headers=headers)

    user = db_session.query(User).filter(User.email == EMAIL).one()
    user.email_change_verified_until = utcnow() - timedelta(seconds=1)
    db_session.commit()

    expired = client.put("/update-details", json={"new_email": "late@example.com"}, headers=headers)
    assert expired.status_code == 400

    client.put("/update-details", json={"current_email": EMAIL}, headers=headers)
    client.put("/update-details", json={"current_email": EMAIL, "otp": mailer.last_code(EMAIL)}, headers=headers)
    client.put("/update-details", json={"new_email": "first@example.com"}, headers=headers)
    changed = client.put(
        "/update-details",
        json={"new_email": "first@example.com", "otp": mailer.last_code("first@example.com")},
        headers=headers,
    )
    assert changed.status_code == 200

    again = client.put("/update-details", json={"new_email": "second@example.com"}, headers=headers)
    assert again.status_code == 400
