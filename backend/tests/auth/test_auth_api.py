import uuid

from dentalcare.core.security import decode_access_token
from dentalcare.core.settings import settings


def _create_user(api_client, auth_headers, role="staff", password="TempPassword123!"):
    email = f"{role}-{uuid.uuid4().hex[:8]}@clinic.example.com"
    response = api_client.post(
        "/users",
        json={
            "email": email,
            "first_name": "Laura",
            "last_name": "Mendez",
            "role": role,
            "temp_password": password,
        },
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return email, password


def _login(api_client, email, password):
    response = api_client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_login_rejects_bad_credentials(api_client, admin_credentials):
    email, _ = admin_credentials
    response = api_client.post("/auth/login", json={"email": email, "password": "wrong-password"})
    assert response.status_code == 401


def test_protected_routes_need_a_token(api_client):
    assert api_client.get("/patients").status_code == 401
    assert api_client.get("/appointments").status_code == 401
    garbage = api_client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401


def test_token_carries_version_and_role(api_client, auth_headers):
    token = auth_headers["Authorization"].split(" ", 1)[1]
    payload = decode_access_token(token, secret=settings.secret_key, alg=settings.jwt_alg)
    assert payload["role"] == "admin"
    assert "ver" in payload


def test_sign_out_revokes_existing_tokens(api_client, auth_headers):
    email, password = _create_user(api_client, auth_headers)
    headers = _login(api_client, email, password)

    me = api_client.get("/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["full_name"] == "Laura Mendez"
    assert me.json()["must_change_password"] is True

    signed_out = api_client.post("/auth/logout", headers=headers)
    assert signed_out.status_code == 200

    after = api_client.get("/auth/me", headers=headers)
    assert after.status_code == 401
    assert after.json()["detail"] == "Session expired"

    fresh = _login(api_client, email, password)
    assert api_client.get("/auth/me", headers=fresh).status_code == 200


def test_user_management_is_admin_only(api_client, auth_headers):
    email, password = _create_user(api_client, auth_headers, role="doctor")
    doctor = _login(api_client, email, password)

    assert api_client.get("/users", headers=doctor).status_code == 403
    assert api_client.get("/users", headers=auth_headers).status_code == 200
    assert api_client.get("/users/roles", headers=auth_headers).json() == ["admin", "doctor", "staff"]

    duplicate = api_client.post(
        "/users",
        json={"email": email, "temp_password": "AnotherTemp123!"},
        headers=auth_headers,
    )
    assert duplicate.status_code == 409


def test_change_password_and_profile(api_client, auth_headers):
    email, password = _create_user(api_client, auth_headers)
    headers = _login(api_client, email, password)

    changed = api_client.post(
        "/auth/change-password", json={"new_password": "BrandNewPass456!"}, headers=headers
    )
    assert changed.status_code == 200
    assert api_client.post("/auth/login", json={"email": email, "password": password}).status_code == 401

    headers = _login(api_client, email, "BrandNewPass456!")
    wrong_old = api_client.post(
        "/auth/change-password",
        json={"new_password": "Whatever789!", "old_password": "nope-nope"},
        headers=headers,
    )
    assert wrong_old.status_code == 400

    profile = api_client.patch("/auth/me", json={"first_name": " Lucia "}, headers=headers)
    assert profile.json()["first_name"] == "Lucia"


def test_audit_log_records_sign_out(api_client, auth_headers):
    email, password = _create_user(api_client, auth_headers)
    headers = _login(api_client, email, password)
    assert api_client.get("/audit", headers=headers).status_code == 403

    api_client.post("/auth/logout", headers=headers)
    entries = api_client.get(
        "/audit", params={"action": "user.signed_out"}, headers=auth_headers
    ).json()
    assert email in {entry["actor_email"] for entry in entries}


def test_calendar_connection_lifecycle(api_client, auth_headers):
    email, password = _create_user(api_client, auth_headers, role="doctor")
    headers = _login(api_client, email, password)

    initial = api_client.get("/auth/me/calendar", headers=headers)
    assert initial.json() == {"connected": False, "enabled": False}

    assert api_client.patch("/auth/me/calendar", json={"enabled": True}, headers=headers).status_code == 409
    assert api_client.put("/auth/me/calendar", json={"access_token": "  "}, headers=headers).status_code == 422

    connected = api_client.put("/auth/me/calendar", json={"access_token": "google-token"}, headers=headers)
    assert connected.status_code == 200, connected.text
    assert connected.json() == {"connected": True, "enabled": True}
    assert api_client.get("/auth/me", headers=headers).json()["google_calendar_enabled"] is True

    paused = api_client.patch("/auth/me/calendar", json={"enabled": False}, headers=headers)
    assert paused.json() == {"connected": True, "enabled": False}

    resumed = api_client.patch("/auth/me/calendar", json={"enabled": True}, headers=headers)
    assert resumed.json() == {"connected": True, "enabled": True}

    disconnected = api_client.delete("/auth/me/calendar", headers=headers)
    assert disconnected.json() == {"connected": False, "enabled": False}
    assert "google_calendar_token" not in api_client.get("/auth/me", headers=headers).json()
