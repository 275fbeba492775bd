import os
import tempfile

os.environ.setdefault("APP_ENV", "test")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("ADMIN_EMAIL", "admin@clinic.example.com")
os.environ.setdefault("ADMIN_PASSWORD", "AdminPass123!")
os.environ.setdefault("LOGIN_ATTEMPTS_PER_MINUTE", "1000")
os.environ.setdefault("CONSENT_STORAGE_DIR", tempfile.mkdtemp(prefix="dentalcare-consents-"))
os.environ.setdefault("CLINIC_TIMEZONE", "America/Mexico_City")

import pytest
from fastapi.testclient import TestClient

from dentalcare.db.session import SessionLocal, engine
from dentalcare.main import app
from dentalcare.models import Base

# 1x1 RGBA PNG
PNG_PIXEL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@pytest.fixture(scope="session")
def admin_credentials():
    return os.environ["ADMIN_EMAIL"], os.environ["ADMIN_PASSWORD"]


@pytest.fixture(scope="session")
def api_client():
    with TestClient(app) as client:
        yield client


@pytest.fixture(scope="session")
def auth_headers(api_client, admin_credentials):
    email, password = admin_credentials
    response = api_client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    token = response.json().get("access_token")
    assert token, "Missing access_token in login response"
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def patient_factory(api_client, auth_headers):
    counter = {"n": 0}

    def _create(**overrides):
        counter["n"] += 1
        payload = {
            "first_name": "Ana",
            "last_name": f"Lopez{counter['n']}",
            "age": 34,
            "gender": "female",
            "occupation": "Architect",
            "phone": "555-0100",
            "address": "Av. Reforma 100",
            "email": f"ana{counter['n']}@example.com",
        }
        payload.update(overrides)
        response = api_client.post("/patients", json=payload, headers=auth_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def signature():
    return PNG_PIXEL
