from datetime import datetime, timezone
from typing import Dict, Optional
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from sheet_timeclock.core.config import ServerConfig
from sheet_timeclock.core.database import init_store
from sheet_timeclock.core.errors import AuthError
from sheet_timeclock.main import app
from sheet_timeclock.models.admin import EmployeeCreate
from sheet_timeclock.models.common import DocumentMetadata, ProviderProfile
from sheet_timeclock.services.document_source import DocumentMetadataSource
from sheet_timeclock.services.employee_service import add_employee
from sheet_timeclock.services.identity_provider import IdentityProvider

ADMIN_EMAIL = "admin@example.com"
EMPLOYEE_PASSWORD = "s3cret-pass"

def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeIdentityProvider(IdentityProvider):
    """Authorization codes map straight to verified profiles"""

    def __init__(self):
        self.profiles: Dict[str, ProviderProfile] = {}

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.example.com/auth?state={state}"

    def exchange_code(self, code: str) -> str:
        if code not in self.profiles:
            raise AuthError("Identity provider sign-in failed")
        return f"token-{code}"

    def verify(self, token: str) -> ProviderProfile:
        return self.profiles[token.removeprefix("token-")]


class FakeMetadataSource(DocumentMetadataSource):
    def __init__(self):
        self.documents: Dict[str, DocumentMetadata] = {}
        self.calls = []

    def fetch(self, document_id: str, access_token: Optional[str] = None) -> Optional[DocumentMetadata]:
        self.calls.append((document_id, access_token))
        return self.documents.get(document_id)


@pytest.fixture
def anyio_backend():
    return "asyncio"

@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(ServerConfig, "DATA_DIR", str(tmp_path))
    monkeypatch.setattr(ServerConfig, "ADMIN_EMAIL", ADMIN_EMAIL)
    monkeypatch.setattr(ServerConfig, "SEED_ADMIN", True)
    return tmp_path

@pytest.fixture
def store(data_dir):
    return init_store(data_dir)

@pytest.fixture
def provider():
    return FakeIdentityProvider()

@pytest.fixture
def source():
    return FakeMetadataSource()

@pytest.fixture
def client(store, provider, source):
    app.state.identity_provider = provider
    app.state.document_source = source
    with TestClient(app) as test_client:
        yield test_client

@pytest.fixture
def make_employee(store):
    def _make(name="Jana Novak", email="jana@example.com", hourly_rate=300, password=EMPLOYEE_PASSWORD):
        return add_employee(store, EmployeeCreate(name=name, email=email, password=password, hourly_rate=hourly_rate))
    return _make

@pytest.fixture
def login_employee(client, make_employee):
    """Create an employee and sign the test client in with a password"""
    def _login(**kwargs):
        employee = make_employee(**kwargs)
        response = client.post("/auth/login", json={"email": employee.email, "password": EMPLOYEE_PASSWORD})
        assert response.status_code == 200
        return employee
    return _login

@pytest.fixture
def login_admin(client, provider):
    """Run the provider redirect flow for the seeded admin account"""
    def _login():
        provider.profiles["admin-code"] = ProviderProfile(email=ADMIN_EMAIL, display_name="Admin")
        redirect = client.get("/auth/provider", follow_redirects=False)
        state = parse_qs(urlparse(redirect.headers["location"]).query)["state"][0]
        response = client.get(
            "/auth/provider/callback",
            params={"code": "admin-code", "state": state},
            follow_redirects=False,
        )
        assert response.headers["location"] == ServerConfig.ADMIN_PAGE
        return response
    return _login
