"""
Shared fixtures: a throwaway SQLite database, a mocked RestCountries upstream,
and helpers for registering users and issuing keys.
"""
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="countrygate-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from countrygate.core.database import Base, SessionLocal, engine  # noqa: E402
from countrygate.ingestion.init_db import init_db  # noqa: E402
from countrygate.main import app  # noqa: E402
from countrygate.services.restcountries import RestCountriesClient, get_country_client  # noqa: E402

UPSTREAM_BASE = "https://upstream.test/v3.1"


# ─── Sample upstream records ───

FRANCE = {
    "name": {
        "common": "France",
        "official": "French Republic",
        "nativeName": {"fra": {"official": "République française", "common": "France"}},
    },
    "currencies": {"EUR": {"name": "Euro", "symbol": "€"}},
    "capital": ["Paris"],
    "languages": {"fra": "French"},
    "flags": {
        "png": "https://flagcdn.com/w320/fr.png",
        "svg": "https://flagcdn.com/fr.svg",
        "alt": "The flag of France is composed of three equal vertical bands.",
    },
    "population": 67391582,
}

GERMANY = {
    "name": {"common": "Germany", "official": "Federal Republic of Germany"},
    "currencies": {"EUR": {"name": "Euro", "symbol": "€"}},
    "capital": ["Berlin"],
    "languages": {"deu": "German"},
    "flags": {"png": "https://flagcdn.com/w320/de.png", "svg": "https://flagcdn.com/de.svg"},
}

ANTARCTICA = {
    "name": {"common": "Antarctica", "official": "Antarctica"},
    "flags": {"png": "https://flagcdn.com/w320/aq.png", "svg": "https://flagcdn.com/aq.svg"},
}


class FakeUpstream:
    """Routes upstream paths (``/name/france``) to canned (status, json) pairs."""

    def __init__(self):
        self.routes = {}
        self.requests = []
        self.error = None

    def add(self, path: str, payload, status: int = 200):
        self.routes[path] = (status, payload)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        path = request.url.path[len("/v3.1"):]
        status, payload = self.routes.get(path, (404, {"status": 404, "message": "Not Found"}))
        return httpx.Response(status, json=payload)


# ─── Fixtures ───


@pytest.fixture(autouse=True)
def database():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def upstream():
    fake = FakeUpstream()
    app.dependency_overrides[get_country_client] = lambda: RestCountriesClient(
        base_url=UPSTREAM_BASE,
        transport=httpx.MockTransport(fake.handler),
    )
    yield fake
    app.dependency_overrides.pop(get_country_client, None)


@pytest.fixture
def client():
    return TestClient(app)


def register(client: TestClient, username: str = "alice", password: str = "secret123") -> dict:
    r = client.post(
        "/api/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": password},
    )
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def create_key(client: TestClient, headers: dict, name: str = "Test", expiry_days: int = 30) -> dict:
    r = client.post("/api/keys", json={"name": name, "expiryDays": expiry_days}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
def auth_headers(client):
    return register(client)


@pytest.fixture
def api_key(client, auth_headers):
    """(raw key, key id) of a fresh 30-day key owned by ``alice``."""
    body = create_key(client, auth_headers)
    return body["key"], body["data"]["id"]
