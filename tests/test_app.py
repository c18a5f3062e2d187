from starlette.requests import Request

from countrygate.core import errors
from countrygate.core.errors import (
    AuthenticationFailure,
    AuthorizationFailure,
    ConflictError,
    CountryGateError,
    NotFound,
    UpstreamFailure,
    ValidationFailure,
    error_body,
)
from countrygate.core.rate_limit import _key_func
from countrygate.core.security import create_access_token
from countrygate.services.usage import record_key_usage


# ─── Service endpoints ───


def test_root(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["name"] == "CountryGate API"
    assert r.json()["endpoints"]["countries"] == "/api/countries"


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_unknown_route_uses_error_envelope(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Not Found"}


# ─── Error taxonomy ───


def test_status_codes():
    assert AuthenticationFailure().status_code == 401
    assert AuthorizationFailure().status_code == 403
    assert NotFound().status_code == 404
    assert ConflictError().status_code == 409
    assert ValidationFailure().status_code == 400
    assert UpstreamFailure().status_code == 502
    assert all(
        issubclass(cls, CountryGateError)
        for cls in (AuthenticationFailure, AuthorizationFailure, NotFound, UpstreamFailure)
    )


def test_default_and_custom_messages():
    assert UpstreamFailure().message == "Error fetching country data"
    assert NotFound("Region not found").message == "Region not found"


def test_error_body_includes_detail_only_when_given():
    assert error_body("nope") == {"success": False, "message": "nope"}
    assert error_body("nope", "why") == {"success": False, "message": "nope", "error": "why"}


def test_error_handlers_share_usage_recorder():
    assert errors.record_key_usage is record_key_usage


# ─── Rate limit key ───


def _request(headers=None, query: bytes = b"") -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/countries",
        "query_string": query,
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": ("203.0.113.7", 5000),
    }
    return Request(scope)


def test_rate_limit_keyed_by_api_key():
    by_header = _key_func(_request({"X-API-Key": "cg_secret"}))
    by_query = _key_func(_request(query=b"api_key=cg_secret"))
    assert by_header == by_query
    assert by_header.startswith("key:")
    assert "cg_secret" not in by_header


def test_rate_limit_falls_back_to_ip():
    assert _key_func(_request()) == "203.0.113.7"


def test_rate_limit_keyed_by_bearer_user():
    alice = _key_func(_request({"Authorization": f"Bearer {create_access_token({'sub': '1'})}"}))
    bob = _key_func(_request({"Authorization": f"Bearer {create_access_token({'sub': '2'})}"}))
    assert alice == "user:1"
    assert bob == "user:2"


def test_rate_limit_api_key_wins_over_bearer():
    headers = {"X-API-Key": "cg_secret", "Authorization": f"Bearer {create_access_token({'sub': '1'})}"}
    assert _key_func(_request(headers)).startswith("key:")


def test_rate_limit_bad_bearer_falls_back_to_ip():
    assert _key_func(_request({"Authorization": "Bearer not-a-jwt"})) == "203.0.113.7"
