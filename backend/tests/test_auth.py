import pytest
import requests

from storemap.core import auth, config
from storemap.core.auth import CurrentUser, verify_token


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def json(self):
        return self._payload


@pytest.fixture
def auth_url(monkeypatch):
    monkeypatch.setattr(config, "AUTH_URL", "https://auth.example.com/")
    monkeypatch.setattr(config, "AUTH_API_KEY", "anon-key")
    monkeypatch.setattr(config, "AUTH_TIMEOUT_SECONDS", 2.5)


def test_valid_token_resolves_user(monkeypatch, auth_url):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen.update(url=url, headers=headers, timeout=timeout)
        return FakeResponse(200, {"id": "abc-123", "email": "ops@example.com"})

    monkeypatch.setattr(auth.requests, "get", fake_get)

    assert verify_token("tok") == CurrentUser(id="abc-123", email="ops@example.com")
    assert seen["url"] == "https://auth.example.com/auth/v1/user"
    assert seen["headers"] == {"apikey": "anon-key", "Authorization": "Bearer tok"}
    assert seen["timeout"] == 2.5


def test_rejected_token(monkeypatch, auth_url):
    monkeypatch.setattr(auth.requests, "get", lambda *a, **kw: FakeResponse(401))
    assert verify_token("expired") is None


def test_provider_unreachable(monkeypatch, auth_url):
    def boom(*args, **kwargs):
        raise requests.exceptions.ConnectionError("down")

    monkeypatch.setattr(auth.requests, "get", boom)
    assert verify_token("tok") is None


def test_missing_auth_url_rejects_everything(monkeypatch):
    monkeypatch.setattr(config, "AUTH_URL", "")
    assert verify_token("tok") is None


def test_invalid_token_over_http(anon_client, monkeypatch, auth_url):
    monkeypatch.setattr(auth.requests, "get", lambda *a, **kw: FakeResponse(403))
    r = anon_client.get("/stores", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid or expired token"}


def test_valid_token_over_http(anon_client, monkeypatch, auth_url):
    monkeypatch.setattr(auth.requests, "get", lambda *a, **kw: FakeResponse(200, {"id": "abc-123"}))
    r = anon_client.get("/stores", headers={"Authorization": "Bearer good"})
    assert r.status_code == 200
    assert r.json()["stores"] == []


class HtmlResponse(FakeResponse):
    def json(self):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")


def test_non_json_body_is_an_invalid_token(monkeypatch, auth_url):
    monkeypatch.setattr(auth.requests, "get", lambda *a, **kw: HtmlResponse(200))
    assert verify_token("tok") is None


def test_non_json_body_over_http_is_401(anon_client, monkeypatch, auth_url):
    monkeypatch.setattr(auth.requests, "get", lambda *a, **kw: HtmlResponse(200))
    r = anon_client.get("/stores", headers={"Authorization": "Bearer good"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid or expired token"}
