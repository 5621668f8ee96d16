import base64
import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from auth import AuthorizationCodeGrant
from config import Config
from models import AuthorizationCode, Client, GrantRequest
from storage import InMemoryModel

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def s256(verifier: str) -> str:
    """Reference S256 challenge for a verifier"""
    return base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest()).rstrip(b"=").decode()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "ENVIRONMENT",
        "OAUTH_TOKEN_EXPIRY",
        "OAUTH_REFRESH_TOKEN_EXPIRY",
        "OAUTH_ISSUE_REFRESH_TOKEN",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def client():
    return Client(id="client-a")


@pytest.fixture
def user():
    return {"id": "user-1", "name": "Ada"}


@pytest.fixture
def model():
    return InMemoryModel()


@pytest.fixture
def make_code(model, client, user):
    """Store an authorization code, overriding any field by keyword"""

    def _make_code(**overrides):
        fields = {
            "authorization_code": "abc123",
            "client": client,
            "user": user,
            "expires_at": NOW + timedelta(minutes=5),
            "redirect_uri": None,
            "scope": "read write",
        }
        fields.update(overrides)
        code = AuthorizationCode(**fields)
        model.add_authorization_code(code)
        return code

    return _make_code


@pytest.fixture
def grant(model, config, clock):
    return AuthorizationCodeGrant(model, config=config, clock=clock)


def token_request(**body) -> GrantRequest:
    body.setdefault("code", "abc123")
    return GrantRequest(body=body)
