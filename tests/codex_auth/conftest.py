"""Shared fixtures for Codex auth tests."""

import base64
import json

import pytest

from src.codex_auth.token_data import TokenData, parse_id_token


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's own credentials out of the tests."""
    for var in (
        "OPENAI_API_KEY",
        "CODEX_HOME",
        "CODEX_CLIENT_ID",
        "CODEX_AUTH_ISSUER",
        "CODEX_LOGIN_PORT",
        "CODEX_LOGIN_OPEN_BROWSER",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_jwt():
    """Build an unsigned compact JWT with the given payload."""

    def _make(payload: dict) -> str:
        header = _b64(json.dumps({"alg": "none", "typ": "JWT"}).encode())
        body = _b64(json.dumps(payload).encode())
        return f"{header}.{body}.{_b64(b'sig')}"

    return _make


@pytest.fixture
def plus_jwt(make_jwt):
    return make_jwt(
        {
            "email": "a@b.com",
            "https://api.openai.com/auth": {"chatgpt_plan_type": "plus"},
        }
    )


@pytest.fixture
def enterprise_jwt(make_jwt):
    return make_jwt(
        {
            "email": "corp@example.com",
            "https://api.openai.com/auth": {"chatgpt_plan_type": "enterprise"},
        }
    )


@pytest.fixture
def plus_tokens(plus_jwt):
    """Token set for a Plus account."""
    return TokenData(
        id_token=parse_id_token(plus_jwt),
        access_token="access_token_123",
        refresh_token="refresh_token_456",
        account_id="acct_789",
    )
