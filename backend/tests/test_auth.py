"""Tests for caller token verification."""
import time

import jwt
import pytest

from sanctuary.auth.dependencies import optional_principal, require_principal
from sanctuary.auth.service import Principal, decode_token, issue_token
from sanctuary.errors import AuthenticationError


@pytest.fixture(autouse=True)
def _config(app_config):
    return app_config


def test_issue_then_decode():
    token = issue_token(Principal(id="u-1", role="admin", alias="Quiet Owl"))
    principal = decode_token(token)
    assert principal == Principal(id="u-1", role="admin", alias="Quiet Owl")
    assert principal.is_admin


def test_role_defaults_to_user():
    token = jwt.encode(
        {"user": {"id": 42}, "exp": int(time.time()) + 60}, "test-jwt-secret", algorithm="HS256"
    )
    principal = decode_token(token)
    assert principal.id == "42"
    assert principal.role == "user"
    assert not principal.is_admin


def test_expired():
    token = issue_token(Principal(id="u-1"), expires_in=-10)
    with pytest.raises(AuthenticationError, match="Token has expired"):
        decode_token(token)


def test_wrong_secret():
    token = jwt.encode({"user": {"id": "u-1"}}, "someone-else", algorithm="HS256")
    with pytest.raises(AuthenticationError, match="Token is not valid"):
        decode_token(token)


def test_garbage():
    with pytest.raises(AuthenticationError):
        decode_token("abc.def.ghi")


@pytest.mark.parametrize("payload", [{}, {"user": "u-1"}, {"user": {"role": "admin"}}])
def test_missing_user_claims(payload):
    token = jwt.encode(payload, "test-jwt-secret", algorithm="HS256")
    with pytest.raises(AuthenticationError, match="Invalid token or user"):
        decode_token(token)


@pytest.mark.asyncio
async def test_require_principal_without_header():
    with pytest.raises(AuthenticationError, match="No token"):
        await require_principal(None)


@pytest.mark.asyncio
async def test_optional_principal():
    assert await optional_principal(None) is None
    with pytest.raises(AuthenticationError, match="Token is not valid"):
        await optional_principal("not-a-token")
    principal = await optional_principal(issue_token(Principal(id="u-2")))
    assert principal.id == "u-2"
