"""FastAPI dependencies resolving the caller from ``x-auth-token``."""
from typing import Optional

from fastapi import Header

from sanctuary.errors import AuthenticationError

from .service import Principal, decode_token


async def require_principal(
    x_auth_token: Optional[str] = Header(default=None, alias="x-auth-token"),
) -> Principal:
    if not x_auth_token:
        raise AuthenticationError("No token, authorization denied")
    return decode_token(x_auth_token)


async def optional_principal(
    x_auth_token: Optional[str] = Header(default=None, alias="x-auth-token"),
) -> Optional[Principal]:
    """None when no token is sent; a token that is sent must be valid."""
    if not x_auth_token:
        return None
    return decode_token(x_auth_token)
