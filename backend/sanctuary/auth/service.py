"""JWT verification for callers of the relay.

Token payload layout::

    {"user": {"id": "u-1", "role": "admin", "alias": "Quiet Owl"}, "exp": ...}
"""
import logging
import time
from typing import Optional

import jwt
from pydantic import BaseModel, Field

from sanctuary.config import get_config
from sanctuary.errors import AuthenticationError

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class Principal(BaseModel):
    """The authenticated caller."""
    id: str = Field(..., min_length=1, description="User ID")
    role: str = Field(default="user", description="User role (user, expert, admin)")
    alias: Optional[str] = Field(default=None, description="Display alias")

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def issue_token(principal: Principal, expires_in: int = 3600) -> str:
    """Sign a caller token for *principal*."""
    secrets = get_config().jwt_secrets
    payload = {
        "user": principal.model_dump(exclude_none=True),
        "iat": int(time.time()),
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(payload, secrets.secret_key, algorithm=secrets.algorithm)


def decode_token(token: str) -> Principal:
    """Verify *token* and return the caller it names.

    Raises:
        AuthenticationError: Bad signature, expired, or missing user claims.
    """
    secrets = get_config().jwt_secrets
    try:
        payload = jwt.decode(token, secrets.secret_key, algorithms=[secrets.algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected caller token: %s", e)
        raise AuthenticationError("Token is not valid")

    user = payload.get("user")
    if not isinstance(user, dict) or not user.get("id"):
        raise AuthenticationError("Invalid token or user")

    return Principal(
        id=str(user["id"]),
        role=str(user.get("role") or "user"),
        alias=user.get("alias"),
    )
