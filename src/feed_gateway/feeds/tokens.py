"""JWT issuance for feed service users and for the gateway itself."""

import time
from typing import Any, Dict, Optional

from authlib.jose import JsonWebToken

_jwt = JsonWebToken(["HS256"])
_HEADER = {"alg": "HS256", "typ": "JWT"}


def _encode(claims: Dict[str, Any], secret: str) -> str:
    token = _jwt.encode(_HEADER, claims, secret)
    return token.decode("utf-8") if isinstance(token, bytes) else token


def create_user_token(
    user_id: str,
    secret: str,
    validity_in_seconds: Optional[int] = None,
    issued_at: Optional[int] = None
) -> str:
    """
    Create a signed access token for a feed service user.
    
    Args:
        user_id: User the token is issued for
        secret: API secret shared with the feed service
        validity_in_seconds: Lifetime of the token; no ``exp`` claim when None
        issued_at: Issue time override (epoch seconds)
    """
    if not user_id:
        raise ValueError("user_id is required to create a token")
    
    iat = int(issued_at if issued_at is not None else time.time())
    claims: Dict[str, Any] = {"user_id": user_id, "iat": iat}
    if validity_in_seconds is not None:
        claims["exp"] = iat + int(validity_in_seconds)
    return _encode(claims, secret)


def create_server_token(secret: str) -> str:
    """Token authenticating the gateway itself for server-side calls."""
    return _encode({"server": True}, secret)
