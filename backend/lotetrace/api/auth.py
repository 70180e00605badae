"""Request context: organization scope and the actor performing the request"""
from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Header, HTTPException, status

from lotetrace.core.actor import Actor


@dataclass(frozen=True)
class RequestContext:
    organization_id: int
    actor: Actor


def _decode_jwt_no_verify(token: str) -> Dict[str, Any]:
    """Decode a JWT payload without verifying the signature.

    The token is only used to attribute changes to a user; the gateway in front
    of the API is responsible for authenticating it.
    """
    try:
        payload_segment = token.split(".")[1]
    except IndexError as exc:
        raise ValueError("Malformed token") from exc

    # JWT uses base64url encoding without padding. Restore padding if missing.
    missing_padding = (-len(payload_segment)) % 4
    if missing_padding:
        payload_segment += "=" * missing_padding

    try:
        payload_bytes = base64.urlsafe_b64decode(payload_segment.encode("utf-8"))
        payload = json.loads(payload_bytes.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
        raise ValueError("Unable to decode token") from exc
    if not isinstance(payload, dict):
        raise ValueError("Unexpected token payload")
    return payload


def actor_from_authorization(authorization: Optional[str]) -> Actor:
    """User actor from a Bearer token's `sub` claim; System when no token is sent."""
    if not authorization:
        return Actor.system()

    prefix = "Bearer "
    if not authorization.startswith(prefix):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Authorization format")

    token = authorization[len(prefix):].strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    try:
        payload = _decode_jwt_no_verify(token)
        user_id = payload.get("sub")
        if not user_id:
            raise ValueError("Claim 'sub' missing from token")
        return Actor.user(str(user_id))
    except (ValueError, TypeError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


def get_request_context(
    organization_id: int = Header(..., alias="X-Organization-Id"),
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> RequestContext:
    if organization_id <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid organization id")
    return RequestContext(organization_id=organization_id, actor=actor_from_authorization(authorization))
