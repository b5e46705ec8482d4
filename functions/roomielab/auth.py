"""
Bearer-token gate for protected routes.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, Request

from roomielab.dependencies import get_auth_client
from roomielab.errors import ApiError, ErrorKind
from roomielab.identity import AuthClient, Identity, TokenVerificationError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise ApiError(ErrorKind.AUTHENTICATION, "No token provided")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise ApiError(ErrorKind.AUTHENTICATION, "Invalid token format")
    return token


def require_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
    auth_client: AuthClient = Depends(get_auth_client),
) -> Identity:
    """Verify the caller's token and attach the identity to the request."""
    token = extract_bearer_token(authorization)
    try:
        identity = auth_client.verify_id_token(token)
    except TokenVerificationError as exc:
        logger.warning("Token verification failed: %s", exc)
        raise ApiError(ErrorKind.AUTHENTICATION, "Invalid or expired token") from exc
    request.state.identity = identity
    return identity


def require_admin(identity: Identity = Depends(require_identity)) -> Identity:
    if not identity.is_admin:
        raise ApiError(ErrorKind.AUTHORIZATION, "Admin privileges required")
    return identity
