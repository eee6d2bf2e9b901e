"""
DeskBook Backend - Session Verification
=========================================

What:  FastAPI dependency that verifies the caller's bearer JWT and builds
       the per-request SessionContext.
How:   Reads `Authorization: Bearer <jwt>` (or the legacy `x-access-token`
       header), verifies it with SESSION_SECRET, and derives the field
       cipher from the token subject.
Who:   Every booking/profile route depends on `get_session`.

The SessionContext is created per request and passed down explicitly to the
services; nothing request-specific is kept at module level.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from deskbook.config import settings
from deskbook.exceptions import AuthenticationError
from deskbook.security.field_cipher import FieldCipher
from deskbook.security.field_protector import FieldProtector

logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionContext:
    """Verified caller identity plus the ciphers keyed on it."""

    user_id: str
    cipher: FieldCipher
    fields: FieldProtector


def build_session(user_id: str) -> SessionContext:
    """Build the cipher context for a verified session subject."""
    cipher = FieldCipher(user_id, settings.field_cipher_salt)
    return SessionContext(
        user_id=user_id,
        cipher=cipher,
        fields=FieldProtector(cipher, settings.field_cipher_mode),
    )


def decode_session_token(token: str) -> str:
    """Verify a session JWT and return its subject.

    Args:
        token: Encoded JWT from the client

    Returns:
        The session subject (`sub` claim, or the legacy `id` claim)

    Raises:
        AuthenticationError: If the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session token expired") from None
    except jwt.InvalidTokenError:
        raise AuthenticationError() from None

    subject = payload.get("sub") or payload.get("id")
    if subject is None or subject == "":
        raise AuthenticationError("Session token has no subject")
    return str(subject)


def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_access_token: str = Header(default="", alias="x-access-token"),
) -> SessionContext:
    """Get the verified session for the current request.

    Raises:
        AuthenticationError: If no token is provided or it does not verify
    """
    token = credentials.credentials if credentials else x_access_token
    if not token:
        raise AuthenticationError("No token provided")
    return build_session(decode_session_token(token))
