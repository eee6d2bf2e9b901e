"""Email confirmation tokens (short-lived JWTs signed with API_SECRET)."""

import logging
from datetime import datetime, timedelta, timezone

import jwt

from deskbook.config import settings
from deskbook.exceptions import InvalidConfirmationCodeError

logger = logging.getLogger(__name__)


def issue_confirmation_token(email_index: str) -> str:
    """Create a confirmation token for the user identified by `email_index`.

    Args:
        email_index: Lookup index of the user's email (never the plaintext)

    Returns:
        Encoded JWT string, valid for CONFIRMATION_TOKEN_TTL seconds
    """
    now = datetime.now(timezone.utc)
    payload = {
        "email": email_index,
        "iat": now,
        "exp": now + timedelta(seconds=settings.confirmation_token_ttl),
    }
    return jwt.encode(payload, settings.api_secret, algorithm=settings.jwt_algorithm)


def read_confirmation_token(token: str) -> str:
    """Validate a confirmation token and return the email index it carries.

    Raises:
        InvalidConfirmationCodeError: bad signature, expired, or no email claim
    """
    if not token:
        raise InvalidConfirmationCodeError()
    try:
        payload = jwt.decode(token, settings.api_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("Confirmation token expired")
        raise InvalidConfirmationCodeError(context={"reason": "expired"}) from None
    except jwt.InvalidTokenError:
        raise InvalidConfirmationCodeError(context={"reason": "invalid"}) from None

    email_index = payload.get("email")
    if not email_index or not isinstance(email_index, str):
        raise InvalidConfirmationCodeError(context={"reason": "missing claim"})
    return email_index
