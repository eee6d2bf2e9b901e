"""
DeskBook Backend - API Key Service
====================================

What:  Issues and checks API keys for third-party integrations.
How:   Keys are `secrets.token_urlsafe(32)`; only an HMAC-SHA256 hash
       (peppered with API_KEY_PEPPER, falling back to API_SECRET) is stored,
       and lookups compare hashes. The raw key is returned once.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.config import settings
from deskbook.models.api_credential import ApiCredential
from deskbook.schemas.responses import ApiKeyResponse, ApiKeyVerifyResponse
from deskbook.services.common import flush, require_fields, utc_now

logger = logging.getLogger(__name__)


def hash_api_key(api_key: str) -> str:
    """Hash an API key for storage/lookup."""
    mac = hmac.new(settings.api_key_pepper_bytes, api_key.encode("utf-8"), hashlib.sha256)
    return mac.hexdigest()


def generate_api_key() -> str:
    return secrets.token_urlsafe(32)


class ApiKeyService:
    async def issue_key(
        self,
        db: AsyncSession,
        name: Optional[str],
        email: Optional[str],
    ) -> ApiKeyResponse:
        require_fields(name=name, email=email)
        api_key = generate_api_key()
        credential = ApiCredential(
            name=name,
            email=email,
            api_key_hash=hash_api_key(api_key),
            creation=utc_now(),
        )
        db.add(credential)
        await flush(db, "store API key")

        logger.info("API key issued for integration '%s'", name)
        return ApiKeyResponse(
            name=credential.name,
            email=credential.email,
            api_key=api_key,
            creation=credential.creation,
        )

    async def verify_key(self, db: AsyncSession, api_key: Optional[str]) -> ApiKeyVerifyResponse:
        require_fields(api_key=api_key)
        result = await db.execute(
            select(ApiCredential).where(ApiCredential.api_key_hash == hash_api_key(api_key))
        )
        credential = result.scalar_one_or_none()
        if credential is None:
            return ApiKeyVerifyResponse(valid=False)
        return ApiKeyVerifyResponse(valid=True, name=credential.name)


# Singleton instance
api_key_service = ApiKeyService()
