"""
DeskBook Backend - API Key Routes
===================================

What:  POST /api_key issues a key for an integration (the raw key is in
       this response only); POST /api_key/verify checks one.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.database import get_db_session
from deskbook.schemas.requests import ApiKeyRequest, ApiKeyVerifyRequest
from deskbook.schemas.responses import ApiKeyResponse, ApiKeyVerifyResponse, ErrorResponse
from deskbook.security.session import get_session
from deskbook.services.api_key_service import api_key_service

router = APIRouter(
    prefix="/api_key",
    tags=["API Keys"],
    dependencies=[Depends(get_session)],
    responses={
        400: {"description": "Invalid arguments", "model": ErrorResponse},
        401: {"description": "Missing or invalid session token", "model": ErrorResponse},
    },
)


@router.post("", response_model=ApiKeyResponse, summary="Issue an API key")
async def issue_api_key(
    body: ApiKeyRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiKeyResponse:
    return await api_key_service.issue_key(db, body.name, body.email)


@router.post("/verify", response_model=ApiKeyVerifyResponse, summary="Check an API key")
async def verify_api_key(
    body: ApiKeyVerifyRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiKeyVerifyResponse:
    return await api_key_service.verify_key(db, body.api_key)
