"""
DeskBook Backend - Place Routes
=================================

What:  Claim/release (POST /take_place, /leave_place) and semi-flex
       ownership (POST /assign_place, /unassign_place).
How:   Claim and release answer in plain text, matching what the mobile
       client displays; ownership routes answer {"success": "success"}.
       A refused claim is a ConflictError (500, occupant names in the body).
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.database import get_db_session
from deskbook.schemas.requests import PlaceRequest, UnassignPlaceRequest
from deskbook.schemas.responses import ConflictResponse, ErrorResponse, SuccessResponse
from deskbook.security.session import SessionContext, get_session
from deskbook.services.place_service import place_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Places"])

_ERRORS = {
    400: {"description": "Invalid arguments", "model": ErrorResponse},
    401: {"description": "Missing or invalid session token", "model": ErrorResponse},
    404: {"description": "Unknown user or place", "model": ErrorResponse},
}
_CONFLICT = {500: {"description": "Place used by someone else", "model": ConflictResponse}}


@router.post(
    "/take_place",
    response_class=PlainTextResponse,
    responses={**_ERRORS, **_CONFLICT},
    summary="Claim a place",
)
async def take_place(
    body: PlaceRequest,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db_session),
) -> str:
    return await place_service.take_place(db, session, body.id_place, body.id_user)


@router.post(
    "/leave_place",
    response_class=PlainTextResponse,
    responses={**_ERRORS, **_CONFLICT},
    summary="Release a place",
)
async def leave_place(
    body: PlaceRequest,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db_session),
) -> str:
    return await place_service.leave_place(db, session, body.id_place, body.id_user)


@router.post(
    "/assign_place",
    response_model=SuccessResponse,
    responses=_ERRORS,
    summary="Make a place semi-flex, owned by a user",
)
async def assign_place(
    body: PlaceRequest,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await place_service.assign_place(db, session, body.id_place, body.id_user)
    return SuccessResponse()


@router.post(
    "/unassign_place",
    response_model=SuccessResponse,
    responses=_ERRORS,
    summary="Remove the owner of a place",
    dependencies=[Depends(get_session)],
)
async def unassign_place(
    body: UnassignPlaceRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await place_service.unassign_place(db, body.id_place)
    return SuccessResponse()
