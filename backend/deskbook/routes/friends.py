"""
DeskBook Backend - Friend Routes
==================================

What:  POST /add_friend and POST /remove_friend; both answer with the
       caller's updated profile as {"user": {...}}.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.database import get_db_session
from deskbook.schemas.requests import AddFriendRequest, RemoveFriendRequest
from deskbook.schemas.responses import ErrorResponse, FriendListResponse
from deskbook.security.session import SessionContext, get_session
from deskbook.services.friend_service import friend_service

router = APIRouter(tags=["Friends"])

_ERRORS = {
    400: {"description": "Invalid arguments", "model": ErrorResponse},
    401: {"description": "Missing or invalid session token", "model": ErrorResponse},
    404: {"description": "Unknown user", "model": ErrorResponse},
}


@router.post(
    "/add_friend",
    response_model=FriendListResponse,
    response_model_by_alias=True,
    responses=_ERRORS,
    summary="Add an entry to the caller's friend list",
)
async def add_friend(
    body: AddFriendRequest,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db_session),
) -> FriendListResponse:
    profile = await friend_service.add_friend(
        db,
        session,
        id_user=body.id_user,
        id=body.id,
        name=body.name,
        fname=body.fname,
        id_place=body.id_place,
        photo=body.photo,
    )
    return FriendListResponse(user=profile)


@router.post(
    "/remove_friend",
    response_model=FriendListResponse,
    response_model_by_alias=True,
    responses=_ERRORS,
    summary="Remove a friend by id",
)
async def remove_friend(
    body: RemoveFriendRequest,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db_session),
) -> FriendListResponse:
    profile = await friend_service.remove_friend(db, session, id_user=body.id_user, id=body.id)
    return FriendListResponse(user=profile)
