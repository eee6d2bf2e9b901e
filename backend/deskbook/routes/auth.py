"""
DeskBook Backend - Login & Profile Completion Routes
======================================================

What:  POST /login_user, POST /verify, POST /complete_user.
How:   Thin handlers over UserService. The confirmation email is scheduled
       as a background task, so the response never waits on SMTP.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.database import get_db_session
from deskbook.schemas.requests import CompleteUserRequest, LoginRequest, VerifyRequest
from deskbook.schemas.responses import ErrorResponse, LoginResponse, UserProfile
from deskbook.security.session import SessionContext, get_session
from deskbook.services.mail_service import mail_service
from deskbook.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

_ERRORS = {
    400: {"description": "Invalid arguments", "model": ErrorResponse},
    401: {"description": "Missing or invalid session token", "model": ErrorResponse},
}


@router.post(
    "/login_user",
    response_model=LoginResponse,
    responses=_ERRORS,
    summary="Start an email login",
    description="Creates the user on first login and emails a confirmation token.",
)
async def login_user(
    body: LoginRequest,
    background_tasks: BackgroundTasks,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    response, token = await user_service.login_user(db, session, body.email)
    background_tasks.add_task(mail_service.deliver_confirmation, response.email, token)
    return response


@router.post(
    "/verify",
    response_model=UserProfile,
    response_model_by_alias=True,
    responses=_ERRORS,
    summary="Confirm a login token",
)
async def verify(
    body: VerifyRequest,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db_session),
) -> UserProfile:
    return await user_service.verify_user(db, session, body.token)


@router.post(
    "/complete_user",
    response_model=UserProfile,
    response_model_by_alias=True,
    responses={**_ERRORS, 404: {"description": "Unknown email", "model": ErrorResponse}},
    summary="Fill in identifier, names and photo",
)
async def complete_user(
    body: CompleteUserRequest,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db_session),
) -> UserProfile:
    return await user_service.complete_user(
        db,
        session,
        email=body.email,
        name=body.name,
        fname=body.fname,
        id_user=body.id_user,
        photo=body.photo,
    )
