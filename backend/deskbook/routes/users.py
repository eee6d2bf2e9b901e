"""
DeskBook Backend - User Settings & Administration Routes
==========================================================

What:  POST /settings_user, POST /remove_user, POST /send_email.
       All three answer {"success": "success"}.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.database import get_db_session
from deskbook.schemas.requests import RemoveUserRequest, SendEmailRequest, SettingsRequest
from deskbook.schemas.responses import ErrorResponse, SuccessResponse
from deskbook.security.session import SessionContext, get_session
from deskbook.services.common import require_fields
from deskbook.services.mail_service import mail_service
from deskbook.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])

_ERRORS = {
    400: {"description": "Invalid arguments", "model": ErrorResponse},
    401: {"description": "Missing or invalid session token", "model": ErrorResponse},
    404: {"description": "Unknown user", "model": ErrorResponse},
}


@router.post(
    "/settings_user",
    response_model=SuccessResponse,
    responses=_ERRORS,
    summary="Update photo, remote day and availability window",
    description="Dates use the DD/MM/YYYY format; the end date is inclusive.",
)
async def settings_user(
    body: SettingsRequest,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await user_service.update_settings(
        db,
        session,
        id_user=body.id_user,
        photo=body.photo,
        remote_day=body.remote_day,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    return SuccessResponse()


@router.post(
    "/remove_user",
    response_model=SuccessResponse,
    responses=_ERRORS,
    summary="Delete a user by name and first name",
)
async def remove_user(
    body: RemoveUserRequest,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await user_service.remove_user(db, session, name=body.name, fname=body.fname)
    return SuccessResponse()


@router.post(
    "/send_email",
    response_model=SuccessResponse,
    responses=_ERRORS,
    summary="Send a free-form email",
    description="Delivery happens after the response; failures are only logged.",
    dependencies=[Depends(get_session)],
)
async def send_email(body: SendEmailRequest, background_tasks: BackgroundTasks) -> SuccessResponse:
    require_fields(to=body.to, subject=body.subject, body=body.body)
    background_tasks.add_task(mail_service.deliver, body.to, body.subject, body.body)
    logger.info("Email scheduled (subject length %d)", len(body.subject))
    return SuccessResponse()
