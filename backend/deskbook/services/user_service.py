"""
DeskBook Backend - User Service
=================================

What:  Login by email, confirmation, profile completion, settings and
       account removal.
How:   Every sensitive value goes through the session's FieldProtector
       before it touches the database; profiles are revealed with the same
       session on the way out.
Who:   Called by routes/auth.py and routes/users.py; FriendService reuses
       build_profile().

Login Flow:
    POST /login_user   → user row created on first login, confirmation JWT
                         stored on the row, email scheduled in background
    POST /verify       → token checked against the stored one, then cleared
    POST /complete_user → identifier, names and photo filled in

Photo Handling:
    A value starting with http(s):// is stored as-is. Anything else is
    treated as base64 and sent to the image host when PHOTO_UPLOAD_ENABLED
    is on. Image host failures are logged and the previous photo is kept.
"""

import logging
import re
from datetime import datetime, time, timezone
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.config import settings
from deskbook.exceptions import (
    DependencyError,
    InvalidConfirmationCodeError,
    ValidationError,
)
from deskbook.models.place import Place
from deskbook.models.user import User
from deskbook.schemas.responses import FriendEntry, HistoryEntry, LoginResponse, UserProfile
from deskbook.security.session import SessionContext
from deskbook.security.tokens import issue_confirmation_token, read_confirmation_token
from deskbook.services.common import find_user, flush, require_fields, require_user
from deskbook.services.image_host import image_host

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")
_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

SETTINGS_DATE_FORMAT = "%d/%m/%Y"


def parse_settings_date(value: str, field: str, end_of_day: bool = False) -> datetime:
    """
    Parse a DD/MM/YYYY date from /settings_user.

    End dates are inclusive: they cover the whole day, up to 23:59:59.999999 UTC.
    """
    try:
        day = datetime.strptime(value.strip(), SETTINGS_DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(field=field, context={"expected_format": "DD/MM/YYYY"}) from None
    return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)


class UserService:
    def build_profile(self, user: User, session: SessionContext) -> UserProfile:
        """
        Decrypted view of `user` for the current session.

        Raises:
            DecryptionError: the row was written under another session key
        """
        fields = session.fields
        return UserProfile(
            id_user=fields.reveal(user.id_user),
            email=fields.reveal(user.email),
            name=fields.reveal(user.name),
            fname=fields.reveal(user.fname),
            photo=user.photo,
            id_place=user.id_place,
            remote_day=user.remote_day,
            start_date=user.start_date,
            end_date=user.end_date,
            historical=[HistoryEntry(**entry) for entry in user.historical or []],
            friend=[
                FriendEntry(
                    id=entry.get("id", ""),
                    name=fields.reveal(entry.get("name", "")),
                    fname=fields.reveal(entry.get("fname", "")),
                    id_place=entry.get("id_place", ""),
                    photo=entry.get("photo", ""),
                )
                for entry in user.friend or []
            ],
        )

    async def resolve_photo(self, photo: Optional[str], current: str = "") -> str:
        """
        Turn a client photo value into what gets stored.

        Returns `current` when there is nothing to store or the upload failed.
        """
        if not photo:
            return current
        if _URL_PATTERN.match(photo):
            return photo
        if not settings.photo_upload_enabled:
            logger.info("Photo upload disabled; ignoring inline photo")
            return current
        try:
            return await image_host.upload(photo)
        except DependencyError as e:
            logger.warning("Photo upload failed, keeping previous photo: %s", e.message)
            return current

    async def login_user(
        self,
        db: AsyncSession,
        session: SessionContext,
        email: Optional[str],
    ) -> Tuple[LoginResponse, str]:
        """
        Create the user on first login and store a fresh confirmation token.

        Returns:
            (response body, confirmation token to email)
        """
        require_fields(email=email)
        email = email.strip()
        if not _EMAIL_PATTERN.match(email):
            raise ValidationError(field="email")

        protected = session.fields.protect(email)
        user = await find_user(db, email_index=protected.index)
        if user is None:
            user = User(email=protected.stored, email_index=protected.index)
            db.add(user)
            logger.info("New user created on login (email_index=%s)", protected.index[:12])

        token = issue_confirmation_token(protected.index)
        user.confirmation_token = token
        await flush(db, "store confirmation token")

        return LoginResponse(email=email), token

    async def verify_user(
        self,
        db: AsyncSession,
        session: SessionContext,
        token: Optional[str],
    ) -> UserProfile:
        """Consume a confirmation token. A token works once."""
        require_fields(token=token)
        email_index = read_confirmation_token(token)

        user = await find_user(db, email_index=email_index)
        if user is None or not user.confirmation_token or user.confirmation_token != token:
            raise InvalidConfirmationCodeError()

        user.confirmation_token = ""
        await flush(db, "clear confirmation token")
        logger.info("Login confirmed for user %s", user.pk)
        return self.build_profile(user, session)

    async def complete_user(
        self,
        db: AsyncSession,
        session: SessionContext,
        email: Optional[str],
        name: Optional[str],
        fname: Optional[str],
        id_user: Optional[str],
        photo: Optional[str] = None,
    ) -> UserProfile:
        require_fields(email=email, name=name, fname=fname, id_user=id_user)
        if not re.fullmatch(settings.login_regex, id_user):
            raise ValidationError(field="id_user")

        fields = session.fields
        user = await require_user(db, email_index=fields.lookup(email.strip()))

        protected_id = fields.protect(id_user)
        holder = await find_user(db, id_index=protected_id.index)
        if holder is not None and holder.pk != user.pk:
            raise ValidationError(message="Identifier already in use", field="id_user")

        previous_index = user.id_index
        protected_name = fields.protect(name)
        protected_fname = fields.protect(fname)

        user.id_user = protected_id.stored
        user.id_index = protected_id.index
        user.name = protected_name.stored
        user.name_index = protected_name.index
        user.fname = protected_fname.stored
        user.fname_index = protected_fname.index
        user.photo = await self.resolve_photo(photo, user.photo)

        # Places reference users by identifier index
        if previous_index and previous_index != protected_id.index:
            await self._rekey_places(db, previous_index, protected_id.index)

        await flush(db, "complete user profile")
        logger.info("Profile completed for user %s", user.pk)
        return self.build_profile(user, session)

    async def _rekey_places(self, db: AsyncSession, old_index: str, new_index: str) -> None:
        result = await db.execute(
            select(Place).where((Place.id_user == old_index) | (Place.id_owner == old_index))
        )
        for place in result.scalars():
            if place.id_user == old_index:
                place.id_user = new_index
            if place.id_owner == old_index:
                place.id_owner = new_index

    async def update_settings(
        self,
        db: AsyncSession,
        session: SessionContext,
        id_user: Optional[str],
        photo: Optional[str] = None,
        remote_day: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> None:
        """
        Update photo, remote day and availability window.

        The window is copied onto every place the user owns so that the
        place-based availability check sees it too.
        """
        require_fields(id_user=id_user)

        start = parse_settings_date(start_date, "startDate") if start_date else None
        end = parse_settings_date(end_date, "endDate", end_of_day=True) if end_date else None
        if start and end and start > end:
            raise ValidationError(field="endDate", context={"reason": "end before start"})

        user = await require_user(db, id_index=session.fields.lookup(id_user))

        user.photo = await self.resolve_photo(photo, user.photo)
        if remote_day:
            user.remote_day = remote_day
        if start:
            user.start_date = start
        if end:
            user.end_date = end

        if start or end:
            result = await db.execute(select(Place).where(Place.id_owner == user.id_index))
            for place in result.scalars():
                if start:
                    place.start_date = start
                if end:
                    place.end_date = end

        await flush(db, "update user settings")
        logger.info("Settings updated for user %s", user.pk)

    async def remove_user(
        self,
        db: AsyncSession,
        session: SessionContext,
        name: Optional[str],
        fname: Optional[str],
    ) -> None:
        """
        Delete the user matching name and first name.

        The place the user sits at is freed and owned places lose their owner,
        so no place keeps pointing at a deleted user.
        """
        require_fields(name=name, fname=fname)
        fields = session.fields
        user = await require_user(
            db,
            name_index=fields.lookup(name),
            fname_index=fields.lookup(fname),
        )

        if user.id_index:
            result = await db.execute(
                select(Place).where(
                    (Place.id_user == user.id_index) | (Place.id_owner == user.id_index)
                )
            )
            for place in result.scalars():
                if place.id_user == user.id_index:
                    place.using = False
                    place.id_user = ""
                if place.id_owner == user.id_index:
                    place.id_owner = ""
                    place.semi_flex = False
                    place.start_date = None
                    place.end_date = None

        await db.delete(user)
        await flush(db, "remove user")
        logger.info("User %s removed", user.pk)


# Singleton instance
user_service = UserService()
