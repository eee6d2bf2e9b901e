"""
DeskBook Backend - Place Service
==================================

What:  Claiming, releasing and owning places.
How:   Places reference users by identifier index (User.id_index). Every
       claim appends an open entry to the user's history and every release
       closes it, so a user's last history entry is open exactly while the
       user holds a place.
Who:   Called by routes/places.py.

Availability (checked before any write):
    in use                      → unavailable
    not semi-flex               → available
    caller owns it              → available
    semi-flex, window open now  → available
    otherwise                   → unavailable

    Where the window comes from depends on AVAILABILITY_CHECK:
        sync   the place's own start_date/end_date
        async  the owner's user record (start_date/end_date)

Concurrency:
    Two first claims on the same new place race on the primary key; the
    loser's flush fails and is reported as a conflict.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.config import settings
from deskbook.exceptions import ConflictError, DecryptionError, NotFoundError
from deskbook.models.place import Place
from deskbook.models.user import User
from deskbook.security.session import SessionContext
from deskbook.services.common import (
    as_utc,
    find_user,
    flush,
    require_fields,
    require_user,
    utc_now,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

TAKE_PLACE_MESSAGE = "Place successfully assigned to user"
LEAVE_PLACE_MESSAGE = "User successfully left the place"


def close_history(historical: List[dict], id_place: Optional[str] = None) -> List[dict]:
    """
    Return a copy of `historical` with the last open entry closed.

    When `id_place` is given only an open entry for that place is closed.
    """
    entries = [dict(entry) for entry in historical or []]
    for entry in reversed(entries):
        if entry.get("end"):
            continue
        if id_place is None or entry.get("id_place") == id_place:
            entry["end"] = utc_now_iso()
        break
    return entries


class PlaceService:
    async def _get_place(self, db: AsyncSession, id_place: str) -> Optional[Place]:
        return await db.get(Place, id_place)

    async def _window(
        self, db: AsyncSession, place: Place
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        if settings.availability_check == "async":
            owner = await find_user(db, id_index=place.id_owner) if place.id_owner else None
            if owner is None:
                logger.warning("Semi-flex place %s has no owner record", place.id_place)
                return None, None
            return as_utc(owner.start_date), as_utc(owner.end_date)
        return as_utc(place.start_date), as_utc(place.end_date)

    async def is_available(self, db: AsyncSession, place: Place, user: User) -> bool:
        """Whether `user` may claim `place` right now."""
        if place.using:
            return False
        if not place.semi_flex:
            return True
        if place.id_owner and place.id_owner == user.id_index:
            return True

        start, end = await self._window(db, place)
        if start is None or end is None:
            return False
        return start <= utc_now() <= end

    async def _conflict(
        self, db: AsyncSession, session: SessionContext, place: Place
    ) -> ConflictError:
        """ConflictError naming whoever blocks the place (occupant, else owner)."""
        blocker_index = place.id_user if place.using else place.id_owner
        blocker = await find_user(db, id_index=blocker_index) if blocker_index else None
        if blocker is None:
            return ConflictError(context={"id_place": place.id_place})

        try:
            name = session.fields.reveal(blocker.name)
            fname = session.fields.reveal(blocker.fname)
        except DecryptionError:
            logger.warning("Occupant of place %s not readable with this session", place.id_place)
            name, fname = "", ""
        return ConflictError(name=name, fname=fname, context={"id_place": place.id_place})

    async def _release(self, db: AsyncSession, user: User, id_place: str) -> None:
        """Free `id_place` if `user` holds it and close the matching history entry."""
        place = await self._get_place(db, id_place)
        if place is not None and place.id_user == user.id_index:
            place.using = False
            place.id_user = ""
        user.historical = close_history(user.historical, id_place)
        if user.id_place == id_place:
            user.id_place = ""

    async def take_place(
        self,
        db: AsyncSession,
        session: SessionContext,
        id_place: Optional[str],
        id_user: Optional[str],
    ) -> str:
        """
        Claim a place for a user.

        Workflow:
            1. Validate input and load the user
            2. Refuse (no writes) if the place is unavailable
            3. Release the place the user currently holds, if another one
            4. Create or update the place as occupied by the user
            5. Append an open history entry

        Raises:
            ValidationError: missing id_place or id_user
            NotFoundError: no user with this identifier
            ConflictError: the place is held or closed to the caller
        """
        require_fields(id_place=id_place, id_user=id_user)
        user = await require_user(db, id_index=session.fields.lookup(id_user))
        place = await self._get_place(db, id_place)

        if place is not None:
            if place.using and place.id_user == user.id_index:
                logger.info("Place %s already held by user %s", id_place, user.pk)
                return TAKE_PLACE_MESSAGE
            if not await self.is_available(db, place, user):
                logger.info("Place %s unavailable for user %s", id_place, user.pk)
                raise await self._conflict(db, session, place)

        if user.id_place and user.id_place != id_place:
            await self._release(db, user, user.id_place)

        if place is None:
            place = Place(id_place=id_place, using=True, id_user=user.id_index)
            db.add(place)
        else:
            place.using = True
            place.id_user = user.id_index

        user.id_place = id_place
        user.historical = [
            *(user.historical or []),
            {"id_place": id_place, "begin": utc_now_iso(), "end": ""},
        ]

        try:
            await db.flush()
        except IntegrityError:
            logger.warning("Concurrent claim on new place %s", id_place)
            raise ConflictError(
                message="Place already used",
                context={"id_place": id_place},
            ) from None

        logger.info("Place %s taken by user %s", id_place, user.pk)
        return TAKE_PLACE_MESSAGE

    async def leave_place(
        self,
        db: AsyncSession,
        session: SessionContext,
        id_place: Optional[str],
        id_user: Optional[str],
    ) -> str:
        """
        Release a place held by the user and close the open history entry.

        Raises:
            ValidationError: missing id_place or id_user
            NotFoundError: unknown user or place
            ConflictError: someone else holds the place
        """
        require_fields(id_place=id_place, id_user=id_user)
        user = await require_user(db, id_index=session.fields.lookup(id_user))
        place = await self._get_place(db, id_place)
        if place is None:
            raise NotFoundError(resource="place", resource_id=id_place)

        if place.using and place.id_user != user.id_index:
            raise await self._conflict(db, session, place)

        await self._release(db, user, id_place)
        await flush(db, "leave place")
        logger.info("Place %s left by user %s", id_place, user.pk)
        return LEAVE_PLACE_MESSAGE

    async def assign_place(
        self,
        db: AsyncSession,
        session: SessionContext,
        id_place: Optional[str],
        id_user: Optional[str],
    ) -> None:
        """Make `id_place` a semi-flex place owned by the user, with the user's window."""
        require_fields(id_place=id_place, id_user=id_user)
        owner = await require_user(db, id_index=session.fields.lookup(id_user))

        place = await self._get_place(db, id_place)
        if place is None:
            place = Place(id_place=id_place)
            db.add(place)

        place.id_owner = owner.id_index
        place.semi_flex = True
        place.start_date = owner.start_date
        place.end_date = owner.end_date

        await flush(db, "assign place")
        logger.info("Place %s assigned to user %s", id_place, owner.pk)

    async def unassign_place(self, db: AsyncSession, id_place: Optional[str]) -> None:
        """Drop ownership of a place; the current occupant (if any) keeps it."""
        require_fields(id_place=id_place)
        place = await self._get_place(db, id_place)
        if place is None:
            raise NotFoundError(resource="place", resource_id=id_place)

        place.id_owner = ""
        place.semi_flex = False
        place.start_date = None
        place.end_date = None

        await flush(db, "unassign place")
        logger.info("Place %s unassigned", id_place)


# Singleton instance
place_service = PlaceService()
