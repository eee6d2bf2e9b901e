"""
DeskBook Backend - Friend Service
===================================

What:  Adds and removes entries in a user's friend list.
How:   The list lives in the user's `friend` JSON column. Friend names are
       stored protected like the user's own names; the friend's id, place
       and photo are stored as given.

Duplicates:
    Adding an id that is already in the list keeps both entries unless
    FRIEND_DEDUP is on, in which case the new entry replaces the old one.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.config import settings
from deskbook.schemas.responses import UserProfile
from deskbook.security.session import SessionContext
from deskbook.services.common import flush, require_fields, require_user
from deskbook.services.user_service import user_service

logger = logging.getLogger(__name__)


class FriendService:
    async def add_friend(
        self,
        db: AsyncSession,
        session: SessionContext,
        id_user: Optional[str],
        id: Optional[str],
        name: Optional[str],
        fname: Optional[str],
        id_place: Optional[str] = None,
        photo: Optional[str] = None,
    ) -> UserProfile:
        require_fields(id_user=id_user, id=id, name=name, fname=fname)
        fields = session.fields
        user = await require_user(db, id_index=fields.lookup(id_user))

        entry = {
            "id": id,
            "name": fields.protect(name).stored,
            "fname": fields.protect(fname).stored,
            "id_place": id_place or "",
            "photo": photo or "",
        }
        friends = list(user.friend or [])
        if settings.friend_dedup:
            friends = [friend for friend in friends if friend.get("id") != id]
        friends.append(entry)
        user.friend = friends

        await flush(db, "add friend")
        logger.info("User %s now has %d friends", user.pk, len(friends))
        return user_service.build_profile(user, session)

    async def remove_friend(
        self,
        db: AsyncSession,
        session: SessionContext,
        id_user: Optional[str],
        id: Optional[str],
    ) -> UserProfile:
        """Remove every entry with this friend id; unknown ids are a no-op."""
        require_fields(id_user=id_user, id=id)
        user = await require_user(db, id_index=session.fields.lookup(id_user))

        before = len(user.friend or [])
        user.friend = [friend for friend in user.friend or [] if friend.get("id") != id]
        if len(user.friend) == before:
            logger.info("Friend %s not in list of user %s", id, user.pk)

        await flush(db, "remove friend")
        return user_service.build_profile(user, session)


# Singleton instance
friend_service = FriendService()
