"""
DeskBook Backend - User SQLAlchemy Model
==========================================

What:  ORM model representing the `users` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by UserService, PlaceService and FriendService.

Sensitive Columns:
    id_user, email, name and fname never hold plaintext. Each one is paired
    with an `*_index` column holding the lookup index produced by
    FieldProtector; queries always filter on the index column.

    Places refer to users through `id_index` (see models/place.py).

JSON Columns:
    historical: [{"id_place": str, "begin": ISO-8601, "end": ISO-8601 or ""}]
    friend:     [{"id": str, "name": protected, "fname": protected,
                  "id_place": str, "photo": str}]
    The ORM does not track in-place mutation of JSON values; services always
    assign a new list.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from deskbook.database import Base


class User(Base):
    """
    A person who can claim places.

    Lifecycle:
        1. Created by /login_user with only the email set
        2. Completed by /complete_user (identifier, name, first name, photo)
        3. Claims/releases places; history grows by one entry per claim
        4. Deleted by /remove_user
    """

    __tablename__ = "users"

    pk: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Identifier ────────────────────────────────────────────────────────
    id_index: Mapped[Optional[str]] = mapped_column(
        String(128), nullable=True, unique=True,
        comment="Lookup index of the user identifier",
    )
    id_user: Mapped[str] = mapped_column(
        Text, nullable=False, default="",
        comment="Protected user identifier",
    )

    # ── Email ─────────────────────────────────────────────────────────────
    email_index: Mapped[str] = mapped_column(
        String(128), nullable=False, unique=True,
        comment="Lookup index of the email address",
    )
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── Names ─────────────────────────────────────────────────────────────
    name_index: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    fname_index: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    fname: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── Login confirmation ────────────────────────────────────────────────
    # Empty once the token has been used
    confirmation_token: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── Booking state ─────────────────────────────────────────────────────
    id_place: Mapped[str] = mapped_column(
        String(128), nullable=False, default="",
        comment="Place currently held, empty when none",
    )
    historical: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    friend: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # ── Preferences ───────────────────────────────────────────────────────
    photo: Mapped[str] = mapped_column(Text, nullable=False, default="")
    remote_day: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    # Window during which the places this user owns are open to others
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_users_name_fname", "name_index", "fname_index"),
    )

    def __repr__(self) -> str:
        return f"<User(pk={self.pk}, id_place='{self.id_place}')>"
