"""
DeskBook Backend - Place SQLAlchemy Model
===========================================

What:  ORM model representing the `places` table (one row per desk).
Who:   Used by PlaceService.

Invariant:
    id_user != "" exactly when using is True. PlaceService is the only
    writer and keeps both columns in step.

Semi-flex places:
    A semi-flex place has an owner (id_owner) and an availability window
    (start_date/end_date) during which someone else may claim it. Outside
    the window only the owner may sit there.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from deskbook.database import Base


class Place(Base):
    __tablename__ = "places"

    # Client-chosen identifier, e.g. "A" or "3-12"
    id_place: Mapped[str] = mapped_column(String(128), primary_key=True)

    # USING is a reserved word in SQL
    using: Mapped[bool] = mapped_column("using", Boolean, nullable=False, default=False, quote=True)
    # Lookup index of the occupant (User.id_index), empty when free
    id_user: Mapped[str] = mapped_column(String(128), nullable=False, default="")

    # Lookup index of the owner for semi-flex places
    id_owner: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    semi_flex: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_places_id_user", "id_user"),
        Index("idx_places_id_owner", "id_owner"),
    )

    def __repr__(self) -> str:
        return f"<Place(id_place='{self.id_place}', using={self.using}, semi_flex={self.semi_flex})>"
