"""
DeskBook Backend - API Credential SQLAlchemy Model
====================================================

What:  Coarse API keys handed to integrations (name, contact email, key).
How:   Only an HMAC-SHA256 hash of the key is stored; the raw key is shown
       once, at issuance. Unrelated to the per-session field cipher keys.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from deskbook.database import Base


class ApiCredential(Base):
    __tablename__ = "api_credentials"

    pk: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    api_key_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    creation: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<ApiCredential(name='{self.name}', creation='{self.creation}')>"
