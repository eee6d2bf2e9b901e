"""
DeskBook Backend - Pydantic Response Schemas
==============================================

What:  Response bodies returned to clients.
How:   Profiles are built from the ORM rows with every protected field
       revealed through the caller's session; lookup indexes and stored
       ciphertexts never leave the service.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class HistoryEntry(BaseModel):
    """One claim-to-release interval. `end` is "" while the place is held."""

    id_place: str
    begin: str
    end: str = ""


class FriendEntry(BaseModel):
    id: str
    name: str = ""
    fname: str = ""
    id_place: str = ""
    photo: str = ""


class UserProfile(BaseModel):
    """
    What:  Decrypted view of a user for the current session.
    Who:   Returned by /verify, /complete_user, /add_friend, /remove_friend.
    """

    id_user: str = Field(default="", description="User identifier, empty until completed")
    email: str
    name: str = ""
    fname: str = ""
    photo: str = ""
    id_place: str = Field(default="", description="Place currently held, empty when none")
    remote_day: str = Field(default="", serialization_alias="remoteDay")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    historical: List[HistoryEntry] = Field(default_factory=list)
    friend: List[FriendEntry] = Field(default_factory=list)


class FriendListResponse(BaseModel):
    user: UserProfile


class LoginResponse(BaseModel):
    email: str
    message: str = "Confirmation email sent"


class SuccessResponse(BaseModel):
    success: str = "success"


class ApiKeyResponse(BaseModel):
    name: str
    email: str
    api_key: str = Field(description="Raw key; shown only once")
    creation: datetime


class ApiKeyVerifyResponse(BaseModel):
    valid: bool
    name: Optional[str] = None


class ConflictResponse(BaseModel):
    """Body of a refused claim: who holds the place."""

    error: str = "place_already_used"
    message: str
    name: str
    fname: str
    request_id: Optional[str] = None


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Invalid arguments",
            "details": {"field": "id_place"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    image_host: str = Field(description="Image host status: available, circuit_open, disabled")
    mail: str = Field(description="Mail backend in use")
    uptime_seconds: float = Field(description="Seconds since service started")
