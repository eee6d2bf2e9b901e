"""
DeskBook Backend - Pydantic Request Schemas
=============================================

What:  Request bodies for every POST route.
How:   Fields are optional at the schema level; the services decide what is
       required and raise ValidationError ("Invalid arguments") themselves,
       so a missing field and an empty field are reported identically.
       Numbers are accepted where strings are expected (place ids like 12).
       camelCase names used by the mobile client are accepted as aliases.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

_BODY_CONFIG = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class LoginRequest(BaseModel):
    model_config = _BODY_CONFIG

    email: Optional[str] = Field(default=None, description="Email address to log in with")


class VerifyRequest(BaseModel):
    model_config = _BODY_CONFIG

    token: Optional[str] = Field(default=None, description="Confirmation token from the email")


class CompleteUserRequest(BaseModel):
    model_config = _BODY_CONFIG

    email: Optional[str] = None
    name: Optional[str] = None
    fname: Optional[str] = Field(default=None, description="First name")
    id_user: Optional[str] = Field(default=None, description="User identifier (must match LOGIN_REGEX)")
    photo: Optional[str] = Field(default=None, description="Base64 image or https URL")


class PlaceRequest(BaseModel):
    """Body of /take_place, /leave_place and /assign_place."""

    model_config = _BODY_CONFIG

    id_place: Optional[str] = None
    id_user: Optional[str] = None


class UnassignPlaceRequest(BaseModel):
    model_config = _BODY_CONFIG

    id_place: Optional[str] = None


class AddFriendRequest(BaseModel):
    model_config = _BODY_CONFIG

    id_user: Optional[str] = Field(default=None, description="Caller's identifier")
    id: Optional[str] = Field(default=None, description="Friend's identifier")
    name: Optional[str] = None
    fname: Optional[str] = None
    id_place: Optional[str] = None
    photo: Optional[str] = None


class RemoveFriendRequest(BaseModel):
    model_config = _BODY_CONFIG

    id_user: Optional[str] = None
    id: Optional[str] = None


class SettingsRequest(BaseModel):
    model_config = _BODY_CONFIG

    id_user: Optional[str] = None
    photo: Optional[str] = None
    remote_day: Optional[str] = Field(default=None, alias="remoteDay")
    start_date: Optional[str] = Field(default=None, alias="startDate", description="DD/MM/YYYY")
    end_date: Optional[str] = Field(default=None, alias="endDate", description="DD/MM/YYYY")


class RemoveUserRequest(BaseModel):
    model_config = _BODY_CONFIG

    name: Optional[str] = None
    fname: Optional[str] = None


class SendEmailRequest(BaseModel):
    model_config = _BODY_CONFIG

    to: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None


class ApiKeyRequest(BaseModel):
    model_config = _BODY_CONFIG

    name: Optional[str] = None
    email: Optional[str] = None


class ApiKeyVerifyRequest(BaseModel):
    model_config = _BODY_CONFIG

    api_key: Optional[str] = None
