"""User domain models used for registration and authentication."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Gender(IntEnum):
    male = 0
    female = 1
    other = 2


class AuthProvider(str, Enum):
    local = "local"
    google = "google"


def normalise_email(value: str) -> str:
    value = value.strip().lower()
    local, _, domain = value.partition("@")
    if not local or "." not in domain:
        raise ValueError("A valid email address is required")
    return value


@dataclass(slots=True)
class UserRecord:
    """A registered buyer account."""

    id: str
    name: str
    email: str
    phone: Optional[str]
    country: Optional[str]
    calling_code: Optional[str]
    gender: Optional[Gender]
    password_hash: Optional[str]
    auth_provider: AuthProvider
    google_uid: Optional[str]
    picture: Optional[str]
    email_verified: bool
    reset_code: Optional[str]
    reset_expires_at: Optional[datetime]
    reset_verified: bool
    created_at: datetime
    updated_at: datetime

    def as_profile(self) -> Dict[str, Any]:
        """Return a serialisable profile payload for API responses."""

        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone or "",
            "country": self.country or "",
            "calling_code": self.calling_code or "",
            "gender": int(self.gender) if self.gender is not None else None,
            "picture": self.picture or "",
            "email_verified": self.email_verified,
            "auth_provider": self.auth_provider.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(slots=True)
class VerifiedEmailRecord:
    email: str
    otp_code: Optional[str]
    otp_expires_at: Optional[datetime]
    verified: bool
    updated_at: datetime


class EmailPayload(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalise_email(value)


class EmailOtpVerify(EmailPayload):
    otp: str = Field(..., min_length=4, max_length=10)

    @field_validator("otp")
    @classmethod
    def strip_otp(cls, value: str) -> str:
        return value.strip()


class RegisterRequest(EmailPayload):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=72)
    phone: str = Field(..., min_length=4)
    country: str = Field(..., min_length=1)
    calling_code: str = Field(..., alias="callingCode", min_length=1)
    gender: Gender

    @field_validator("name", "phone", "country", "calling_code")
    @classmethod
    def strip_fields(cls, value: str) -> str:
        return value.strip()


class LoginRequest(EmailPayload):
    password: str = Field(..., min_length=1)


class GoogleSignInRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(..., alias="idToken", min_length=1)


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(None, alias="refreshToken")


class PasswordResetComplete(EmailPayload):
    model_config = ConfigDict(populate_by_name=True)

    new_password: str = Field(..., alias="newPassword", min_length=6, max_length=72)


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    name: Optional[str] = None
    phone: Optional[str] = None
    old_password: Optional[str] = Field(None, alias="oldPassword")
    new_password: Optional[str] = Field(None, alias="newPassword", min_length=6, max_length=72)


class UserLookup(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)


class UserListQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    search: str = ""
    sort_by: str = Field("created_at", alias="sortBy")
    sort_order: str = Field("desc", alias="sortOrder", pattern="^(asc|desc)$")
