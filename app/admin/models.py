"""Administrator accounts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.users.models import EmailPayload, normalise_email


@dataclass(slots=True)
class AdminRecord:
    id: str
    email: str
    credential: str
    reset_code: Optional[str]
    reset_expires_at: Optional[datetime]
    created_at: datetime


class AdminLogin(EmailPayload):
    password: str = Field(..., min_length=1)


class AdminPasswordReset(EmailPayload):
    model_config = ConfigDict(populate_by_name=True)

    otp: str = Field(..., min_length=4, max_length=10)
    new_password: str = Field(..., alias="newPassword", min_length=6, max_length=72)


class AdminPasswordUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: str = Field(..., alias="oldPassword", min_length=1)
    new_password: str = Field(..., alias="newPassword", min_length=6, max_length=72)


class AdminEmailUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_email: str = Field(..., alias="newEmail")

    @field_validator("new_email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalise_email(value)
