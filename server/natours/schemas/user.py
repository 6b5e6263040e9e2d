"""User-related Pydantic schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import ConfigDict, EmailStr, Field, field_validator, model_validator

from .common import RequestModel, ResponseModel, TrimmedStr


class CreateUserRequest(RequestModel):
    """Request schema for creating a user."""

    name: TrimmedStr = Field(..., min_length=1, max_length=255, description="Display name")
    email: EmailStr = Field(..., description="Unique email address")
    photo: Optional[str] = Field(None, max_length=255, description="Photo filename")
    password: str = Field(..., min_length=8, max_length=72, description="Plain-text password")
    password_confirm: str = Field(..., description="Must repeat the password")

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()

    @model_validator(mode="after")
    def passwords_match(self) -> "CreateUserRequest":
        if self.password != self.password_confirm:
            raise ValueError("Passwords are not the same!")
        return self


class UpdateUserRequest(RequestModel):
    """Partial update of a user; passwords are not updated through this route."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[TrimmedStr] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    photo: Optional[str] = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else v


class Guide(ResponseModel):
    """User embedded in a tour as a guide."""

    id: UUID
    name: str
    email: str
    photo: str


class Reviewer(ResponseModel):
    """User embedded in a review or booking."""

    id: UUID
    name: str
    photo: str


class User(ResponseModel):
    """User response schema; the password is never included."""

    id: UUID
    name: str
    email: str
    photo: str
    created_at: datetime
    version: int
